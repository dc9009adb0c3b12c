from __future__ import annotations

import json
import textwrap
from datetime import datetime, timezone
from pathlib import Path

import pytest

import askgpt.cli as cli_module
from askgpt.cli import cli
from askgpt.exceptions import ChatRequestError
from askgpt.history import load_history, save_history
from askgpt.models import HistoricMessage, Message


class FakeClient:
    def __init__(self, chunks: list[str], error: Exception | None = None):
        self.chunks = chunks
        self.error = error
        self.messages: list[Message] = []

    def __enter__(self) -> FakeClient:
        return self

    def __exit__(self, *exc: object) -> None:
        pass

    def stream_completion(self, messages: list[Message]):
        self.messages = messages
        yield from self.chunks
        if self.error is not None:
            raise self.error


@pytest.fixture()
def config_dir(tmp_path, monkeypatch) -> Path:
    directory = tmp_path / "config"
    directory.mkdir()
    monkeypatch.setenv("ASKGPT_CONFIG_DIR", str(directory))
    monkeypatch.delenv("ASKGPT_WIDTH", raising=False)
    monkeypatch.chdir(tmp_path)
    return directory


@pytest.fixture()
def fake_client(config_dir, monkeypatch) -> FakeClient:
    (config_dir / "apikey.txt").write_text("sk-test\n", encoding="utf-8")
    client = FakeClient(["Use `print(", "x)`\n"])
    monkeypatch.setattr(cli_module, "create_client", lambda api_key, config: client)
    return client


def _write(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
    return path


class TestRender:
    def test_renders_file(self, cli_runner, config_dir, tmp_path):
        source = _write(tmp_path / "answer.md", "Hello **world**\n")

        result = cli_runner.invoke(cli, ["render", str(source), "--width", "40", "--no-color"])

        assert result.exit_code == 0, result.output
        assert result.output == "Hello world\n"

    def test_renders_stdin_with_markers(self, cli_runner, config_dir):
        result = cli_runner.invoke(
            cli, ["render", "--show-markdown", "--no-color"], input="`x`\n"
        )

        assert result.exit_code == 0, result.output
        assert result.output == "`x`\n"

    def test_chunk_size_does_not_change_output(self, cli_runner, config_dir, tmp_path):
        source = _write(
            tmp_path / "answer.md",
            """
            Call `foo(bar)` and **stop**.

            ```python
            def foo(bar):
                return "baz"  # done
            ```
            """,
        )

        outputs = {
            size: cli_runner.invoke(
                cli, ["render", str(source), "--chunk-size", size, "--width", "30"]
            ).output
            for size in ("1", "5", "1000")
        }

        assert outputs["1"] == outputs["5"] == outputs["1000"]
        assert 'return "baz"  # done' in outputs["1"]

    def test_width_from_environment(self, cli_runner, config_dir, monkeypatch):
        monkeypatch.setenv("ASKGPT_WIDTH", "7")

        result = cli_runner.invoke(cli, ["render", "--no-color"], input="aaa bbb ccc")

        assert result.output == "aaa bbb\nccc\n"

    def test_invalid_width_environment(self, cli_runner, config_dir, monkeypatch):
        monkeypatch.setenv("ASKGPT_WIDTH", "wide")

        result = cli_runner.invoke(cli, ["render"], input="x")

        assert result.exit_code == 1
        assert "ASKGPT_WIDTH" in result.output

    def test_invalid_configuration(self, cli_runner, config_dir, tmp_path):
        _write(tmp_path / "pyproject.toml", "[tool.askgpt]\nbracket_colors = []\n")

        result = cli_runner.invoke(cli, ["render"], input="x")

        assert result.exit_code == 2
        assert "bracket_colors" in result.output

    def test_configuration_from_pyproject(self, cli_runner, config_dir, tmp_path):
        _write(tmp_path / "pyproject.toml", "[tool.askgpt]\nshow_markdown = true\nwidth = 40\n")

        result = cli_runner.invoke(cli, ["render", "--no-color"], input="**hi**")

        assert result.output == "**hi**\n"


class TestAsk:
    def test_streams_answer_and_records_history(self, cli_runner, config_dir, fake_client):
        result = cli_runner.invoke(cli, ["ask", "hello", "world", "--no-color", "--width", "40"])

        assert result.exit_code == 0, result.output
        assert result.output == "Use print(x)\n"
        assert fake_client.messages == [Message("user", "hello world")]

        history = load_history(config_dir / "history.jsonl")
        assert [entry.message for entry in history] == [
            Message("user", "hello world"),
            Message("assistant", "Use `print(x)`\n"),
        ]

    def test_sends_initial_prompt_and_recent_history(self, cli_runner, config_dir, fake_client):
        (config_dir / "prompt.json").write_text(
            json.dumps([{"role": "system", "content": "Be brief."}]), encoding="utf-8"
        )
        now = datetime.now(timezone.utc)
        save_history(
            config_dir / "history.jsonl",
            [
                HistoricMessage(datetime(2000, 1, 1, tzinfo=timezone.utc), Message("user", "stale")),
                HistoricMessage(now, Message("user", "earlier")),
            ],
            max_history=10,
        )

        result = cli_runner.invoke(cli, ["ask", "again"])

        assert result.exit_code == 0, result.output
        assert fake_client.messages == [
            Message("system", "Be brief."),
            Message("user", "earlier"),
            Message("user", "again"),
        ]

    def test_no_history_flag(self, cli_runner, config_dir, fake_client):
        result = cli_runner.invoke(cli, ["ask", "--no-history", "hi"])

        assert result.exit_code == 0, result.output
        assert not (config_dir / "history.jsonl").exists()

    def test_model_option_reaches_client(self, cli_runner, config_dir, monkeypatch):
        (config_dir / "apikey.txt").write_text("sk-test", encoding="utf-8")
        seen = {}

        def create_client(api_key, config):
            seen["api_key"], seen["model"] = api_key, config.model
            return FakeClient(["ok"])

        monkeypatch.setattr(cli_module, "create_client", create_client)

        result = cli_runner.invoke(cli, ["ask", "-m", "gpt-4o", "hi"])

        assert result.exit_code == 0, result.output
        assert seen == {"api_key": "sk-test", "model": "gpt-4o"}

    def test_empty_prompt(self, cli_runner, config_dir):
        result = cli_runner.invoke(cli, ["ask"])

        assert result.exit_code == 2
        assert "You didn't provide a prompt" in result.output

    def test_missing_api_key(self, cli_runner, config_dir):
        result = cli_runner.invoke(cli, ["ask", "hi"])

        assert result.exit_code == 1
        assert "No API key found" in result.output

    def test_request_error(self, cli_runner, config_dir, fake_client):
        fake_client.error = ChatRequestError(500, "server exploded")

        result = cli_runner.invoke(cli, ["ask", "hi", "--no-color"])

        assert result.exit_code == 1
        assert "status code 500" in result.output
        assert not (config_dir / "history.jsonl").exists()


class TestReplay:
    def test_replays_latest_answers(self, cli_runner, config_dir):
        now = datetime.now(timezone.utc)
        save_history(
            config_dir / "history.jsonl",
            [
                HistoricMessage(now, Message("user", "q1")),
                HistoricMessage(now, Message("assistant", "first")),
                HistoricMessage(now, Message("user", "q2")),
                HistoricMessage(now, Message("assistant", "*second*")),
            ],
            max_history=10,
        )

        result = cli_runner.invoke(cli, ["replay", "-n", "2", "--no-color"])

        assert result.exit_code == 0, result.output
        assert result.output == "first\nsecond\n"

    def test_empty_history(self, cli_runner, config_dir):
        result = cli_runner.invoke(cli, ["replay"])

        assert result.exit_code == 0
        assert "No answers in history." in result.output


def test_version(cli_runner):
    result = cli_runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "version" in result.output
