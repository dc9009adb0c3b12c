import json
import logging
from datetime import datetime, timedelta, timezone

import pytest

from askgpt.exceptions import HistoryError
from askgpt.history import (
    append_exchange,
    last_answers,
    load_history,
    recent_messages,
    save_history,
)
from askgpt.models import HistoricMessage, Message

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _entry(minutes_ago: int, role: str, content: str) -> HistoricMessage:
    return HistoricMessage(NOW - timedelta(minutes=minutes_ago), Message(role, content))


def test_missing_history_is_empty(tmp_path):
    assert load_history(tmp_path / "history.jsonl") == []


def test_save_and_load(tmp_path):
    path = tmp_path / "history.jsonl"
    history = [_entry(5, "user", "q"), _entry(4, "assistant", "a")]

    save_history(path, history, max_history=10)

    assert load_history(path) == history
    assert len(path.read_text(encoding="utf-8").splitlines()) == 2


def test_save_keeps_newest_entries(tmp_path):
    path = tmp_path / "history.jsonl"
    history = [_entry(minutes, "user", str(minutes)) for minutes in (3, 2, 1)]

    save_history(path, history, max_history=2)

    assert [entry.message.content for entry in load_history(path)] == ["2", "1"]


def test_malformed_lines_are_skipped(tmp_path, caplog):
    path = tmp_path / "history.jsonl"
    good = json.dumps(_entry(1, "user", "kept").to_dict())
    path.write_text(f"{good}\n\nnot json\n{{\"timestamp\": 3}}\n", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="askgpt.history"):
        history = load_history(path)

    assert [entry.message.content for entry in history] == ["kept"]
    assert "line 3" in caplog.text
    assert "line 4" in caplog.text


def test_unreadable_history_raises(tmp_path):
    path = tmp_path / "history.jsonl"
    path.mkdir()

    with pytest.raises(HistoryError, match="Could not read"):
        load_history(path)


def test_unwritable_history_raises(tmp_path):
    path = tmp_path / "history.jsonl"
    path.mkdir()

    with pytest.raises(HistoryError, match="Could not write"):
        save_history(path, [_entry(1, "user", "q")], max_history=5)


def test_recent_messages_respects_window():
    history = [_entry(30, "user", "old"), _entry(10, "user", "new"), _entry(9, "assistant", "reply")]

    messages = recent_messages(history, NOW, timedelta(minutes=15))

    assert messages == [Message("user", "new"), Message("assistant", "reply")]


def test_append_exchange():
    history: list[HistoricMessage] = []

    append_exchange(history, Message("user", "q"), NOW, "answer", NOW + timedelta(seconds=3))

    assert [entry.message for entry in history] == [
        Message("user", "q"),
        Message("assistant", "answer"),
    ]
    assert history[1].timestamp == NOW + timedelta(seconds=3)


def test_last_answers():
    history = [
        _entry(5, "user", "q1"),
        _entry(4, "assistant", "a1"),
        _entry(3, "user", "q2"),
        _entry(2, "assistant", "a2"),
    ]

    assert last_answers(history, 1) == ["a2"]
    assert last_answers(history, 5) == ["a1", "a2"]
    assert last_answers(history, 0) == []
