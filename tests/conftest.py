import pytest
from click.testing import CliRunner

from askgpt.config import AskConfig
from askgpt.tokenizer import Tokenizer
from askgpt.writer import CaptureSink


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Provides a reusable Click CLI runner."""
    return CliRunner()


@pytest.fixture()
def tokenize():
    """Run text through a tokenizer into a capture sink."""

    def _tokenize(text: str, chunks: list[str] | None = None, **config) -> CaptureSink:
        sink = CaptureSink()
        tokenizer = Tokenizer(sink, AskConfig(**config))
        for chunk in chunks if chunks is not None else [text]:
            tokenizer.append(chunk)
        tokenizer.finish()
        return sink

    return _tokenize
