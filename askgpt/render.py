"""Convenience entry points that wire a tokenizer to a terminal writer."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TextIO

from .config import AskConfig
from .tokenizer import Tokenizer
from .writer import TerminalWriter, TokenSink


def render_chunks(
    chunks: Iterable[str],
    config: AskConfig | None = None,
    stream: TextIO | None = None,
    sink: TokenSink | None = None,
    color: bool | None = None,
) -> str:
    """Render text chunks as they arrive and return the concatenated input.

    Args:
        chunks: Text fragments in arrival order; boundaries may fall anywhere.
        config: Rendering configuration. Defaults to a new `AskConfig`.
        stream: Output stream for the default terminal writer.
        sink: Custom sink; overrides `stream` and `color` when given.
        color: Forwarded to the default `TerminalWriter`.

    Returns:
        str: All chunks joined, for callers that record the raw text.

    Examples:
        render_chunks(["Some `co", "de`\\n"], AskConfig(width=60))
    """
    config = config or AskConfig()
    if sink is None:
        sink = TerminalWriter(stream=stream, config=config, color=color)
    tokenizer = Tokenizer(sink, config)
    received = []
    try:
        for chunk in chunks:
            received.append(chunk)
            tokenizer.append(chunk)
    finally:
        tokenizer.finish()
    return "".join(received)


def render_markdown(
    text: str,
    config: AskConfig | None = None,
    stream: TextIO | None = None,
    color: bool | None = None,
) -> None:
    """Render a complete document in one call."""
    render_chunks([text], config=config, stream=stream, color=color)


def split_chunks(text: str, size: int) -> list[str]:
    """Split `text` into chunks of at most `size` characters.

    Raises:
        ValueError: If `size` is not positive.
    """
    if size <= 0:
        raise ValueError("chunk size must be a positive integer")
    return [text[index : index + size] for index in range(0, len(text), size)]
