from __future__ import annotations

import io

from hypothesis import given
from hypothesis import strategies as st

from askgpt.config import AskConfig
from askgpt.models import ContextTag, TokenKind
from askgpt.render import render_chunks, split_chunks
from askgpt.tokenizer import Tokenizer
from askgpt.writer import CaptureSink, PlainTextWriter

FRAGMENTS = [
    "a", "foo", "def", "return", "None", "x1", " ", "  ", "\t", "\n", "\n\n", "*", "**",
    "***", "_", "__", "`", "``", "```", "```python\n", "```cs\n", "```\n", '"', '"""',
    "'", "\\", "#", "/", "//", "(", ")", "[", "]", "{", "}", ".", ",", ":", ";", "=",
    "+", "1", "2.5", "https://x.io/a(b)", "file:", "é", "漢",
]

markdown_text = st.lists(st.sampled_from(FRAGMENTS), max_size=60).map("".join)
STRICT = AskConfig(strict=True, width=20)


def _capture(chunks: list[str]) -> tuple[CaptureSink, Tokenizer]:
    sink = CaptureSink()
    tokenizer = Tokenizer(sink, STRICT)
    for chunk in chunks:
        tokenizer.append(chunk)
    tokenizer.finish()
    return sink, tokenizer


def _split(text: str, cuts: list[int]) -> list[str]:
    points = sorted({min(cut, len(text)) for cut in cuts})
    pieces, start = [], 0
    for point in points:
        pieces.append(text[start:point])
        start = point
    pieces.append(text[start:])
    return pieces


@given(markdown_text, st.lists(st.integers(min_value=0, max_value=400), max_size=12))
def test_chunking_never_changes_output(text: str, cuts: list[int]):
    """Property: any split of the input yields the same sink calls."""
    whole, _ = _capture([text])
    chunked, _ = _capture(_split(text, cuts))

    assert chunked.events == whole.events


@given(markdown_text, st.integers(min_value=1, max_value=7))
def test_rendered_output_is_chunk_independent(text: str, size: int):
    whole, chunked = io.StringIO(), io.StringIO()
    render_chunks([text], config=STRICT, sink=PlainTextWriter(whole, STRICT))
    render_chunks(split_chunks(text, size), config=STRICT, sink=PlainTextWriter(chunked, STRICT))

    assert chunked.getvalue() == whole.getvalue()


@given(markdown_text)
def test_every_character_is_emitted_once(text: str):
    sink, _ = _capture([text])

    assert sink.text == text


@given(markdown_text)
def test_contexts_are_balanced_after_finish(text: str):
    sink, tokenizer = _capture([text])

    begins = sum(1 for event in sink.events if event[0] == "begin")
    ends = sum(1 for event in sink.events if event[0] == "end")
    assert begins == ends
    assert tokenizer.stack.tags == [ContextTag.TEXT]
    assert sink.events[-1] == ("finish",)


@given(markdown_text)
def test_bracket_depth_is_never_negative(text: str):
    sink = CaptureSink()
    tokenizer = Tokenizer(sink, STRICT)
    for ch in text:
        tokenizer.append(ch)
        assert tokenizer.stack.depth >= 0
    tokenizer.finish()

    assert all(token.depth >= 0 for token in sink.tokens)
    assert all(
        token.depth == 0 for token in sink.tokens if token.kind is not TokenKind.BRACKET
    )


@given(st.text(max_size=200))
def test_arbitrary_text_never_violates_invariants(text: str):
    sink, _ = _capture([text])

    assert sink.text == text
