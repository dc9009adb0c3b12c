"""Token sinks: the ANSI terminal writer and its test doubles."""

from __future__ import annotations

import re
import shutil
import sys
from dataclasses import dataclass, field
from typing import TextIO

import click

from .config import AskConfig
from .constants import KIND_COLORS
from .models import ContextTag, Style, Token, TokenKind

_WRAP_SPLIT = re.compile(r"(\n| )")

KIND_STYLES = {
    TokenKind.URL: Style.UNDERLINE,
    TokenKind.COMMENT: Style.ITALIC,
}


class TokenSink:
    """Interface consumed by the tokenizer.

    Subclasses must implement `write`; the lifecycle hooks default to no-ops.
    """

    def write(self, token: Token, style: Style) -> None:
        raise NotImplementedError

    def begin_context(self, tag: ContextTag) -> None:
        pass

    def end_context(self) -> None:
        pass

    def finish(self) -> None:
        pass


def resolve_width(config: AskConfig) -> int:
    """Return the configured width, or the terminal's when unset."""
    if config.width is not None:
        return config.width
    return shutil.get_terminal_size(fallback=(80, 24)).columns


class TerminalWriter(TokenSink):
    """Render tokens to a terminal stream with ANSI styling.

    Code contexts are written verbatim. Prose is word-wrapped greedily: a word
    goes on the current line when ``column + spaces + len(word) <= width``,
    otherwise a line break replaces the separating spaces. Words glued to the
    previous token (no space between) are never broken apart.

    Args:
        stream: Output stream; defaults to standard output.
        config: Rendering configuration.
        color: Passed to `click.echo`; None strips styling when the stream is
            not a terminal.

    Examples:
        writer = TerminalWriter(config=AskConfig(width=72))
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        config: AskConfig | None = None,
        color: bool | None = None,
    ):
        config = config or AskConfig()
        self._stream = stream if stream is not None else sys.stdout
        self._color = color
        self.width = resolve_width(config)
        self.show_markdown = config.show_markdown
        self.bracket_colors = tuple(config.bracket_colors)
        self.column = 0
        self._pending_spaces = 0
        self._modes: list[ContextTag] = [ContextTag.TEXT]
        self._finished = False

    @property
    def verbatim(self) -> bool:
        return self._modes[-1].is_code

    def begin_context(self, tag: ContextTag) -> None:
        self._modes.append(tag)

    def end_context(self) -> None:
        if len(self._modes) > 1:
            self._modes.pop()

    def write(self, token: Token, style: Style) -> None:
        if self._finished:
            return
        if token.kind is TokenKind.MARKDOWN:
            if not self.show_markdown:
                return
            style |= Style.DIM
        if not token.text:
            return

        if self.verbatim:
            self._write_verbatim(token, style)
        else:
            self._write_wrapped(token, style)

    def finish(self) -> None:
        if self._finished:
            return
        self._pending_spaces = 0
        if self.column > 0:
            self._out("\n")
            self.column = 0
        self._finished = True

    def _write_verbatim(self, token: Token, style: Style) -> None:
        # Spaces before a code span are prose, so the span may move to a new line.
        if self._modes[-1] is ContextTag.INLINE_CODE:
            first_line = token.text.split("\n", 1)[0]
            if self._breaks_line(len(first_line)):
                self._pending_spaces = 0
                self._out("\n")
                self.column = 0
        self._flush_spaces()
        self._out(self._paint(token.text, token, style))
        last_newline = token.text.rfind("\n")
        if last_newline >= 0:
            self.column = len(token.text) - last_newline - 1
        else:
            self.column += len(token.text)

    def _write_wrapped(self, token: Token, style: Style) -> None:
        for piece in _WRAP_SPLIT.split(token.text):
            if not piece:
                continue
            if piece == "\n":
                self._pending_spaces = 0
                self._out("\n")
                self.column = 0
            elif piece == " ":
                self._pending_spaces += 1
            else:
                if self._breaks_line(len(piece)):
                    self._pending_spaces = 0
                    self._out("\n")
                    self.column = 0
                self._flush_spaces()
                self._out(self._paint(piece, token, style))
                self.column += len(piece)

    def _breaks_line(self, length: int) -> bool:
        return (
            self._pending_spaces > 0
            and self.column > 0
            and self.column + self._pending_spaces + length > self.width
        )

    def _flush_spaces(self) -> None:
        if self._pending_spaces:
            self._out(" " * self._pending_spaces)
            self.column += self._pending_spaces
            self._pending_spaces = 0

    def _paint(self, text: str, token: Token, style: Style) -> str:
        if token.kind is TokenKind.BRACKET:
            fg = self.bracket_colors[token.depth % len(self.bracket_colors)]
        else:
            fg = KIND_COLORS[token.kind]
        style |= KIND_STYLES.get(token.kind, Style.NONE)

        if fg is None and not style:
            return text
        return click.style(
            text,
            fg=fg,
            bold=_attribute(style, Style.BOLD),
            dim=_attribute(style, Style.DIM),
            italic=_attribute(style, Style.ITALIC),
            underline=_attribute(style, Style.UNDERLINE),
        )

    def _out(self, text: str) -> None:
        click.echo(text, file=self._stream, nl=False, color=self._color)


class PlainTextWriter(TerminalWriter):
    """Terminal writer that never emits escape sequences."""

    def __init__(self, stream: TextIO | None = None, config: AskConfig | None = None):
        super().__init__(stream=stream, config=config, color=False)

    def _paint(self, text: str, token: Token, style: Style) -> str:
        return text


def _attribute(style: Style, flag: Style) -> bool | None:
    # click emits a "turn off" code for False, so absent attributes must be None.
    return True if flag in style else None


@dataclass
class CaptureSink(TokenSink):
    """Record every sink call for inspection in tests.

    Attributes:
        events: Calls in order, as ``("write", token, style)``,
            ``("begin", tag)``, ``("end",)``, or ``("finish",)`` tuples.
    """

    events: list[tuple] = field(default_factory=list)

    def write(self, token: Token, style: Style) -> None:
        self.events.append(("write", token, style))

    def begin_context(self, tag: ContextTag) -> None:
        self.events.append(("begin", tag))

    def end_context(self) -> None:
        self.events.append(("end",))

    def finish(self) -> None:
        self.events.append(("finish",))

    @property
    def tokens(self) -> list[Token]:
        return [event[1] for event in self.events if event[0] == "write"]

    @property
    def text(self) -> str:
        return "".join(token.text for token in self.tokens)

    def runs(self) -> list[Token]:
        """Merge adjacent writes that share kind, depth, and style."""
        merged: list[tuple[Token, Style]] = []
        for event in self.events:
            if event[0] != "write":
                continue
            token, style = event[1], event[2]
            if merged:
                previous, previous_style = merged[-1]
                if (
                    previous.kind is token.kind
                    and previous.depth == token.depth
                    and previous_style == style
                ):
                    merged[-1] = (
                        Token(previous.text + token.text, token.kind, token.depth),
                        style,
                    )
                    continue
            merged.append((token, style))
        return [token for token, _ in merged]

    def kinds(self) -> list[tuple[str, TokenKind]]:
        return [(token.text, token.kind) for token in self.tokens]
