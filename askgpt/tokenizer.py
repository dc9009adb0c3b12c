"""Incremental Markdown tokenizer.

The tokenizer consumes text one character at a time. Each scanner state has a
step handler that either consumes the character or ends the current token and
asks for the same character to be retried from the idle state. The whole
scanner state is the current state, the partial token text, and the context
stack, so input may be split into chunks anywhere.
"""

from __future__ import annotations

import logging

from .classifier import STATE_KINDS, Classifier
from .config import AskConfig
from .constants import (
    CLOSE_BRACKETS,
    DIGITS,
    FENCE,
    MAX_RETRIES,
    OPEN_BRACKETS,
    OPERATORS,
    PUNCTUATION,
    STAR,
    TICK,
    UNDERSCORE,
    URL_CHARACTERS,
    URL_SCHEMES,
)
from .context import ContextStack
from .exceptions import ScannerInvariantError
from .models import ContextTag, ScannerState, Token, TokenKind
from .writer import TokenSink

logger = logging.getLogger(__name__)

_URL_TRAILERS = ".,;:!?)"


def build_fence_aliases(config: AskConfig) -> dict[str, ContextTag]:
    """Map lowercase fence info strings to language contexts.

    Examples:
        build_fence_aliases(AskConfig())["py"]  # ContextTag.PYTHON
    """
    aliases = {alias.lower(): ContextTag.C_FAMILY for alias in config.c_family_aliases}
    aliases.update({alias.lower(): ContextTag.PYTHON for alias in config.python_aliases})
    return aliases


class Tokenizer:
    """Stream Markdown-ish text into a token sink.

    Args:
        sink: Receives styled tokens and context lifecycle calls.
        config: Vocabularies, fence aliases, and strictness.

    Raises:
        ScannerInvariantError: If a scanner state has no step handler.

    Examples:
        tokenizer = Tokenizer(TerminalWriter())
        tokenizer.append("Hello **wor")
        tokenizer.append("ld**\\n")
        tokenizer.finish()
    """

    def __init__(self, sink: TokenSink, config: AskConfig | None = None):
        self.config = config or AskConfig()
        self.sink = sink
        self.stack = ContextStack()
        self.classifier = Classifier(sink, self.stack, self.config)
        self.fence_aliases = build_fence_aliases(self.config)
        self.state = ScannerState.WHITESPACE
        self.token = ""

        self._steps = {
            ScannerState.UNKNOWN: self._step_unknown,
            ScannerState.WHITESPACE: self._step_whitespace,
            ScannerState.NEWLINE: self._step_newline,
            ScannerState.NEWLINES: self._step_newlines,
            ScannerState.WORD: self._step_word,
            ScannerState.UNDERSCORE: self._step_underscore,
            ScannerState.URL: self._step_url,
            ScannerState.INTEGER: self._step_integer,
            ScannerState.DECIMAL_POINT: self._step_decimal_point,
            ScannerState.DECIMAL: self._step_decimal,
            ScannerState.LINE_COMMENT: self._step_line_comment,
            ScannerState.TICK: self._step_tick,
            ScannerState.TICK_2: self._step_tick_2,
            ScannerState.FENCE: self._step_fence,
            ScannerState.DQUOTE: self._step_dquote,
            ScannerState.DQUOTE_2: self._step_dquote_2,
            ScannerState.STRING: self._step_string,
            ScannerState.STRING_ESCAPE: self._step_string_escape,
            ScannerState.TRIPLE_STRING: self._step_triple_string,
            ScannerState.TRIPLE_QUOTE_1: self._step_triple_quote_1,
            ScannerState.TRIPLE_QUOTE_2: self._step_triple_quote_2,
            ScannerState.SQUOTE: self._step_squote,
            ScannerState.SQUOTE_ESCAPE: self._step_squote_escape,
            ScannerState.SLASH: self._step_slash,
            ScannerState.STAR: self._step_star,
            ScannerState.STAR_2: self._step_star_2,
            ScannerState.FINISHED: self._step_finished,
        }
        missing = [state.name for state in ScannerState if state not in self._steps]
        if missing:
            raise ScannerInvariantError(", ".join(missing), "no step handler")

    @property
    def finished(self) -> bool:
        return self.state is ScannerState.FINISHED

    def snapshot(self) -> tuple[ScannerState, str, int]:
        """Return the scanner state, partial token, and bracket depth."""
        return self.state, self.token, self.stack.depth

    def append(self, chunk: str) -> None:
        """Feed more input; chunks may split tokens anywhere."""
        if self.finished:
            return
        for ch in chunk:
            for _ in range(MAX_RETRIES):
                if self._step(ch):
                    break
            else:
                self._violation("character was never consumed", ch)

    def finish(self) -> None:
        """End the open token, close every context, and finish the sink.

        Calling it again does nothing.
        """
        if self.finished:
            return
        self._end_token()
        self.classifier.flush()
        while len(self.stack) > 1:
            self._pop()
        self.state = ScannerState.FINISHED
        self.sink.finish()

    # Step handlers return True when the character was consumed.

    def _step(self, ch: str) -> bool:
        step = self._steps.get(self.state)
        if step is None:
            self._violation("no transition defined", ch)
            return True
        return step(ch)

    def _step_finished(self, ch: str) -> bool:
        return True

    def _step_unknown(self, ch: str) -> bool:
        in_code = self.stack.in_code()
        if ch == "\n":
            return self._start(ScannerState.NEWLINE, ch)
        if ch.isspace():
            return self._start(ScannerState.WHITESPACE, ch)
        if ch in DIGITS:
            return self._start(ScannerState.INTEGER, ch)
        if ch == UNDERSCORE:
            return self._start(ScannerState.WORD if in_code else ScannerState.UNDERSCORE, ch)
        if ch.isalnum():
            return self._start(ScannerState.WORD, ch)
        if ch in PUNCTUATION or ch in OPEN_BRACKETS or ch in CLOSE_BRACKETS:
            self._emit_single(ch)
            return True
        if ch == TICK:
            return self._start(ScannerState.TICK, ch)
        if ch == '"':
            return self._start(ScannerState.DQUOTE, ch)
        if ch == "'":
            if in_code:
                return self._start(ScannerState.SQUOTE, ch)
            self.classifier.write(Token(ch, TokenKind.BODY))
            return True
        if ch == "/":
            return self._start(ScannerState.SLASH, ch)
        if ch == STAR and not in_code:
            return self._start(ScannerState.STAR, ch)
        if ch == "#" and self.stack.top.is_fenced:
            return self._start(ScannerState.LINE_COMMENT, ch)
        if ch in OPERATORS or ch == "#":
            self.classifier.write(Token(ch, TokenKind.OPERATOR))
            return True
        self.classifier.write(Token(ch, TokenKind.BODY))
        return True

    def _step_whitespace(self, ch: str) -> bool:
        if ch != "\n" and ch.isspace():
            return self._consume(ch)
        return self._retry()

    def _step_newline(self, ch: str) -> bool:
        if ch == "\n":
            self.state = ScannerState.NEWLINES
            return self._consume(ch)
        if ch.isspace():
            return self._consume(ch)
        return self._retry()

    def _step_newlines(self, ch: str) -> bool:
        if ch.isspace():
            return self._consume(ch)
        return self._retry()

    def _step_word(self, ch: str) -> bool:
        in_code = self.stack.in_code()
        if ch.isalnum() or ch == "_":
            if ch == "_" and not in_code and self.stack.contains(ContextTag.UNDERLINE):
                return self._retry()
            return self._consume(ch)
        if ch == ":" and not in_code and self.token.lower() in URL_SCHEMES:
            self.state = ScannerState.URL
            return self._consume(ch)
        return self._retry()

    def _step_underscore(self, ch: str) -> bool:
        if ch == UNDERSCORE:
            self.state, self.token = ScannerState.UNKNOWN, ""
            self._toggle(ContextTag.UNDERLINE, "__")
            return True
        self.state = ScannerState.WORD
        return False

    def _step_url(self, ch: str) -> bool:
        if ch in URL_CHARACTERS:
            return self._consume(ch)
        return self._retry()

    def _step_integer(self, ch: str) -> bool:
        if ch in DIGITS:
            return self._consume(ch)
        if ch == ".":
            self.state = ScannerState.DECIMAL_POINT
            return self._consume(ch)
        return self._retry()

    def _step_decimal_point(self, ch: str) -> bool:
        if ch in DIGITS:
            self.state = ScannerState.DECIMAL
            return self._consume(ch)
        return self._retry()

    def _step_decimal(self, ch: str) -> bool:
        if ch in DIGITS:
            return self._consume(ch)
        return self._retry()

    def _step_line_comment(self, ch: str) -> bool:
        if ch == "\n":
            return self._retry()
        return self._consume(ch)

    def _step_tick(self, ch: str) -> bool:
        if ch == TICK:
            self.state = ScannerState.TICK_2
            return self._consume(ch)
        return self._retry()

    def _step_tick_2(self, ch: str) -> bool:
        if ch != TICK:
            return self._retry()
        if self.stack.in_fence():
            self.state, self.token = ScannerState.UNKNOWN, ""
            self._close_fence()
            return True
        self.state = ScannerState.FENCE
        return self._consume(ch)

    def _step_fence(self, ch: str) -> bool:
        if ch == "\n":
            return self._retry()
        return self._consume(ch)

    def _step_dquote(self, ch: str) -> bool:
        if ch == '"':
            self.state = ScannerState.DQUOTE_2
            return self._consume(ch)
        if self._ends_line_string(ch):
            return self._retry()
        self.state = ScannerState.STRING_ESCAPE if ch == "\\" else ScannerState.STRING
        return self._consume(ch)

    def _step_dquote_2(self, ch: str) -> bool:
        if ch == '"':
            self.state = ScannerState.TRIPLE_STRING
            return self._consume(ch)
        # Two quotes and something else: an empty string.
        return self._retry()

    def _step_string(self, ch: str) -> bool:
        if ch == '"':
            self._consume(ch)
            self._end_token()
            return True
        if self._ends_line_string(ch):
            return self._retry()
        if ch == "\\":
            self.state = ScannerState.STRING_ESCAPE
        return self._consume(ch)

    def _step_string_escape(self, ch: str) -> bool:
        if ch == "\n":
            return self._retry()
        self.state = ScannerState.STRING
        return self._consume(ch)

    def _step_triple_string(self, ch: str) -> bool:
        if ch == '"':
            self.state = ScannerState.TRIPLE_QUOTE_1
        return self._consume(ch)

    def _step_triple_quote_1(self, ch: str) -> bool:
        self.state = ScannerState.TRIPLE_QUOTE_2 if ch == '"' else ScannerState.TRIPLE_STRING
        return self._consume(ch)

    def _step_triple_quote_2(self, ch: str) -> bool:
        if ch == '"':
            self._consume(ch)
            self._end_token()
            return True
        self.state = ScannerState.TRIPLE_STRING
        return self._consume(ch)

    def _step_squote(self, ch: str) -> bool:
        if ch == "'":
            self._consume(ch)
            self._end_token()
            return True
        if self._ends_line_string(ch):
            return self._retry()
        if ch == "\\":
            self.state = ScannerState.SQUOTE_ESCAPE
        return self._consume(ch)

    def _step_squote_escape(self, ch: str) -> bool:
        if ch == "\n":
            return self._retry()
        self.state = ScannerState.SQUOTE
        return self._consume(ch)

    def _step_slash(self, ch: str) -> bool:
        if ch == "/" and self.stack.top.is_fenced:
            self.state = ScannerState.LINE_COMMENT
            return self._consume(ch)
        return self._retry()

    def _step_star(self, ch: str) -> bool:
        if ch == STAR:
            self.state = ScannerState.STAR_2
            return self._consume(ch)
        self._end_token(next_char=ch)
        return False

    def _step_star_2(self, ch: str) -> bool:
        if ch == STAR:
            self._consume(ch)
            self._end_token()
            return True
        return self._retry()

    # Token boundaries

    def _start(self, state: ScannerState, ch: str) -> bool:
        self.state = state
        self.token = ch
        return True

    def _consume(self, ch: str) -> bool:
        self.token += ch
        return True

    def _retry(self) -> bool:
        self._end_token()
        return False

    def _ends_line_string(self, ch: str) -> bool:
        # Single-line strings stop at a newline, and outside fences a backtick
        # still closes the surrounding code span.
        return ch == "\n" or (ch == TICK and not self.stack.top.is_fenced)

    def _end_token(self, next_char: str | None = None) -> None:
        state, text = self.state, self.token
        self.state, self.token = ScannerState.UNKNOWN, ""

        if state in (ScannerState.UNKNOWN, ScannerState.FINISHED):
            return
        if state is ScannerState.NEWLINES:
            self._paragraph_break()
            self.classifier.classify_and_emit(text, state)
        elif state in (ScannerState.WORD, ScannerState.UNDERSCORE):
            self.classifier.classify_and_emit(text, ScannerState.WORD)
        elif state is ScannerState.URL:
            self._end_url(text)
        elif state is ScannerState.DECIMAL_POINT:
            self.classifier.classify_and_emit(text[:-1], ScannerState.INTEGER)
            self._emit_single(".")
        elif state is ScannerState.TICK:
            if self.stack.in_fence():
                self.classifier.write(Token(text, TokenKind.OPERATOR))
            else:
                self._toggle(ContextTag.INLINE_CODE, text)
        elif state is ScannerState.TICK_2:
            kind = TokenKind.OPERATOR if self.stack.in_fence() else TokenKind.MARKDOWN
            self.classifier.write(Token(text, kind))
        elif state is ScannerState.FENCE:
            self._open_fence(text)
        elif state is ScannerState.STAR:
            self._end_star(text, next_char)
        elif state is ScannerState.STAR_2:
            self._end_double_star(text)
        elif state in STATE_KINDS:
            self.classifier.classify_and_emit(text, state)
        else:
            self.state, self.token = state, text
            self._violation("cannot end token")

    def _emit_single(self, ch: str) -> None:
        if ch in OPEN_BRACKETS:
            self.classifier.write(Token(ch, TokenKind.BRACKET, self.stack.open_bracket()))
        elif ch in CLOSE_BRACKETS:
            self.classifier.write(Token(ch, TokenKind.BRACKET, self.stack.close_bracket()))
        else:
            self.classifier.write(Token(ch, TokenKind.PUNCTUATION))

    def _end_url(self, text: str) -> None:
        trailer = ""
        while text and text[-1] in _URL_TRAILERS:
            if text[-1] == ")" and text.count("(") >= text.count(")"):
                break
            trailer = text[-1] + trailer
            text = text[:-1]

        # A bare scheme such as "file:" is just a word followed by a colon.
        if text.lower() in URL_SCHEMES:
            self.classifier.classify_and_emit(text, ScannerState.WORD)
        else:
            self.classifier.write(Token(text, TokenKind.URL))
        for ch in trailer:
            self._emit_single(ch)

    def _end_star(self, text: str, next_char: str | None) -> None:
        if self.stack.contains(ContextTag.ITALIC):
            self._toggle(ContextTag.ITALIC, text)
        elif next_char is not None and not next_char.isspace():
            self._toggle(ContextTag.ITALIC, text)
        else:
            self.classifier.write(Token(text, TokenKind.OPERATOR))

    def _end_double_star(self, text: str) -> None:
        if text == "**":
            self._toggle(ContextTag.BOLD, text)
            return
        if self.stack.contains(ContextTag.BOLD) or self.stack.contains(ContextTag.ITALIC):
            for tag in (ContextTag.ITALIC, ContextTag.BOLD):
                if self.stack.contains(tag):
                    self._close(tag)
            self._marker(text)
        else:
            self._marker(text)
            self._push(ContextTag.BOLD)
            self._push(ContextTag.ITALIC)

    def _paragraph_break(self) -> None:
        if self.stack.in_fence():
            return
        while len(self.stack) > 1:
            self._pop()
        self.stack.reset_depth()

    # Context changes always flush the deferred buffer first.

    def _push(self, tag: ContextTag) -> None:
        self.classifier.flush()
        self.stack.push(tag)
        self.sink.begin_context(tag)

    def _pop(self) -> ContextTag:
        self.classifier.flush()
        tag = self.stack.pop()
        self.sink.end_context()
        return tag

    def _close(self, tag: ContextTag) -> None:
        """Close the innermost `tag`, reopening the contexts nested inside it."""
        reopened = []
        while self.stack.top is not tag:
            reopened.append(self._pop())
        self._pop()
        for inner in reversed(reopened):
            self._push(inner)

    def _marker(self, text: str) -> None:
        self.classifier.write(Token(text, TokenKind.MARKDOWN))

    def _toggle(self, tag: ContextTag, marker: str) -> None:
        if self.stack.contains(tag):
            self._close(tag)
            self._marker(marker)
        else:
            self._marker(marker)
            self._push(tag)

    def _open_fence(self, text: str) -> None:
        info = text[len(FENCE):].strip()
        language = info.split()[0].lower() if info else ""
        tag = self.fence_aliases.get(language, ContextTag.CODE)
        while len(self.stack) > 1:
            self._pop()
        self._marker(text)
        self._push(tag)

    def _close_fence(self) -> None:
        while len(self.stack) > 1:
            if self._pop().is_fenced:
                break
        self._marker(FENCE)

    def _violation(self, detail: str, ch: str = "") -> None:
        if self.config.strict:
            raise ScannerInvariantError(self.state.name, detail)
        logger.warning("Scanner invariant violated in state %s: %s", self.state.name, detail)
        text = self.token + ch
        self.state, self.token = ScannerState.UNKNOWN, ""
        if text:
            self.classifier.write(Token(text, TokenKind.BODY))
