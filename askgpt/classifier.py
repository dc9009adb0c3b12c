"""Token classification and the one-token deferred write buffer."""

from __future__ import annotations

from dataclasses import dataclass

from .config import AskConfig
from .context import ContextStack
from .models import ContextTag, ScannerState, Token, TokenKind
from .writer import TokenSink

# Kind of a finished token by the scanner state it ended in. WORD and URL are
# context dependent and handled separately.
STATE_KINDS = {
    ScannerState.WHITESPACE: TokenKind.BODY,
    ScannerState.NEWLINE: TokenKind.BODY,
    ScannerState.NEWLINES: TokenKind.BODY,
    ScannerState.INTEGER: TokenKind.NUMBER,
    ScannerState.DECIMAL: TokenKind.NUMBER,
    ScannerState.LINE_COMMENT: TokenKind.COMMENT,
    ScannerState.DQUOTE: TokenKind.STRING,
    ScannerState.DQUOTE_2: TokenKind.STRING,
    ScannerState.STRING: TokenKind.STRING,
    ScannerState.STRING_ESCAPE: TokenKind.STRING,
    ScannerState.TRIPLE_STRING: TokenKind.STRING,
    ScannerState.TRIPLE_QUOTE_1: TokenKind.STRING,
    ScannerState.TRIPLE_QUOTE_2: TokenKind.STRING,
    ScannerState.SQUOTE: TokenKind.STRING,
    ScannerState.SQUOTE_ESCAPE: TokenKind.STRING,
    ScannerState.SLASH: TokenKind.OPERATOR,
    ScannerState.URL: TokenKind.URL,
    ScannerState.FENCE: TokenKind.MARKDOWN,
}


@dataclass(frozen=True)
class Vocabulary:
    """Keyword and literal value words of one embedded language."""

    keywords: frozenset[str] = frozenset()
    literals: frozenset[str] = frozenset()


def build_vocabularies(config: AskConfig) -> dict[ContextTag, Vocabulary]:
    """Map each language context to its configured vocabulary."""
    return {
        ContextTag.C_FAMILY: Vocabulary(
            frozenset(config.c_family_keywords), frozenset(config.c_family_literals)
        ),
        ContextTag.PYTHON: Vocabulary(
            frozenset(config.python_keywords), frozenset(config.python_literals)
        ),
    }


def classify_word(word: str, tag: ContextTag, vocabularies: dict[ContextTag, Vocabulary]) -> TokenKind:
    """Classify a word token for the context it ended in.

    Words outside code start out as identifiers; the deferred buffer turns
    them into body text unless they end up in a call expression.

    Examples:
        classify_word("def", ContextTag.PYTHON, vocabularies)  # TokenKind.KEYWORD
        classify_word("None", ContextTag.PYTHON, vocabularies)  # TokenKind.LITERAL
    """
    vocabulary = vocabularies.get(tag)
    if vocabulary is not None:
        if word in vocabulary.keywords:
            return TokenKind.KEYWORD
        if word in vocabulary.literals:
            return TokenKind.LITERAL
    return TokenKind.IDENTIFIER


class Classifier:
    """Decide token kinds and defer identifiers by one token.

    Identifiers, and a ``.`` that directly follows one, wait in the pending
    buffer. An opening ``(`` promotes the last buffered identifier to a call
    target; anything else flushes the buffer unchanged. Outside code, a buffer
    flushed without a call is written as body text.

    Args:
        sink: Destination for classified tokens.
        stack: Context stack shared with the tokenizer.
        config: Source of the language vocabularies.
    """

    def __init__(self, sink: TokenSink, stack: ContextStack, config: AskConfig | None = None):
        self.sink = sink
        self.stack = stack
        self.vocabularies = build_vocabularies(config or AskConfig())
        self.pending: list[Token] = []

    def classify(self, text: str, state: ScannerState) -> TokenKind:
        """Map a finished token to its kind in the current context.

        Raises:
            KeyError: If `state` never produces a token of its own.
        """
        if state is ScannerState.WORD:
            return classify_word(text, self.stack.top, self.vocabularies)
        return STATE_KINDS[state]

    def classify_and_emit(self, text: str, state: ScannerState) -> None:
        if text:
            self.write(Token(text, self.classify(text, state)))

    def write(self, token: Token) -> None:
        if token.kind is TokenKind.IDENTIFIER:
            if self.pending and self.pending[-1].kind is TokenKind.IDENTIFIER:
                self.flush()
            self.pending.append(token)
            return

        if token.kind is TokenKind.PUNCTUATION and token.text == ".":
            if self.pending and self.pending[-1].kind is TokenKind.IDENTIFIER:
                self.pending.append(token)
                return

        if token.kind is TokenKind.BRACKET and token.text == "(":
            if self.pending and self.pending[-1].kind is TokenKind.IDENTIFIER:
                last = self.pending[-1]
                self.pending[-1] = Token(last.text, TokenKind.CALL)
                self._drain(call=True)

        self.flush()
        self.sink.write(token, self.stack.style())

    def flush(self) -> None:
        """Write every pending token without promoting a call target."""
        self._drain(call=False)

    def _drain(self, call: bool) -> None:
        if not self.pending:
            return
        pending, self.pending = self.pending, []
        prose = not self.stack.in_code()
        style = self.stack.style()
        for token in pending:
            if prose and not call and token.kind is TokenKind.IDENTIFIER:
                token = Token(token.text, TokenKind.BODY)
            self.sink.write(token, style)
