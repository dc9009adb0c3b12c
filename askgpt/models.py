"""Data models for askgpt."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, Flag, auto


class ScannerState(Enum):
    """Scanner states describing where the tokenizer is mid-token.

    Attributes:
        UNKNOWN: Idle; the next character starts a new token.
        WHITESPACE: Run of spaces or tabs.
        NEWLINE: A single newline, possibly followed by indentation.
        NEWLINES: Two or more newlines (a paragraph break).
        WORD: Letters, digits, and underscores.
        UNDERSCORE: A leading underscore that may open an underline marker.
        URL: Permissive URL characters after a known scheme.
        INTEGER: Digits.
        DECIMAL_POINT: Digits followed by a single ``.`` not yet confirmed.
        DECIMAL: Digits, a point, and more digits.
        LINE_COMMENT: Comment text up to the end of the line.
        TICK: One backtick.
        TICK_2: Two backticks.
        FENCE: Three backticks plus the info string of an opening fence.
        DQUOTE: One double quote, not yet known to be single or triple.
        DQUOTE_2: Two double quotes.
        STRING: Inside a single-line double-quoted string.
        STRING_ESCAPE: After a backslash inside a double-quoted string.
        TRIPLE_STRING: Inside a triple-quoted string.
        TRIPLE_QUOTE_1: Inside a triple-quoted string after one quote.
        TRIPLE_QUOTE_2: Inside a triple-quoted string after two quotes.
        SQUOTE: Inside a single-quoted string.
        SQUOTE_ESCAPE: After a backslash inside a single-quoted string.
        SLASH: One slash that may start a line comment.
        STAR: One asterisk that may be an emphasis marker.
        STAR_2: Two asterisks.
        FINISHED: Absorbing state after ``finish``.
    """

    UNKNOWN = auto()
    WHITESPACE = auto()
    NEWLINE = auto()
    NEWLINES = auto()
    WORD = auto()
    UNDERSCORE = auto()
    URL = auto()
    INTEGER = auto()
    DECIMAL_POINT = auto()
    DECIMAL = auto()
    LINE_COMMENT = auto()
    TICK = auto()
    TICK_2 = auto()
    FENCE = auto()
    DQUOTE = auto()
    DQUOTE_2 = auto()
    STRING = auto()
    STRING_ESCAPE = auto()
    TRIPLE_STRING = auto()
    TRIPLE_QUOTE_1 = auto()
    TRIPLE_QUOTE_2 = auto()
    SQUOTE = auto()
    SQUOTE_ESCAPE = auto()
    SLASH = auto()
    STAR = auto()
    STAR_2 = auto()
    FINISHED = auto()


class ContextTag(Enum):
    """Nesting contexts that change how tokens are classified and rendered.

    Attributes:
        TEXT: Root prose context; always at the bottom of the stack.
        BOLD: Inside ``**`` emphasis.
        ITALIC: Inside ``*`` emphasis.
        UNDERLINE: Inside ``__`` emphasis.
        INLINE_CODE: Inside a backtick code span.
        CODE: Inside a fenced block in an unrecognized language.
        C_FAMILY: Inside a fenced block in a C-like language.
        PYTHON: Inside a fenced block in Python or a shell-like script language.
    """

    TEXT = auto()
    BOLD = auto()
    ITALIC = auto()
    UNDERLINE = auto()
    INLINE_CODE = auto()
    CODE = auto()
    C_FAMILY = auto()
    PYTHON = auto()

    @property
    def is_code(self) -> bool:
        return self in _CODE_TAGS

    @property
    def is_fenced(self) -> bool:
        return self in _FENCED_TAGS

    @property
    def is_emphasis(self) -> bool:
        return self in _EMPHASIS_TAGS


_FENCED_TAGS = frozenset({ContextTag.CODE, ContextTag.C_FAMILY, ContextTag.PYTHON})
_CODE_TAGS = _FENCED_TAGS | {ContextTag.INLINE_CODE}
_EMPHASIS_TAGS = frozenset({ContextTag.BOLD, ContextTag.ITALIC, ContextTag.UNDERLINE})


@dataclass(frozen=True)
class Context:
    """A single entry on the context stack.

    Attributes:
        tag: Which context is active.
        saved_depth: Bracket depth at the moment the context was pushed.
    """

    tag: ContextTag
    saved_depth: int = 0


class TokenKind(Enum):
    """Presentation kinds produced by the classifier."""

    BODY = auto()
    MARKDOWN = auto()
    NUMBER = auto()
    STRING = auto()
    IDENTIFIER = auto()
    KEYWORD = auto()
    LITERAL = auto()
    CALL = auto()
    PUNCTUATION = auto()
    OPERATOR = auto()
    COMMENT = auto()
    URL = auto()
    BRACKET = auto()


@dataclass(frozen=True)
class Token:
    """A completed token ready for rendering.

    Attributes:
        text: Raw characters of the token.
        kind: Presentation kind.
        depth: Bracket nesting depth; only meaningful for ``TokenKind.BRACKET``.
    """

    text: str
    kind: TokenKind
    depth: int = 0


class Style(Flag):
    """Text attributes derived from the active emphasis contexts."""

    NONE = 0
    BOLD = auto()
    DIM = auto()
    ITALIC = auto()
    UNDERLINE = auto()


@dataclass
class Message:
    """A chat message as exchanged with the completion API.

    Attributes:
        role: ``"system"``, ``"user"``, or ``"assistant"``.
        content: Message text.
    """

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: object) -> Message:
        """Build a message from decoded JSON.

        Raises:
            ValueError: If `data` is not an object with string role and content.
        """
        if not isinstance(data, dict):
            raise ValueError("message must be a JSON object")
        role = data.get("role")
        content = data.get("content", "")
        if not isinstance(role, str) or not isinstance(content, str):
            raise ValueError("message role and content must be strings")
        return cls(role=role, content=content)


@dataclass
class HistoricMessage:
    """A message recorded in the chat history.

    Attributes:
        timestamp: When the message was sent or received (timezone aware).
        message: The message itself.
    """

    timestamp: datetime
    message: Message

    def to_dict(self) -> dict[str, object]:
        return {"timestamp": self.timestamp.isoformat(), "message": self.message.to_dict()}

    @classmethod
    def from_dict(cls, data: object) -> HistoricMessage:
        """Build a history entry from decoded JSON.

        Raises:
            ValueError: If the timestamp or message is missing or malformed.
        """
        if not isinstance(data, dict) or not isinstance(data.get("timestamp"), str):
            raise ValueError("history entry must have a string timestamp")
        timestamp = datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(timestamp=timestamp, message=Message.from_dict(data.get("message")))
