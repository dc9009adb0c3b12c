"""Constants used across the askgpt package."""

from __future__ import annotations

from .models import TokenKind

# Character classes
DIGITS = frozenset("0123456789")
PUNCTUATION = frozenset(".,;:!?")
OPEN_BRACKETS = frozenset("([{")
CLOSE_BRACKETS = frozenset(")]}")
OPERATORS = frozenset("=+-*/%&|^~<>")
URL_SCHEMES = frozenset({"http", "https", "ftp", "file"})
URL_CHARACTERS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-._~:/?#[]@!$&'()*+,;=%"
)

# Markdown markers
TICK = "`"
FENCE = "```"
STAR = "*"
UNDERSCORE = "_"

# The tokenizer never needs more than this many retries for one character.
MAX_RETRIES = 8

# Foreground colors per token kind; brackets use the configured palette instead.
KIND_COLORS: dict[TokenKind, str | None] = {
    TokenKind.BODY: None,
    TokenKind.MARKDOWN: "bright_black",
    TokenKind.NUMBER: "yellow",
    TokenKind.STRING: "green",
    TokenKind.IDENTIFIER: "cyan",
    TokenKind.KEYWORD: "blue",
    TokenKind.LITERAL: "magenta",
    TokenKind.CALL: "bright_yellow",
    TokenKind.PUNCTUATION: "bright_black",
    TokenKind.OPERATOR: "white",
    TokenKind.COMMENT: "bright_black",
    TokenKind.URL: "bright_blue",
    TokenKind.BRACKET: None,
}

# Config directory layout
CONFIG_DIR_NAME = "askgpt"
API_KEY_FILENAME = "apikey.txt"
INITIAL_PROMPT_FILENAME = "prompt.json"
HISTORY_FILENAME = "history.jsonl"
