"""
askgpt: stream chat answers to the terminal with Markdown-aware coloring.

This package can be used both as a CLI tool and as a library.

CLI Usage:
    askgpt ask How do I read a file in C#?
    askgpt render README.md

Library Usage:
    from askgpt import AskConfig, TerminalWriter, Tokenizer

    tokenizer = Tokenizer(TerminalWriter(config=AskConfig(width=80)))
    for chunk in ["Call `print(", "x)` here\\n"]:
        tokenizer.append(chunk)
    tokenizer.finish()
"""

from .config import AskConfig, ConfigError
from .exceptions import (
    ApiKeyMissingError,
    AskGptError,
    ChatRequestError,
    HistoryError,
    ScannerInvariantError,
)
from .models import ContextTag, ScannerState, Style, Token, TokenKind
from .render import render_chunks, render_markdown
from .tokenizer import Tokenizer
from .writer import CaptureSink, PlainTextWriter, TerminalWriter, TokenSink

__version__ = "0.1.0"

__all__ = [
    # Core functionality
    "Tokenizer",
    "render_chunks",
    "render_markdown",
    # Sinks
    "TokenSink",
    "TerminalWriter",
    "PlainTextWriter",
    "CaptureSink",
    # Data models
    "AskConfig",
    "ContextTag",
    "ScannerState",
    "Style",
    "Token",
    "TokenKind",
    # Exceptions
    "ApiKeyMissingError",
    "AskGptError",
    "ChatRequestError",
    "ConfigError",
    "HistoryError",
    "ScannerInvariantError",
    # Version
    "__version__",
]
