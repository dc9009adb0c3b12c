"""Chat history stored as JSON Lines."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from pathlib import Path

from .exceptions import HistoryError
from .filesystem import atomic_write_lines, safe_read
from .models import HistoricMessage, Message

logger = logging.getLogger(__name__)


def load_history(path: Path) -> list[HistoricMessage]:
    """Read every history entry from a JSON Lines file.

    Blank lines are ignored; malformed lines are skipped with a warning so a
    single bad entry never loses the rest of the history.

    Args:
        path: History file; a missing file yields an empty history.

    Returns:
        list[HistoricMessage]: Entries in file order (oldest first).

    Raises:
        HistoryError: If the file exists but cannot be read.
    """
    if not path.exists():
        return []

    history: list[HistoricMessage] = []
    try:
        with safe_read(path) as handle:
            for line_number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    history.append(HistoricMessage.from_dict(json.loads(line)))
                except ValueError as error:
                    logger.warning("Skipping history line %d in %s: %s", line_number, path, error)
    except (IOError, UnicodeDecodeError) as error:
        raise HistoryError(f"Could not read history from {path}: {error}") from error
    return history


def save_history(path: Path, history: list[HistoricMessage], max_history: int) -> None:
    """Write the newest `max_history` entries back to disk atomically.

    Raises:
        HistoryError: If the file cannot be written.
    """
    kept = history[-max_history:] if max_history > 0 else []
    lines = [json.dumps(entry.to_dict()) + "\n" for entry in kept]
    try:
        atomic_write_lines(path, lines)
    except IOError as error:
        raise HistoryError(f"Could not write history to {path}: {error}") from error


def recent_messages(
    history: list[HistoricMessage], now: datetime, window: timedelta
) -> list[Message]:
    """Return messages no older than `window`, oldest first.

    Examples:
        recent_messages(history, datetime.now(timezone.utc), timedelta(minutes=15))
    """
    return [entry.message for entry in history if now - entry.timestamp <= window]


def append_exchange(
    history: list[HistoricMessage],
    prompt: Message,
    prompt_time: datetime,
    answer: str,
    answer_time: datetime,
) -> None:
    """Record a prompt and the assistant's answer."""
    history.append(HistoricMessage(timestamp=prompt_time, message=prompt))
    history.append(
        HistoricMessage(timestamp=answer_time, message=Message(role="assistant", content=answer))
    )


def last_answers(history: list[HistoricMessage], count: int) -> list[str]:
    """Return the newest `count` assistant answers, oldest first."""
    if count <= 0:
        return []
    answers = [entry.message.content for entry in history if entry.message.role == "assistant"]
    return answers[-count:]
