"""Filesystem helpers for askgpt."""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import TextIO

from .constants import CONFIG_DIR_NAME
from .exceptions import ApiKeyMissingError
from .models import Message

CONFIG_DIR_ENV_VAR = "ASKGPT_CONFIG_DIR"
WIDTH_ENV_VAR = "ASKGPT_WIDTH"


def get_config_dir() -> Path:
    """Resolve the directory holding the API key, prompt, and history.

    Returns:
        Path: ``$ASKGPT_CONFIG_DIR`` when set, otherwise ``~/.config/askgpt``.

    Examples:
        os.environ["ASKGPT_CONFIG_DIR"] = "/tmp/askgpt"
        get_config_dir()  # Path("/tmp/askgpt")
    """
    env_value = os.environ.get(CONFIG_DIR_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()
    return Path.home() / ".config" / CONFIG_DIR_NAME


def get_width_override(default: int | None = None) -> int | None:
    """Resolve the rendering width from the environment.

    Args:
        default: Fallback value when the environment variable is unset.

    Returns:
        int | None: Width in characters, or `default`.

    Raises:
        ValueError: If the environment value is not a positive integer.

    Examples:
        os.environ["ASKGPT_WIDTH"] = "100"
        get_width_override()  # 100
    """
    env_value = os.environ.get(WIDTH_ENV_VAR)
    if env_value is None:
        return default

    try:
        width = int(env_value)
    except ValueError as error:
        error_message = f"Invalid value for {WIDTH_ENV_VAR}: {env_value} (expected positive integer)"
        raise ValueError(error_message) from error

    if width <= 0:
        error_message = f"{WIDTH_ENV_VAR} must be a positive integer, got {width}."
        raise ValueError(error_message)

    return width


def safe_read(filepath: Path) -> TextIO:
    """Open a file for reading with consistent error handling.

    Args:
        filepath: Path to the file.

    Returns:
        TextIO: File handle opened for reading in UTF-8.

    Raises:
        IOError: If the path is missing, inaccessible, or not a file.

    Examples:
        with safe_read(Path("answer.md")) as handle:
            text = handle.read()
    """
    try:
        return open(filepath, "r", encoding="UTF-8")
    except (
        FileNotFoundError,
        PermissionError,
        IsADirectoryError,
        NotADirectoryError,
    ) as error:
        error_message = f"Error accessing {filepath}: {error}"
        raise IOError(error_message) from error


def read_api_key(path: Path) -> str:
    """Read the API key, stripping surrounding whitespace.

    Raises:
        ApiKeyMissingError: If the file does not exist or is empty.
        IOError: If the file exists but cannot be read.
    """
    if not path.exists():
        raise ApiKeyMissingError(path)
    with safe_read(path) as handle:
        api_key = handle.read().strip()
    if not api_key:
        raise ApiKeyMissingError(path)
    return api_key


def load_initial_prompt(path: Path) -> list[Message]:
    """Load the messages used to prime every conversation.

    The file holds a JSON array of ``{"role": ..., "content": ...}`` objects.
    A missing file means no priming messages.

    Raises:
        IOError: If the file cannot be read.
        ValueError: If the file is not a JSON array of messages.
    """
    if not path.exists():
        return []
    with safe_read(path) as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as error:
            raise ValueError(f"Invalid JSON in {path}: {error}") from error
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of messages")
    return [Message.from_dict(item) for item in data]


def atomic_write_lines(path: Path, lines: Iterable[str]) -> None:
    """Replace `path` with `lines` through a synced temporary file.

    Args:
        path: Destination file; its parent directory is created when missing.
        lines: Lines to write, each including its newline.

    Raises:
        IOError: If the file cannot be written or replaced.

    Examples:
        atomic_write_lines(Path("history.jsonl"), ['{"a": 1}\\n'])
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", encoding="UTF-8", delete=False, dir=path.parent
        ) as tmp_file:
            temp_path = Path(tmp_file.name)
            tmp_file.writelines(lines)

            # Ensure the temporary file is flushed and synced before the swap
            tmp_file.flush()
            os.fsync(tmp_file.fileno())

        # Replace the original file with the temporary file (atomic operation)
        os.replace(temp_path, path)
    except OSError as error:
        raise IOError(f"Error writing {path}: {error}") from error
    finally:
        if temp_path is not None:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                pass
