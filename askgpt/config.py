"""Configuration loading and management."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
import tomllib

C_FAMILY_KEYWORDS = (
    "abstract", "as", "async", "auto", "await", "base", "bool", "break", "byte", "case",
    "catch", "char", "class", "const", "continue", "decimal", "default", "delegate", "do",
    "double", "else", "enum", "event", "explicit", "export", "extends", "extern", "final",
    "finally", "fixed", "float", "fn", "for", "foreach", "func", "function", "get", "goto",
    "if", "implements", "implicit", "import", "in", "int", "interface", "internal", "is",
    "let", "lock", "long", "namespace", "new", "object", "operator", "out", "override",
    "package", "params", "private", "protected", "public", "readonly", "record", "ref",
    "return", "sealed", "set", "short", "sizeof", "static", "string", "struct", "switch",
    "this", "throw", "throws", "try", "typedef", "typeof", "uint", "ulong", "unsafe",
    "unsigned", "using", "var", "virtual", "void", "volatile", "when", "where", "while",
    "yield",
)
C_FAMILY_LITERALS = ("true", "false", "null", "nullptr", "undefined", "NULL")
C_FAMILY_ALIASES = (
    "c", "h", "cpp", "c++", "cc", "hpp", "cs", "csharp", "c#", "java", "js", "javascript",
    "jsx", "ts", "typescript", "tsx", "go", "golang", "rust", "rs", "swift", "kotlin", "kt",
    "dart", "scala",
)

PYTHON_KEYWORDS = (
    "and", "as", "assert", "async", "await", "break", "case", "class", "continue", "def",
    "del", "elif", "else", "except", "finally", "for", "from", "global", "if", "import",
    "in", "is", "lambda", "match", "nonlocal", "not", "or", "pass", "raise", "return",
    "try", "while", "with", "yield",
)
PYTHON_LITERALS = ("True", "False", "None")
PYTHON_ALIASES = ("python", "py", "python3", "py3", "sh", "bash", "shell", "zsh")

# Foreground color names understood by `click.style`.
COLOR_NAMES = frozenset(
    {
        "black", "red", "green", "yellow", "blue", "magenta", "cyan", "white",
        "bright_black", "bright_red", "bright_green", "bright_yellow", "bright_blue",
        "bright_magenta", "bright_cyan", "bright_white",
    }
)


@dataclass
class AskConfig:
    """Configuration for rendering and for talking to the chat API.

    Attributes:
        width: Terminal width used for word wrapping; None detects the terminal.
        show_markdown: Whether Markdown markers (ticks, asterisks) are printed dim
            or suppressed.
        bracket_colors: Palette cycled by bracket nesting depth.
        strict: Raise on scanner invariant violations instead of degrading.
        c_family_aliases: Fence info strings that select the C-family vocabulary.
        c_family_keywords: Keywords highlighted in C-family code.
        c_family_literals: Literal value words highlighted in C-family code.
        python_aliases: Fence info strings that select the Python vocabulary.
        python_keywords: Keywords highlighted in Python and script code.
        python_literals: Literal value words highlighted in Python and script code.
        model: Chat model identifier.
        api_url: Chat completions endpoint.
        request_timeout: HTTP timeout in seconds.
        history_window_minutes: Age limit for history sent along with a prompt.
        max_history: Number of history entries kept on disk.

    Examples:
        AskConfig(width=100, show_markdown=True)
    """

    # Rendering
    width: int | None = None
    show_markdown: bool = False
    bracket_colors: tuple[str, ...] = ("bright_yellow", "bright_magenta", "bright_cyan")
    strict: bool = False

    # Embedded languages
    c_family_aliases: tuple[str, ...] = C_FAMILY_ALIASES
    c_family_keywords: tuple[str, ...] = C_FAMILY_KEYWORDS
    c_family_literals: tuple[str, ...] = C_FAMILY_LITERALS
    python_aliases: tuple[str, ...] = PYTHON_ALIASES
    python_keywords: tuple[str, ...] = PYTHON_KEYWORDS
    python_literals: tuple[str, ...] = PYTHON_LITERALS

    # Chat
    model: str = "gpt-3.5-turbo"
    api_url: str = "https://api.openai.com/v1/chat/completions"
    request_timeout: float = 60.0
    history_window_minutes: int = 15
    max_history: int = 1000


class ConfigError(ValueError):
    """Exception raised when configuration values are invalid.

    Examples:
        raise ConfigError("`width` must be a positive integer")
    """


_TUPLE_FIELDS = (
    "bracket_colors",
    "c_family_aliases",
    "c_family_keywords",
    "c_family_literals",
    "python_aliases",
    "python_keywords",
    "python_literals",
)


def load_config(search_path: Path) -> AskConfig:
    """Load configuration from the nearest config file.

    Walks parent directories from `search_path` to the filesystem root, reading
    the ``[tool.askgpt]`` table from `pyproject.toml` and the ``[askgpt]`` or
    ``[tool.askgpt]`` table from `.askgpt.toml` when present. Returns default
    values when no configuration is found. TOML files that cannot be read or
    decoded are skipped.

    Args:
        search_path: Directory used as the starting point for configuration lookup.

    Returns:
        AskConfig: Loaded configuration with defaults applied when necessary.

    Raises:
        ConfigError: If the table is present but not a mapping or contains
            unsupported keys.

    Examples:
        load_config(Path.cwd())
    """
    current = search_path.resolve()

    while True:
        pyproject_config = _load_from_file(
            current / "pyproject.toml", table_paths=[("tool", "askgpt")]
        )
        if pyproject_config is not None:
            return normalize_config(pyproject_config)

        dotfile_config = _load_from_file(
            current / ".askgpt.toml",
            table_paths=[("askgpt",), ("tool", "askgpt")],
        )
        if dotfile_config is not None:
            return normalize_config(dotfile_config)

        parent = current.parent
        if parent == current:
            break
        current = parent

    return AskConfig()


_MISSING = object()


def _load_from_file(config_file: Path, table_paths: list[tuple[str, ...]]) -> AskConfig | None:
    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as stream:
            data = tomllib.load(stream)
    except (OSError, tomllib.TOMLDecodeError):
        return None

    for table_path in table_paths:
        raw_config = _extract_table(data, table_path)
        if raw_config is _MISSING:
            continue
        return _build_config_from_raw(raw_config, config_file, table_path)

    return None


def _extract_table(data: object, table_path: tuple[str, ...]) -> object:
    current = data
    for key in table_path:
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current


def _build_config_from_raw(
    raw_config: object, config_file: Path, table_path: tuple[str, ...]
) -> AskConfig:
    table_display = ".".join(table_path)

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}")

    if not raw_config:
        return AskConfig()

    # TOML keys may be written with dashes.
    settings = {key.replace("-", "_"): value for key, value in raw_config.items()}
    try:
        return AskConfig(**settings)
    except TypeError as error:
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}") from error


def normalize_config(config: AskConfig) -> AskConfig:
    """Coerce sequence settings to tuples and fence aliases to lowercase."""
    changes: dict[str, object] = {}
    for name in _TUPLE_FIELDS:
        value = getattr(config, name)
        if isinstance(value, (list, tuple)):
            changes[name] = tuple(value)

    for name in ("c_family_aliases", "python_aliases"):
        value = changes.get(name, getattr(config, name))
        if isinstance(value, tuple) and all(isinstance(alias, str) for alias in value):
            changes[name] = tuple(alias.lower() for alias in value)

    return replace(config, **changes)


def validate_config(config: AskConfig) -> None:
    """Validate an `AskConfig` instance.

    Args:
        config: Configuration to validate.

    Returns:
        None.

    Raises:
        ConfigError: If the width or numeric limits are not positive, the bracket
            palette is empty or names an unknown color, a vocabulary is not a
            list of strings, or a flag is not a boolean.

    Examples:
        validate_config(AskConfig(width=80))
    """
    config = normalize_config(config)

    _ensure_integers(
        {
            "history_window_minutes": config.history_window_minutes,
            "max_history": config.max_history,
            **({"width": config.width} if config.width is not None else {}),
        }
    )
    _ensure_positive(
        {
            "history_window_minutes": config.history_window_minutes,
            "max_history": config.max_history,
            **({"width": config.width} if config.width is not None else {}),
        }
    )

    if isinstance(config.request_timeout, bool) or not isinstance(
        config.request_timeout, (int, float)
    ):
        raise ConfigError("`request_timeout` must be a number")
    if config.request_timeout <= 0:
        raise ConfigError("`request_timeout` must be positive")

    for name in ("show_markdown", "strict"):
        if not isinstance(getattr(config, name), bool):
            raise ConfigError(f"`{name}` must be a boolean")

    for name in _TUPLE_FIELDS:
        value = getattr(config, name)
        if not isinstance(value, tuple) or not all(isinstance(item, str) for item in value):
            raise ConfigError(f"`{name}` must be a list of strings")

    if not config.bracket_colors:
        raise ConfigError("`bracket_colors` must not be empty")
    unknown = [color for color in config.bracket_colors if color not in COLOR_NAMES]
    if unknown:
        raise ConfigError(f"`bracket_colors` contains unknown colors: {', '.join(unknown)}")

    if not config.model:
        raise ConfigError("`model` must not be empty")
    if not config.api_url:
        raise ConfigError("`api_url` must not be empty")


def apply_overrides(config: AskConfig, **overrides: object) -> AskConfig:
    """Apply override values to an `AskConfig`.

    Args:
        config: Base configuration to update.
        overrides: Override values keyed by configuration field name; values set to
            None are ignored.

    Returns:
        AskConfig: New configuration with the provided overrides applied. The
        original configuration is returned when no changes are supplied.

    Raises:
        TypeError: If an override name is not defined on `AskConfig`.

    Examples:
        updated = apply_overrides(config, width=72, show_markdown=True)
    """
    known = {field.name for field in fields(AskConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise TypeError(f"Unknown configuration overrides: {', '.join(sorted(unknown))}")

    changes = {key: value for key, value in overrides.items() if value is not None}
    if not changes:
        return config
    return replace(config, **changes)


def build_config(search_path: Path, **overrides: object) -> AskConfig:
    """Load, override, and validate configuration.

    Args:
        search_path: Directory where configuration files are resolved.
        overrides: Override values keyed by configuration attributes; None values
            are ignored.

    Returns:
        AskConfig: Validated configuration ready for rendering.

    Raises:
        ConfigError: If configuration loading or validation fails.

    Examples:
        config = build_config(Path.cwd(), width=100)
    """
    config = load_config(search_path)
    config = apply_overrides(config, **overrides)
    config = normalize_config(config)
    validate_config(config)
    return config


def _ensure_positive(values: dict[str, int]) -> None:
    for key, value in values.items():
        if value <= 0:
            raise ConfigError(f"`{key}` must be a positive integer")


def _ensure_integers(values: dict[str, object]) -> None:
    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{key}` must be an integer")
