"""Configuration for Determinant.

Loads server, UI and logging settings from
``~/.config/determinant/config.json``. All fields are optional: sensible
defaults are provided for zero-config operation, and command-line options
override whatever the file says.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_CONFIG_PATH = Path("~/.config/determinant/config.json")
DEFAULT_LOG_FILE = "~/.cache/determinant/determinant.log"
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass
class ServerConfig:
    """Homeserver connection settings."""

    address: str = ""
    user: str = ""
    timeout: float = 30.0


@dataclass
class UIConfig:
    """Terminal UI settings."""

    tick_interval: float = 0.25


@dataclass
class LoggingConfig:
    """Where log records go. The TUI owns the terminal, so always a file."""

    file: str = DEFAULT_LOG_FILE
    level: str = "INFO"

    @property
    def path(self) -> Path:
        return Path(self.file).expanduser()


@dataclass
class DeterminantConfig:
    """Top-level configuration, loaded from config.json."""

    server: ServerConfig = field(default_factory=ServerConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def default_config() -> DeterminantConfig:
    """Return the built-in default configuration."""
    return DeterminantConfig()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

VALID_SERVER_KEYS = {"address", "user", "timeout"}
VALID_UI_KEYS = {"tick_interval"}
VALID_LOGGING_KEYS = {"file", "level"}
VALID_TOP_KEYS = {"server", "ui", "logging"}


def check_unknown_keys(data: dict, valid: set[str], context: str) -> None:
    """Raise ValueError if data contains keys not in valid set."""
    unknown = set(data) - valid
    if unknown:
        raise ValueError(f"Unknown keys in {context}: {', '.join(sorted(unknown))}")


def check_positive_number(value: object, context: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError(f"{context} must be a number, got {type(value).__name__}")
    if value <= 0:
        raise ValueError(f"{context} must be positive, got {value}")
    return float(value)


def check_string(value: object, context: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{context} must be a string, got {type(value).__name__}")
    return value


def validate_server(data: dict) -> ServerConfig:
    """Validate and construct a ServerConfig from a raw dict."""
    check_unknown_keys(data, VALID_SERVER_KEYS, "server")
    address = check_string(data.get("address", ""), "server.address")
    if address and not address.startswith(("http://", "https://")):
        raise ValueError(f"server.address must start with http:// or https://, got {address!r}")
    return ServerConfig(
        address=address.rstrip("/"),
        user=check_string(data.get("user", ""), "server.user"),
        timeout=check_positive_number(data.get("timeout", 30.0), "server.timeout"),
    )


def validate_ui(data: dict) -> UIConfig:
    """Validate and construct a UIConfig from a raw dict."""
    check_unknown_keys(data, VALID_UI_KEYS, "ui")
    return UIConfig(tick_interval=check_positive_number(data.get("tick_interval", 0.25), "ui.tick_interval"))


def validate_logging(data: dict) -> LoggingConfig:
    """Validate and construct a LoggingConfig from a raw dict."""
    check_unknown_keys(data, VALID_LOGGING_KEYS, "logging")
    level = check_string(data.get("level", "INFO"), "logging.level").upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {', '.join(sorted(LOG_LEVELS))}, got {level!r}")
    return LoggingConfig(file=check_string(data.get("file", DEFAULT_LOG_FILE), "logging.file"), level=level)


def validate_config(data: dict) -> DeterminantConfig:
    """Validate a raw dict and construct a DeterminantConfig.

    Raises:
        ValueError: On unknown keys, type errors or out-of-range values.
    """
    check_unknown_keys(data, VALID_TOP_KEYS, "config")

    sections = {}
    for key in VALID_TOP_KEYS:
        section = data.get(key, {})
        if not isinstance(section, dict):
            raise ValueError(f"{key} must be an object, got {type(section).__name__}")
        sections[key] = section

    return DeterminantConfig(
        server=validate_server(sections["server"]),
        ui=validate_ui(sections["ui"]),
        logging=validate_logging(sections["logging"]),
    )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_config(path: Path | None = None) -> DeterminantConfig:
    """Load configuration from *path*, falling back to defaults.

    Returns default_config() if the file doesn't exist or is empty.

    Raises:
        ValueError: If the file exists but contains invalid JSON or fails
            validation.
    """
    config_path = (path or DEFAULT_CONFIG_PATH).expanduser()
    if not config_path.exists():
        return default_config()

    text = config_path.read_text(encoding="utf-8").strip()
    if not text or text == "{}":
        return default_config()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Config must be a JSON object, got {type(data).__name__}")

    return validate_config(data)
