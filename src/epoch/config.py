"""Configuration management for Epoch."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from epoch.core.undo import DEFAULT_MAX_DEPTH

logger = logging.getLogger(__name__)

EPOCH_HOME = Path(os.environ.get("EPOCH_HOME", Path.home() / ".epoch"))
CONFIG_FILE = EPOCH_HOME / "epoch.conf"
DATA_FILE = EPOCH_HOME / "data.json"

THEMES = ("dark", "light", "claude-code")


@dataclass
class Config:
    """Epoch configuration."""

    data_file: str = str(DATA_FILE)
    undo_depth: int = DEFAULT_MAX_DEPTH
    theme: str = "dark"
    check_updates: bool = True
    log_file: str = ""


def _parse_bool(value: str) -> bool | None:
    lowered = value.lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    return None


def _unquote(value: str) -> str:
    # Handle quoted values with inline comments: "value" # comment
    if value[:1] in ('"', "'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from epoch.conf. Missing file means defaults."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "data_file":
                config.data_file = str(Path(value).expanduser())
            case "undo_depth":
                try:
                    depth = int(value)
                except ValueError:
                    depth = 0
                if depth >= 1:
                    config.undo_depth = depth
                else:
                    logger.warning(f"Invalid UNDO_DEPTH {value!r}, using {config.undo_depth}")
            case "theme":
                if value in THEMES:
                    config.theme = value
                else:
                    logger.warning(f"Unknown THEME {value!r}, using {config.theme}")
            case "check_updates":
                parsed = _parse_bool(value)
                if parsed is None:
                    logger.warning(f"Invalid CHECK_UPDATES {value!r}, using {config.check_updates}")
                else:
                    config.check_updates = parsed
            case "log_file":
                config.log_file = str(Path(value).expanduser()) if value else ""
            case _:
                logger.warning(f"Unknown config key: {key}")

    return config
