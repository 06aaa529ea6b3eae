"""Configuration management for Tally."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .adapters.file_store import is_valid_key
from .store import DEFAULT_STORAGE_KEY

logger = logging.getLogger(__name__)

TALLY_HOME = Path(os.environ.get("TALLY_HOME", Path.home() / "tally"))
CONFIG_FILE = TALLY_HOME / "config" / "tally.conf"
DATA_DIR = TALLY_HOME / "data"


@dataclass
class Config:
    """Tally configuration."""

    data_dir: Path = field(default_factory=lambda: DATA_DIR)
    storage_key: str = DEFAULT_STORAGE_KEY
    timezone: str = "UTC"


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from an unquoted value."""
    for quote in ('"', "'"):
        if value.startswith(quote):
            end_quote = value.find(quote, 1)
            return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(config_file: Path | None = None) -> Config:
    """Load configuration from tally.conf file."""
    config = Config()
    config_file = config_file or CONFIG_FILE

    if not config_file.exists():
        return config

    for line in config_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "data_dir":
                if value:
                    config.data_dir = Path(value).expanduser()
            case "storage_key":
                if not value:
                    continue
                if is_valid_key(value):
                    config.storage_key = value
                else:
                    logger.warning(f"Invalid STORAGE_KEY {value!r}, using {config.storage_key}")
            case "timezone":
                try:
                    ZoneInfo(value)
                except (ZoneInfoNotFoundError, ValueError, OSError):
                    logger.warning(f"Unknown TIMEZONE {value!r}, using {config.timezone}")
                else:
                    config.timezone = value

    return config
