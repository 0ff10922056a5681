"""Configuration loading utilities."""

import json
from pathlib import Path

from loguru import logger

from lifx_client.config.schema import Config

DEFAULT_CONFIG_PATH = Path.home() / ".lifx_client" / "config.json"


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from a JSON file, falling back to defaults.

    Environment variables (``LIFX_REST__SECRET``, ``LIFX_LAN__PORT`` ...) are
    applied for any key the file does not set.
    """
    path = Path(config_path) if config_path else get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return Config(**data)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("[Config] failed to load {}: {}; using defaults", path, e)

    return Config()
