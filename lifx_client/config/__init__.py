"""Configuration module for lifx_client."""

from lifx_client.config.loader import get_config_path, load_config
from lifx_client.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
