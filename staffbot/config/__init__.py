"""Configuration module for staffbot."""

from staffbot.config.loader import get_config_path, load_config
from staffbot.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
