"""Configuration for gitback."""

from gitback.config.loader import load_config
from gitback.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "load_config"]
