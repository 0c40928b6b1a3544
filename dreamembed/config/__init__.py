"""Configuration module -- exports Settings and load_settings."""

from dreamembed.config.loader import load_settings
from dreamembed.config.settings import Settings

__all__ = ["Settings", "load_settings"]
