"""Configuration module -- exports Settings and the loaders."""

from kickflip.config.loader import load_config, load_settings
from kickflip.config.settings import Settings

__all__ = ["Settings", "load_config", "load_settings"]
