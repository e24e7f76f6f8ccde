"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  -- static defaults checked into the repo
  2. .env file           -- local developer overrides (not committed)
  3. environment vars    -- set at deploy time

``load_settings`` is what ``main.py`` and the CLI call: it reads the YAML
``settings:`` section, then lets anything set through the environment win,
and returns a validated :class:`Settings`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from kickflip.config.settings import Settings

_DEFAULT_CONFIG_PATH = "config/config.yaml"


def load_config(path: str = _DEFAULT_CONFIG_PATH) -> dict:
    """Load the YAML config and merge environment-based Settings over it.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Fully resolved configuration dictionary.
    """
    yaml_config = _read_yaml(path)

    settings = Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "llm": {
            "available_providers": settings.get_available_llm_providers(),
        },
        "backend": {
            "enabled": settings.has_backend(),
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def load_settings(path: str = _DEFAULT_CONFIG_PATH) -> Settings:
    """Build :class:`Settings` from YAML defaults overridden by the environment.

    Only keys under the YAML ``settings:`` mapping that are real Settings
    fields are used.  Anything supplied through the environment or ``.env``
    (i.e. present in ``model_fields_set``) keeps its value.
    """
    yaml_settings = _read_yaml(path).get("settings") or {}
    settings = Settings()
    overrides: dict[str, Any] = {
        key: value
        for key, value in yaml_settings.items()
        if key in Settings.model_fields and key not in settings.model_fields_set
    }
    if not overrides:
        return settings
    return settings.model_copy(update=overrides)


def _read_yaml(path: str) -> dict:
    config_path = Path(path)
    if not config_path.exists():
        return {}
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
