"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers override earlier):

  1. ``config/config.yaml`` -- ``pipeline:`` section with static defaults
  2. ``.env`` file          -- local developer overrides (not committed)
  3. Environment vars       -- set at deploy time

Invalid values or unknown keys surface as :class:`ConfigurationError`, the
only error class that is fatal to the worker process.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import DotEnvSettingsSource, EnvSettingsSource

from dreamembed.config.settings import Settings
from dreamembed.utils.errors import ConfigurationError

_DEFAULT_CONFIG_PATH = "config/config.yaml"


def load_settings(path: str | None = _DEFAULT_CONFIG_PATH, **overrides: Any) -> Settings:
    """Build :class:`Settings` from YAML defaults, the environment and *overrides*.

    Args:
        path: YAML file to read; a missing file is treated as empty.
        **overrides: Explicit values (e.g. from CLI flags) that win over
            everything else.

    Returns:
        Fully resolved settings.

    Raises:
        ConfigurationError: If the YAML is malformed or any value fails validation.
    """
    yaml_values = _read_yaml_section(path)
    try:
        # All layers are merged first and validated once, so cross-field
        # checks see the final combination rather than one layer on its own.
        merged: dict[str, Any] = {**yaml_values, **_read_environment(), **overrides}
        unknown = set(merged) - set(Settings.model_fields)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return Settings(**merged)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def _read_yaml_section(path: str | None) -> dict[str, Any]:
    if not path:
        return {}
    config_path = Path(path)
    if not config_path.exists():
        return {}
    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Cannot parse {config_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")
    section = raw.get("pipeline", {}) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'pipeline' in {config_path} must be a mapping")
    return dict(section)


def _read_environment() -> dict[str, Any]:
    """Raw (unvalidated) values from ``.env`` and the process environment.

    Uses the same pydantic-settings sources :class:`Settings` reads, keyed
    by field name; real environment variables beat ``.env`` lines.
    """
    return {**DotEnvSettingsSource(Settings)(), **EnvSettingsSource(Settings)()}
