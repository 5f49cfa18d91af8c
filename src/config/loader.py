"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers win):

  1. ``config/config.yaml`` -- defaults checked into the repo
  2. ``.env`` file           -- local developer overrides
  3. Environment variables   -- set per machine

The YAML file groups settings into sections purely for readability::

    qdrant:
      qdrant_url: http://localhost:6333
    ingestion:
      chunk_size: 1000

Sections are flattened; every leaf key must be a :class:`Settings` field
name.  Unknown keys are logged and ignored.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml

from src.config.settings import Settings
from src.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Build :class:`Settings` from the YAML file, then environment overrides.

    Args:
        path: Path to the YAML configuration file.  A missing file is fine.

    Returns:
        Fully resolved settings.

    Raises:
        ConfigurationError: If the YAML is malformed or a value fails validation.
    """
    yaml_values = _flatten(_read_yaml(Path(path)))

    known = set(Settings.model_fields)
    unknown = sorted(set(yaml_values) - known)
    if unknown:
        logger.warning("config_unknown_keys", path=path, keys=unknown)

    env_settings = Settings()
    # Fields set from the environment or .env take precedence over YAML.
    env_values = env_settings.model_dump(include=env_settings.model_fields_set)

    merged = {k: v for k, v in yaml_values.items() if k in known}
    merged.update(env_values)
    try:
        return Settings(**merged)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid configuration in {path}: {exc}") from exc


def _read_yaml(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Malformed YAML in {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Top level of {config_path} must be a mapping")
    return data


def _flatten(sections: dict[str, Any]) -> dict[str, Any]:
    """Collapse ``{section: {key: value}}`` into ``{key: value}``.

    Top-level scalars are kept as-is.  Only dict-valued fields of Settings
    (``provider_base_urls``) are left unflattened.
    """
    flat: dict[str, Any] = {}
    for key, value in sections.items():
        if isinstance(value, dict) and key not in Settings.model_fields:
            flat.update(value)
        else:
            flat[key] = value
    return flat
