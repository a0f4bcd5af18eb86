"""Configuration loading for the transcript viewer."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass, replace
import logging
import os
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewerConfig:
    """Container for the viewer's read-only settings."""

    database_path: str = "multizork.sqlite3"
    base_url: str = "/"
    title: str = "multizork"


_DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(__file__), "..", "viewer_config.yaml"
)
_CONFIG_PATH_ENV = "MULTIZORK_CONFIG"
_ENV_OVERRIDES = {
    "MULTIZORK_SQLITE_PATH": "database_path",
    "MULTIZORK_BASE_URL": "base_url",
    "MULTIZORK_TITLE": "title",
}


def _coerce_str(value: Any, fallback: str) -> str:
    """Return ``value`` as a stripped string, or ``fallback`` when unusable."""

    if value is None or isinstance(value, (dict, list)):
        if value is not None:
            logger.warning(
                "Invalid string value %r encountered in configuration; using %r",
                value,
                fallback,
            )
        return fallback
    text = str(value).strip()
    return text or fallback


def normalize_base_url(value: str) -> str:
    """Return ``value`` with exactly one leading slash and no trailing slash.

    The site root normalizes to ``"/"``.
    """

    stripped = value.strip().strip("/")
    if not stripped:
        return "/"
    return "/" + stripped


def _apply_env_overrides(config: ViewerConfig) -> ViewerConfig:
    overrides: Dict[str, str] = {}
    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is not None and value.strip():
            overrides[field_name] = value.strip()
    if not overrides:
        return config
    logger.debug("Applying environment overrides: %s", sorted(overrides))
    updated = replace(config, **overrides)
    return replace(updated, base_url=normalize_base_url(updated.base_url))


def load_viewer_config(path: str | None = None) -> ViewerConfig:
    """Load the viewer configuration from ``path`` if available.

    Environment variables take precedence over file values.
    """

    config_path = path or os.environ.get(_CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH
    data: Dict[str, Any] = {}
    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            payload = yaml.safe_load(fh) or {}
    except FileNotFoundError:
        logger.info(
            "Viewer configuration file %s not found; falling back to defaults",
            config_path,
        )
        return _apply_env_overrides(ViewerConfig())
    except yaml.YAMLError as exc:
        logger.warning(
            "Failed to parse viewer configuration %s: %s; using defaults",
            config_path,
            exc,
        )
        return _apply_env_overrides(ViewerConfig())
    if isinstance(payload, dict):
        if "viewer" in payload and isinstance(payload["viewer"], dict):
            data = payload["viewer"]
        else:
            data = payload
    else:
        logger.warning(
            "Viewer configuration %s is not a mapping; using defaults", config_path
        )
    defaults = ViewerConfig()
    config = ViewerConfig(
        database_path=_coerce_str(data.get("database_path"), defaults.database_path),
        base_url=normalize_base_url(_coerce_str(data.get("base_url"), defaults.base_url)),
        title=_coerce_str(data.get("title"), defaults.title),
    )
    return _apply_env_overrides(config)


__all__ = ["ViewerConfig", "load_viewer_config", "normalize_base_url"]
