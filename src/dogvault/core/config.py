"""Configuration loader for dogvault."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

log = logging.getLogger(__name__)

DEFAULTS: dict = {
    "site": "datadoghq.com",
    # Overrides https://api.<site> when set (proxies, test servers)
    "api_url": None,
    "api_key": None,
    "app_key": None,
    "backup_dir": "./backup",
    "concurrency": 4,
    "output_format": "yaml",
    "array_sort": True,
    # Empty list means every registered kind
    "resources": [],
    "timeout": 30.0,
    "log_level": "info",
    "log_file": None,
}

# Environment variable -> config key
_ENV_OVERRIDES = {
    "DD_SITE": "site",
    "DD_API_KEY": "api_key",
    "DD_APP_KEY": "app_key",
    "DOGVAULT_BACKUP_DIR": "backup_dir",
}


def resolve_home() -> Path:
    """Resolve DOGVAULT_HOME: env var > default ~/.dogvault."""
    env_home = os.environ.get("DOGVAULT_HOME")
    if env_home:
        return Path(env_home).expanduser().resolve()
    return Path("~/.dogvault").expanduser().resolve()


def config_path(home: Path | None = None) -> Path:
    """Return the path to config.yaml."""
    if home is None:
        home = resolve_home()
    return home / "config.yaml"


def load_config(path: Path | None = None) -> dict:
    """Load config.yaml, merge with defaults and apply environment overrides.

    Args:
        path: Explicit path to config.yaml. If None, uses default location.

    Returns:
        Merged configuration dict.
    """
    if path is None:
        path = config_path()

    user_config: dict = {}
    if path.exists():
        try:
            raw = path.read_text(encoding="utf-8")
            user_config = yaml.safe_load(raw) or {}
        except (OSError, yaml.YAMLError):
            log.warning("Failed to read config at %s, using defaults", path, exc_info=True)
        if not isinstance(user_config, dict):
            log.warning("Config at %s is not a mapping, using defaults", path)
            user_config = {}

    merged = _deep_merge(DEFAULTS, user_config)

    for env_name, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            merged[key] = value

    merged["backup_dir"] = str(Path(merged["backup_dir"]).expanduser())
    return merged


def api_base_url(config: dict) -> str:
    """Base URL of the REST API: explicit api_url, else derived from site."""
    url = config.get("api_url") or f"https://api.{config.get('site', DEFAULTS['site'])}"
    return url.rstrip("/")


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
