"""
Load option store config from options.yaml with optional env overrides.
Single source of truth for the default store, named stores and database connections.
"""
from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .core.errors import ConfigurationError

CONFIG_FILENAME = "options.yaml"

# Defaults if no YAML or env
_DEFAULTS: Dict[str, Any] = {
    "default": "file",
    "stores": {
        "file": {
            "driver": "file",
            "path": "storage/options",
            "serializer": "pickle",
        },
        "database": {
            "driver": "database",
            "table": "options",
            "connection": None,
            "serializer": "pickle",
        },
        "null": {"driver": "null"},
    },
    "connections": {
        "default": {"url": "sqlite:///storage/options.sqlite"},
    },
    "default_connection": "default",
}


def _config_yaml_path() -> Path:
    """OPTION_CONFIG_PATH, else options.yaml in the working directory."""
    return Path(os.environ.get("OPTION_CONFIG_PATH") or CONFIG_FILENAME)


def _load_yaml(path: Optional[Union[str, Path]] = None) -> dict:
    config_path = Path(path) if path is not None else _config_yaml_path()
    if not config_path.exists():
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid option config {config_path}: {exc}") from exc
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _env_overrides() -> dict:
    overrides: dict = {}
    driver = os.environ.get("OPTION_DRIVER")
    if driver:
        overrides["default"] = driver
    file_path = os.environ.get("OPTION_FILE_PATH")
    if file_path:
        overrides.setdefault("stores", {}).setdefault("file", {})["path"] = file_path
    table = os.environ.get("OPTION_TABLE")
    if table:
        overrides.setdefault("stores", {}).setdefault("database", {})["table"] = table
    db_url = os.environ.get("OPTION_DB_URL")
    if db_url:
        overrides.setdefault("connections", {}).setdefault("default", {})["url"] = db_url
    return overrides


def get_config(path: Optional[Union[str, Path]] = None) -> dict:
    """Return merged config: defaults <- options.yaml <- env."""
    merged = _deep_merge(copy.deepcopy(_DEFAULTS), _load_yaml(path))
    merged = _deep_merge(merged, _env_overrides())
    return merged


# Convenience accessors
def default_store(config: Optional[dict] = None) -> str:
    cfg = config if config is not None else get_config()
    return str(cfg.get("default") or "file")


def store_config(name: str, config: Optional[dict] = None) -> Optional[dict]:
    """Config for a named store, or None when the name is not defined."""
    cfg = config if config is not None else get_config()
    stores = cfg.get("stores") or {}
    entry = stores.get(name)
    return dict(entry) if isinstance(entry, dict) else None


def connection_config(name: Optional[str] = None, config: Optional[dict] = None) -> dict:
    cfg = config if config is not None else get_config()
    name = name or cfg.get("default_connection") or "default"
    entry = (cfg.get("connections") or {}).get(name)
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Option database connection [{name}] is not defined.")
    return dict(entry)
