from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DatabaseConfig,
    FilterConfig,
    HeaderResolutionConfig,
    ReconConfig,
    StoreConfig,
    UserContext,
)

"""Config loader.

Responsibilities:
- Load the YAML config (default config/recon.yml)
- Validate it against the packaged JSON schema (no unknown keys)
- Apply defaults and build the frozen ReconConfig dataclasses
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "config_from_dict",
]

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/recon.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the config
            data violates it (unknown keys, wrong types, bad enum values).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"config validation failed at {location}: {e.message}") from e


def config_from_dict(data: dict[str, Any]) -> ReconConfig:
    """Validate a plain mapping and build ReconConfig from it."""
    _validate_config_schema(data)

    store_raw = data.get("store", {})
    reader_raw = data.get("reader", {})
    store = StoreConfig(
        kind=store_raw.get("kind", "directory"),
        directory=store_raw.get("directory", "./data"),
        table=store_raw.get("table", "uploads"),
        base_url=store_raw.get("base_url"),
        timeout_sec=float(store_raw.get("timeout_sec", 30.0)),
        header_row=int(reader_raw.get("header_row", 0)),
    )
    if store.kind == "http" and not store.base_url:
        raise ConfigError("store.base_url is required when store.kind is 'http'")

    db_raw = data.get("database", {})
    database = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )

    hr_raw = data.get("header_resolution", {})
    header_resolution = HeaderResolutionConfig(
        sample_rows=hr_raw.get("sample_rows", 50),
        min_dominant_count=hr_raw.get("min_dominant_count", 5),
    )

    user_raw = data.get("user", {})
    user = UserContext(
        role=user_raw.get("role", ""),
        divisions=tuple(user_raw.get("divisions", [])),
    )

    f_raw = data.get("filters", {})
    filters = FilterConfig(
        circle=f_raw.get("circle"),
        division=f_raw.get("division"),
        sub_division=f_raw.get("sub_division"),
        date=f_raw.get("date"),
    )
    return ReconConfig(
        store=store,
        database=database,
        header_resolution=header_resolution,
        user=user,
        filters=filters,
    )


def load_config(path: Path) -> ReconConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")
    return config_from_dict(data)
