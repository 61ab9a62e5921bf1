from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PERMISSIONS,
    DatabaseConfig,
    ImportConfig,
)

"""Config loader.

Responsibilities:
- Load YAML config (default config/import.yml)
- Validate against the packaged config_schema.json
- Apply defaults (timezone=UTC, chunk_size=50, both import permissions)
"""

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or invalid, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"unknown timezone: {name}") from e
    return name


def config_from_dict(data: dict[str, Any]) -> ImportConfig:
    """Build an ImportConfig from already parsed config data."""
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")
    _validate_config_schema(data)

    db_raw = data.get("database", {})
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    sentinels = frozenset(
        s.strip().upper() for s in data.get("null_sentinels", []) if s.strip()
    )
    permissions = frozenset(data.get("permissions", DEFAULT_PERMISSIONS))
    tables = {kind: spec["table"] for kind, spec in data.get("entities", {}).items()}
    return ImportConfig(
        timezone=_validate_timezone(data.get("timezone", "UTC")),
        chunk_size=data.get("chunk_size", DEFAULT_CHUNK_SIZE),
        null_sentinels=sentinels,
        permissions=permissions,
        entity_tables=tables,
        database=db,
        logs_dir=data.get("logs_dir", "./logs"),
    )


def load_config(path: Path | None = None, *, required: bool = True) -> ImportConfig:
    """Load and validate the YAML config.

    When `required` is False a missing file yields the defaults.
    """
    path = path or DEFAULT_CONFIG_PATH
    if not path.exists():
        if required:
            raise ConfigError(f"config file not found: {path}")
        return ImportConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    return config_from_dict(data)
