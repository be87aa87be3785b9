from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..services.catalog import SearchSettings
from ..services.summary import ResultProjection

"""Config loader.

Responsibilities:
- Load the YAML config (default config/fondant.yml)
- Apply environment overrides (FONDANT_* variables, typically from .env)
- Validate against config_schema.json shipped with the package
- Apply defaults (id field "id", snapshot ./database.json, fuzzy 0.2, prefix on)
"""

__all__ = [
    "ConfigError",
    "ResultColumn",
    "AppConfig",
    "DEFAULT_CONFIG_PATH",
    "parse_result_columns",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/fondant.yml")
DEFAULT_SNAPSHOT_PATH = "./database.json"
DEFAULT_APP_NAME = "Fondant"

ENV_PREFIX = "FONDANT_"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ResultColumn:
    heading: str
    field: str


@dataclass(frozen=True)
class AppConfig:
    app_name: str
    source_path: str
    sheets: tuple[str, ...] | None
    snapshot_path: str
    id_field_name: str
    indexed_fields: tuple[str, ...]
    result_columns: tuple[ResultColumn, ...]
    fuzzy: float
    prefix: bool
    limit: int | None

    @property
    def store_fields(self) -> tuple[str, ...]:
        """Indexed fields followed by any result column key not already indexed."""
        fields = list(self.indexed_fields)
        fields.extend(c.field for c in self.result_columns if c.field not in fields)
        return tuple(fields)

    def search_settings(self) -> SearchSettings:
        return SearchSettings(
            id_field_name=self.id_field_name,
            indexed_fields=self.indexed_fields,
            store_fields=self.store_fields,
            prefix=self.prefix,
            fuzzy=self.fuzzy,
            limit=self.limit,
        )

    def projection(self) -> ResultProjection:
        return ResultProjection(
            headings=tuple(c.heading for c in self.result_columns),
            keys=tuple(c.field for c in self.result_columns),
        )


def _split_list(text: str) -> list[str]:
    return [item.strip() for item in text.split(",") if item.strip()]


def parse_result_columns(text: str) -> list[dict[str, str]]:
    """Parse "Heading:field, Other:other" into result column entries.

    An item without a colon uses the same text as heading and field.
    """
    columns = []
    for item in _split_list(text):
        heading, sep, field = item.partition(":")
        heading, field = heading.strip(), field.strip()
        columns.append({"heading": heading, "field": field if sep else heading})
    return columns


def _apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    def env(name: str) -> str | None:
        value = environ.get(ENV_PREFIX + name)
        return value if value else None

    merged = dict(data)
    source = dict(merged.get("source") or {})
    if (value := env("SOURCE_PATH")) is not None:
        source["path"] = value
    if (value := env("SHEETS")) is not None:
        source["sheets"] = _split_list(value)
    if source:
        merged["source"] = source
    if (value := env("SNAPSHOT_PATH")) is not None:
        merged["snapshot_path"] = value
    if (value := env("INDEXED_FIELDS")) is not None:
        merged["indexed_fields"] = _split_list(value)
    if (value := env("RESULT_COLUMNS")) is not None:
        merged["result_columns"] = parse_result_columns(value)
    if (value := env("APP_NAME")) is not None:
        merged["app_name"] = value
    return merged


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing/unreadable or data fails validation
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


def load_config(path: Path = DEFAULT_CONFIG_PATH, environ: Mapping[str, str] | None = None) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    data = _apply_env_overrides(data, os.environ if environ is None else environ)
    _validate_config_schema(data)

    source = data["source"]
    search = data.get("search") or {}
    sheets = source.get("sheets")
    return AppConfig(
        app_name=data.get("app_name", DEFAULT_APP_NAME),
        source_path=source["path"],
        sheets=tuple(sheets) if sheets else None,
        snapshot_path=data.get("snapshot_path", DEFAULT_SNAPSHOT_PATH),
        id_field_name=data.get("id_field_name", "id"),
        indexed_fields=tuple(data["indexed_fields"]),
        result_columns=tuple(
            ResultColumn(heading=c["heading"], field=c["field"]) for c in data.get("result_columns", [])
        ),
        fuzzy=float(search.get("fuzzy", 0.2)),
        prefix=bool(search.get("prefix", True)),
        limit=search.get("limit"),
    )
