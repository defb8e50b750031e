from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError as SchemaValidationError

from ..models.config_models import ExportConfig, PricerConfig, ServiceConfig, TableConfig

"""Config loader.

Responsibilities:
- Load YAML config (config/pricer.yml)
- Validate against config_schema.json (shipped next to this module)
- Apply defaults for omitted sections
- Apply PRICER_SERVICE_URL environment override
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "SERVICE_URL_ENV",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
SERVICE_URL_ENV = "PRICER_SERVICE_URL"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or the config data
            violates the schema (unknown keys, wrong types, bad ranges).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except SchemaValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> PricerConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    defaults = PricerConfig()
    svc_raw = data.get("service", {})
    base_url = os.getenv(SERVICE_URL_ENV) or svc_raw.get("base_url", defaults.service.base_url)
    service = ServiceConfig(
        base_url=base_url,
        process_path=svc_raw.get("process_path", defaults.service.process_path),
        timeout_seconds=float(svc_raw.get("timeout_seconds", defaults.service.timeout_seconds)),
    )

    tol_raw = data.get("tolerance", {})
    tolerance_options = tuple(tol_raw.get("options", defaults.tolerance_options))
    default_tolerance = tol_raw.get("default", defaults.default_tolerance)
    if tolerance_options and default_tolerance not in tolerance_options:
        raise ConfigError(
            f"config validation failed: tolerance.default {default_tolerance} "
            f"not in tolerance.options {list(tolerance_options)}"
        )

    table_raw = data.get("table", {})
    table = TableConfig(
        page_size=table_raw.get("page_size", defaults.table.page_size),
        page_size_options=tuple(table_raw.get("page_size_options", defaults.table.page_size_options)),
    )
    if table.page_size not in table.page_size_options:
        raise ConfigError(
            f"config validation failed: table.page_size {table.page_size} "
            f"not in table.page_size_options {list(table.page_size_options)}"
        )

    export_raw = data.get("export", {})
    export = ExportConfig(
        output_directory=export_raw.get("output_directory", defaults.export.output_directory),
        csv_min_price=float(export_raw.get("csv_min_price", defaults.export.csv_min_price)),
    )

    return PricerConfig(
        service=service,
        tolerance_options=tolerance_options,
        default_tolerance=default_tolerance,
        table=table,
        max_scan_rows=data.get("detection", {}).get("max_scan_rows", defaults.max_scan_rows),
        export=export,
        logs_directory=data.get("logs_directory", defaults.logs_directory),
    )
