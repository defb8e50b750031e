from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the spreadsheet pricer.

Built by item_pricer/config/loader.py after schema validation.
Defaults mirror config/pricer.yml so that library users can construct a config
without a YAML file.
"""

__all__ = [
    "ServiceConfig",
    "TableConfig",
    "ExportConfig",
    "PricerConfig",
]


@dataclass(frozen=True)
class ServiceConfig:
    """Pricing service endpoint settings.

    PRICER_SERVICE_URL in the environment overrides base_url.
    """
    base_url: str = "http://localhost:5000/api"
    process_path: str = "/enhanced/process-enhanced"
    timeout_seconds: float = 420.0  # large inventories take minutes


@dataclass(frozen=True)
class TableConfig:
    """Results table defaults."""
    page_size: int = 10
    page_size_options: tuple[int, ...] = (10, 25, 50, 100)


@dataclass(frozen=True)
class ExportConfig:
    output_directory: str = "./output"
    csv_min_price: float = 1.00  # CSV never leaves a price blank


@dataclass(frozen=True)
class PricerConfig:
    """Root configuration object."""
    service: ServiceConfig = field(default_factory=ServiceConfig)
    tolerance_options: tuple[int, ...] = (10, 15, 20, 25, 30, 40, 50)
    default_tolerance: int = 20
    table: TableConfig = field(default_factory=TableConfig)
    max_scan_rows: int = 20  # header detection window
    export: ExportConfig = field(default_factory=ExportConfig)
    logs_directory: str = "./logs"
