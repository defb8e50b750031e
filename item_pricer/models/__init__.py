"""Domain models for the spreadsheet pricer.

Raw sheet data, detected header location, classified pricing results, the
export table, the results table view state and the config dataclasses.
"""

from .config_models import ExportConfig, PricerConfig, ServiceConfig, TableConfig
from .error_record import ErrorRecord
from .export_table import DERIVED_COLUMNS, ExportTable
from .pricing_result import PricingResult, PricingTier, RawResultRecord, ResultStatus
from .raw_table import DetectedSchema, RawTable, SourceRow
from .view_state import TableRow, ViewPage, ViewState

__all__ = [
    # Configuration models
    "ExportConfig",
    "PricerConfig",
    "ServiceConfig",
    "TableConfig",
    # Sheet models
    "RawTable",
    "DetectedSchema",
    "SourceRow",
    "ExportTable",
    "DERIVED_COLUMNS",
    # Result models
    "RawResultRecord",
    "PricingResult",
    "PricingTier",
    "ResultStatus",
    "ViewState",
    "TableRow",
    "ViewPage",
    "ErrorRecord",
]
