from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..errors import (
    DecodeError,
    ExportCancelled,
    ExportError,
    PipelineBusyError,
    PricerError,
    ServiceError,
    ValidationError,
)
from ..excel.aligner import SYNTHETIC_HEADERS, align, synthetic_table
from ..excel.detector import detect
from ..excel.reader import is_image_file, read_workbook
from ..excel.writer import (
    csv_filename,
    image_results_filename,
    reconciled_filename,
    write_export_table,
    write_image_results,
    write_results_csv,
)
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import PricerConfig
from ..models.pricing_result import PricingResult
from ..models.raw_table import DetectedSchema, RawTable
from .classifier import classify_all
from .mapping import require_complete, resolve_mapping, suggest_mapping, validate_tolerance
from .pricing_client import (
    MappingRequiredResponse,
    PricingRequest,
    PricingService,
    ProcessingCompleteResponse,
    SheetSelectionResponse,
)
from .progress import RowProgress
from .summary import ResultsStatistics, calculate_statistics
from .table_engine import ResultsTableEngine

"""SpreadsheetPipeline: sheet selection -> field mapping -> pricing -> display -> export.

States:
    IDLE -> SHEET_SELECTION_PENDING -> SUBMITTING -> FIELD_MAPPING_PENDING
         -> SUBMITTING -> RESULTS_READY, and ERROR from any step.

One submission at a time: a second submission while one is in flight raises
PipelineBusyError. A new submission started from a pending or error state
replaces that pending session. The displayed results set (and its table engine)
is only replaced when a new run reaches RESULTS_READY; failures never touch it.
"""

__all__ = [
    "PipelineState",
    "ResultsSet",
    "SpreadsheetPipeline",
]

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "idle"
    SHEET_SELECTION_PENDING = "sheet_selection_pending"
    FIELD_MAPPING_PENDING = "field_mapping_pending"
    SUBMITTING = "submitting"
    RESULTS_READY = "results_ready"
    ERROR = "error"


@dataclass
class _Session:
    """In-flight submission. Discarded when superseded, reset or completed."""
    tolerance: int
    source_path: Path | None = None
    item_descriptions: tuple[str, ...] | None = None
    is_image: bool = False
    tables: dict[str, RawTable] = field(default_factory=dict)
    sheet_names: list[str] = field(default_factory=list)
    selected_sheet: str | None = None
    field_mapping: dict[str, str] | None = None
    available_headers: list[str] = field(default_factory=list)
    missing_fields: list[str] = field(default_factory=list)
    started: float = field(default_factory=time.monotonic)

    @property
    def file_name(self) -> str:
        return self.source_path.name if self.source_path is not None else ""


@dataclass(frozen=True)
class ResultsSet:
    """Displayed results plus what export needs of the original file."""
    results: tuple[PricingResult, ...]
    source_name: str | None  # None for description batches
    sheet_name: str
    raw_table: RawTable
    schema: DetectedSchema
    is_image: bool = False
    processed_rows: int = 0
    elapsed_seconds: float = 0.0

    @property
    def has_original_table(self) -> bool:
        return not self.is_image and self.source_name is not None


class SpreadsheetPipeline:
    """Single-session orchestration over a PricingService.

    Args:
        service: Pricing service (HttpPricingService or a test double).
        config: Pricer configuration; defaults when omitted.
        error_log: Error record buffer; one is created under config.logs_directory
            when omitted.
    """

    def __init__(
        self,
        service: PricingService,
        config: PricerConfig | None = None,
        *,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.service = service
        self.config = config or PricerConfig()
        self.error_log = error_log if error_log is not None else ErrorLogBuffer(Path(self.config.logs_directory))
        self._state = PipelineState.IDLE
        self._session: _Session | None = None
        self._busy = False
        self.displayed: ResultsSet | None = None
        self.engine: ResultsTableEngine | None = None
        self.last_error: PricerError | None = None

    # --------------------------------------------------------------- status

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def sheet_names(self) -> list[str]:
        return list(self._session.sheet_names) if self._session else []

    @property
    def available_headers(self) -> list[str]:
        return list(self._session.available_headers) if self._session else []

    @property
    def missing_fields(self) -> list[str]:
        return list(self._session.missing_fields) if self._session else []

    def suggested_mapping(self) -> dict[str, str]:
        """Pre-filled field selection for the pending mapping step."""
        return suggest_mapping(self.available_headers)

    # ----------------------------------------------------------- submission

    def _claim(self) -> None:
        if self._busy:
            raise PipelineBusyError("A file is already being processed. Please wait for it to finish.")
        self._busy = True

    def _fail(self, error: PricerError, error_type: str) -> None:
        self.error_log.record(error_type, str(error))
        self.last_error = error
        self._state = PipelineState.ERROR
        logger.error("%s: %s", error_type, error)

    async def process_file(self, path: Path, tolerance: int | None = None) -> PipelineState:
        """Start a new run for a spreadsheet, CSV or image file.

        Multi-sheet workbooks stop in SHEET_SELECTION_PENDING; everything else is
        submitted right away. Raises ValidationError (state unchanged) for a bad
        tolerance, DecodeError / ServiceError (state ERROR) for fatal failures.
        """
        tolerance = validate_tolerance(
            self.config.default_tolerance if tolerance is None else tolerance,
            self.config.tolerance_options,
        )
        self._claim()
        try:
            path = Path(path)
            session = _Session(tolerance=tolerance, source_path=path, is_image=is_image_file(path))
            self._session = session
            self.error_log.bind(session.file_name)
            self.last_error = None
            logger.info("processing file=%s tolerance=%d", path.name, tolerance)

            if session.is_image:
                return await self._submit(session)

            try:
                session.tables = await asyncio.to_thread(read_workbook, path)
            except DecodeError as e:
                self._fail(e, "DECODE_ERROR")
                raise
            session.sheet_names = list(session.tables)

            if len(session.sheet_names) > 1:
                self._state = PipelineState.SHEET_SELECTION_PENDING
                logger.info("sheet selection required: %s", ", ".join(session.sheet_names))
                return self._state
            session.selected_sheet = session.sheet_names[0]
            self.error_log.bind(session.file_name, session.selected_sheet)
            return await self._submit(session)
        finally:
            self._busy = False

    async def process_items(self, descriptions: Sequence[str], tolerance: int | None = None) -> PipelineState:
        """Price a batch of item descriptions that has no tabular original."""
        tolerance = validate_tolerance(
            self.config.default_tolerance if tolerance is None else tolerance,
            self.config.tolerance_options,
        )
        items = tuple(d.strip() for d in descriptions if d and d.strip())
        if not items:
            raise ValidationError("No item descriptions to process")
        self._claim()
        try:
            session = _Session(tolerance=tolerance, item_descriptions=items, is_image=True)
            self._session = session
            self.error_log.bind()
            self.last_error = None
            logger.info("processing %d item descriptions tolerance=%d", len(items), tolerance)
            return await self._submit(session)
        finally:
            self._busy = False

    async def select_sheet(self, name: str) -> PipelineState:
        session = self._session
        if self._state is not PipelineState.SHEET_SELECTION_PENDING or session is None:
            raise ValidationError("No sheet selection is pending")
        if name not in session.sheet_names:
            raise ValidationError(f"Unknown sheet: {name!r}")
        self._claim()
        try:
            session.selected_sheet = name
            self.error_log.bind(session.file_name, name)
            logger.info("sheet selected: %s", name)
            return await self._submit(session)
        finally:
            self._busy = False

    async def submit_mapping(self, selections: Mapping[str, Any]) -> PipelineState:
        """Resubmit with a user field mapping.

        Raises ValidationError, leaving the state unchanged, while required fields
        are unmapped.
        """
        session = self._session
        if self._state is not PipelineState.FIELD_MAPPING_PENDING or session is None:
            raise ValidationError("No field mapping is pending")
        resolution = resolve_mapping(session.available_headers, selections)
        mapping = require_complete(resolution)
        self._claim()
        try:
            session.field_mapping = mapping
            logger.info("field mapping submitted: %s", mapping)
            return await self._submit(session)
        finally:
            self._busy = False

    def _request(self, session: _Session) -> PricingRequest:
        if session.item_descriptions is not None:
            return PricingRequest(
                tolerance_pct=session.tolerance,
                item_descriptions=session.item_descriptions,
                field_mapping=session.field_mapping,
            )
        multi_sheet = len(session.sheet_names) > 1
        return PricingRequest(
            tolerance_pct=session.tolerance,
            file_path=session.source_path,
            field_mapping=session.field_mapping,
            selected_sheet=session.selected_sheet if multi_sheet else None,
        )

    async def _submit(self, session: _Session) -> PipelineState:
        self._state = PipelineState.SUBMITTING
        try:
            response = await self.service.process(self._request(session))
        except ServiceError as e:
            self._fail(e, "SERVICE_TIMEOUT" if e.timeout else "SERVICE_ERROR")
            raise

        if isinstance(response, SheetSelectionResponse):
            if session.selected_sheet is not None and len(session.sheet_names) > 1:
                error = ServiceError("Pricing service asked for a sheet selection again")
                self._fail(error, "SERVICE_ERROR")
                raise error
            session.sheet_names = response.sheets
            session.selected_sheet = None
            self.error_log.bind(session.file_name)
            self._state = PipelineState.SHEET_SELECTION_PENDING
            return self._state

        if isinstance(response, MappingRequiredResponse):
            if session.field_mapping is not None:
                error = ServiceError(
                    "Field mapping was rejected again (missing: "
                    + ", ".join(response.missing_fields)
                    + "). Please check the selected columns."
                )
                self._fail(error, "MAPPING_LOOP")
                raise error
            session.available_headers = response.available_headers
            session.missing_fields = response.missing_fields
            self._state = PipelineState.FIELD_MAPPING_PENDING
            logger.info("field mapping required: missing=%s", ", ".join(response.missing_fields))
            return self._state

        return self._complete(session, response)

    def _complete(self, session: _Session, response: ProcessingCompleteResponse) -> PipelineState:
        results = tuple(classify_all(response.results))
        if session.is_image or session.source_path is None:
            raw_table: RawTable = ()
            schema = DetectedSchema(0, ())
            sheet_name = ""
        else:
            sheet_name = session.selected_sheet or (session.sheet_names[0] if session.sheet_names else "")
            raw_table = session.tables.get(sheet_name, ())
            schema = detect(raw_table, self.config.max_scan_rows)

        self.displayed = ResultsSet(
            results=results,
            source_name=session.file_name or None,
            sheet_name=sheet_name,
            raw_table=raw_table,
            schema=schema,
            is_image=session.is_image,
            processed_rows=response.processed_rows,
            elapsed_seconds=time.monotonic() - session.started,
        )
        self.engine = ResultsTableEngine(
            results,
            page_size=self.config.table.page_size,
            page_size_options=self.config.table.page_size_options,
        )
        self._session = None
        self._state = PipelineState.RESULTS_READY
        logger.info("results ready: items=%d processed_rows=%d", len(results), response.processed_rows)
        return self._state

    # ------------------------------------------------------------ lifecycle

    def reset(self) -> None:
        """Drop any pending session and return to IDLE. Displayed results stay."""
        if self._busy:
            raise PipelineBusyError("Cannot reset while a file is being processed")
        self._session = None
        self.error_log.bind()
        self.last_error = None
        self._state = PipelineState.IDLE

    def clear(self) -> None:
        """Discard the displayed results (and their view state) and return to IDLE."""
        if self._busy:
            raise PipelineBusyError("Cannot clear while a file is being processed")
        self._session = None
        self.error_log.bind()
        self.displayed = None
        self.engine = None
        self.last_error = None
        self._state = PipelineState.IDLE

    def flush_error_log(self) -> Path | None:
        return self.error_log.flush()

    def statistics(self) -> ResultsStatistics:
        displayed = self._require_results()
        return calculate_statistics(displayed.results, displayed.elapsed_seconds)

    # --------------------------------------------------------------- export

    def _require_results(self) -> ResultsSet:
        if self.displayed is None:
            raise ValidationError("No processing results found. Please process a file first.")
        return self.displayed

    def _output_dir(self, out_dir: Path | None) -> Path:
        return Path(out_dir) if out_dir is not None else Path(self.config.export.output_directory)

    def export_workbook(
        self,
        out_dir: Path | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> Path:
        """Write the priced workbook for the displayed results.

        Spreadsheet runs are reconciled onto the original sheet
        (`<basename>_priced.xlsx`); description / image batches get the fixed grid
        (`<timestamp>_image_results.xlsx`). Raises ExportCancelled when
        cancel_event is set mid-run; nothing is written in that case.
        """
        displayed = self._require_results()
        directory = self._output_dir(out_dir)
        try:
            if not displayed.has_original_table:
                return write_image_results(displayed.results, directory / image_results_filename())

            raw_table, schema = displayed.raw_table, displayed.schema
            if not raw_table:
                logger.warning("original rows unavailable for %s; exporting a synthetic table", displayed.source_name)
                raw_table = synthetic_table(displayed.results)
                schema = DetectedSchema(0, SYNTHETIC_HEADERS)

            with RowProgress(len(raw_table)) as progress:
                table = align(
                    raw_table,
                    schema,
                    displayed.results,
                    cancel_event=cancel_event,
                    progress=progress.update,
                )
            target = directory / reconciled_filename(displayed.source_name or "results")
            return write_export_table(table, target, displayed.sheet_name or "Sheet1")
        except ExportCancelled:
            logger.info("workbook export cancelled")
            raise
        except ExportError as e:
            self._record_export_error(displayed, e)
            raise

    def export_csv(self, out_dir: Path | None = None) -> Path:
        """Write the flat CSV for the displayed results."""
        displayed = self._require_results()
        name = csv_filename(displayed.source_name if displayed.has_original_table else None)
        try:
            return write_results_csv(
                displayed.results,
                self._output_dir(out_dir) / name,
                min_price=self.config.export.csv_min_price,
            )
        except ExportError as e:
            self._record_export_error(displayed, e)
            raise

    def _record_export_error(self, displayed: ResultsSet, error: ExportError) -> None:
        self.error_log.record(
            "EXPORT_ERROR", str(error), file=displayed.source_name or "", sheet=displayed.sheet_name
        )
        logger.error("EXPORT_ERROR: %s", error)
