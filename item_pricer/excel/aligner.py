from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any

from ..errors import ExportCancelled
from ..models.export_table import DERIVED_COLUMNS, PRICER_LABEL, ExportTable
from ..models.pricing_result import PricingResult
from ..models.raw_table import DetectedSchema, RawTable, is_blank_row, make_raw_table
from ..services.classifier import normalize_source_name
from ..services.formatter import status_label

"""RowAligner: merge pricing results back into the original row structure.

Results arrive as a flat list, one per non-blank data row, in row order. align()
walks the original table once, keeping a running count of non-blank data rows;
the k-th non-blank row receives results[k-1]. Blank rows are copied as they are
and do not consume a result, so separator rows never desynchronise the stream.
"""

__all__ = [
    "SYNTHETIC_HEADERS",
    "derived_cells",
    "align",
    "synthetic_table",
]

logger = logging.getLogger(__name__)

SYNTHETIC_HEADERS = ("Item #", "Description", "Status", "Source", "Price", "Total Price", "URL")

_EMPTY_DERIVED = ("",) * len(DERIVED_COLUMNS)


def derived_cells(result: PricingResult | None) -> tuple[Any, ...]:
    """The five appended cells for one data row. Prices stay numeric."""
    if result is None:
        return _EMPTY_DERIVED
    return (
        PRICER_LABEL,
        normalize_source_name(result.source, result.pricing_tier),
        result.unit_price if result.unit_price is not None else "",
        result.total_price if result.total_price is not None else "",
        result.url or "",
    )


def align(
    raw_table: RawTable,
    schema: DetectedSchema,
    results: Sequence[PricingResult],
    *,
    cancel_event: threading.Event | None = None,
    progress: Callable[[int], None] | None = None,
) -> ExportTable:
    """Build the export table for one sheet.

    Args:
        raw_table: Original sheet rows, as decoded.
        schema: Detected header location.
        results: One result per non-blank data row, in order. A short list leaves
            the trailing rows with empty derived cells.
        cancel_event: Checked before every row; when set, ExportCancelled is raised
            and nothing is returned.
        progress: Called with 1 after each row.

    Returns:
        ExportTable with the same number of rows as raw_table.
    """
    header_index = schema.data_start_index
    header_width = len(raw_table[header_index]) if header_index < len(raw_table) else 0

    rows: list[tuple[Any, ...]] = []
    non_blank_count = 0
    for index, row in enumerate(raw_table):
        if cancel_event is not None and cancel_event.is_set():
            logger.info("export cancelled at row %d", index)
            raise ExportCancelled(f"export cancelled at row {index}")

        if index < header_index:
            rows.append(tuple(row))
        elif index == header_index:
            rows.append(tuple(row) + DERIVED_COLUMNS)
        elif is_blank_row(row):
            rows.append(tuple(row))
        else:
            non_blank_count += 1
            result = results[non_blank_count - 1] if non_blank_count <= len(results) else None
            padded = tuple(row) + ("",) * max(header_width - len(row), 0)
            rows.append(padded + derived_cells(result))

        if progress is not None:
            progress(1)

    if non_blank_count != len(results):
        logger.warning(
            "row/result count mismatch: non_blank_rows=%d results=%d", non_blank_count, len(results)
        )
    return ExportTable(rows=tuple(rows), data_start_index=header_index)


def synthetic_table(results: Sequence[PricingResult]) -> RawTable:
    """Stand-in original table for results with no tabular source rows."""
    rows: list[list[Any]] = [list(SYNTHETIC_HEADERS)]
    for result in results:
        rows.append([
            result.item_number,
            result.description or "N/A",
            status_label(result.status),
            result.source or "N/A",
            result.unit_price if result.unit_price is not None else "N/A",
            result.total_price if result.total_price is not None else "N/A",
            result.url or "N/A",
        ])
    return make_raw_table(rows)
