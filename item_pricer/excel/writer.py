from __future__ import annotations

import logging
import os
import re
import tempfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.exceptions import IllegalCharacterError

from ..errors import ExportError
from ..models.export_table import DERIVED_COLUMNS, PRICE_COLUMNS, PRICER_LABEL, ExportTable
from ..models.pricing_result import PricingResult
from ..services.formatter import MIN_PLACEHOLDER_PRICE, ensure_numeric

"""Export writers: reconciled workbook, image-results grid, flat CSV.

All writers build the complete file under a temporary name in the destination
directory and move it into place with os.replace(), so a failed or cancelled
export never leaves a half-written file behind.

Currency format `$#,##0.00` is applied only to non-empty derived price cells in
data rows. Metadata and header rows are written untouched.
Characters openpyxl cannot store (ASCII control characters) are dropped from
text cells.
"""

__all__ = [
    "CURRENCY_FORMAT",
    "IMAGE_GRID_HEADERS",
    "CSV_HEADERS",
    "IMAGE_SHEET_NAME",
    "export_timestamp",
    "reconciled_filename",
    "image_results_filename",
    "csv_filename",
    "safe_sheet_title",
    "write_export_table",
    "image_grid_rows",
    "write_image_results",
    "csv_frame",
    "write_results_csv",
]

logger = logging.getLogger(__name__)

CURRENCY_FORMAT = "$#,##0.00"
IMAGE_SHEET_NAME = "Image Results"

IMAGE_GRID_HEADERS = ("Item #", "Description") + DERIVED_COLUMNS

CSV_HEADERS = (
    "Item #",
    "Description",
    "Status",
    "Pricing Tier",
    "Base Price",
    "Adjusted Price",
    "Replacement Source",
    "Total Replacement Price",
    "URL",
    "Confidence",
)

_SHEET_TITLE_BAD = re.compile(r"[\[\]:*?/\\]")
_MAX_SHEET_TITLE = 31


def export_timestamp(now: datetime | None = None) -> str:
    """`YYYY-MM-DD_HH-MM-SS`, filename safe."""
    return (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")


def reconciled_filename(source_name: str) -> str:
    return f"{Path(source_name).stem}_priced.xlsx"


def image_results_filename(now: datetime | None = None, suffix: str = "xlsx") -> str:
    return f"{export_timestamp(now)}_image_results.{suffix}"


def csv_filename(source_name: str | None, now: datetime | None = None) -> str:
    """`<basename> - evaluated.csv`; image / description batches get a timestamped name."""
    if not source_name:
        return image_results_filename(now, suffix="csv")
    return f"{Path(source_name).stem} - evaluated.csv"


def safe_sheet_title(name: str) -> str:
    title = _SHEET_TITLE_BAD.sub("_", name).strip("'") or "Sheet1"
    return title[:_MAX_SHEET_TITLE]


@contextmanager
def _atomic_target(path: Path) -> Iterator[Path]:
    """Yield a temporary path next to `path`; moved onto `path` on success."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}-", suffix=path.suffix, dir=path.parent)
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        yield tmp_path
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def _xlsx_value(value: Any) -> Any:
    if value == "":
        return None
    if isinstance(value, str) and ILLEGAL_CHARACTERS_RE.search(value):
        logger.debug("dropping control characters from cell %r", value)
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


def _save_workbook(
    rows: Sequence[Sequence[Any]],
    path: Path,
    sheet_name: str,
    price_cells: Sequence[tuple[int, int]],
) -> None:
    wb = Workbook()
    ws = wb.active
    ws.title = safe_sheet_title(sheet_name)
    try:
        for row in rows:
            ws.append([_xlsx_value(v) for v in row])
    except (IllegalCharacterError, ValueError) as e:
        raise ExportError(f"cannot write {path}: {e}") from e

    # openpyxl rows / columns are 1-based
    for row_index, column_index in price_cells:
        cell = ws.cell(row=row_index + 1, column=column_index + 1)
        if cell.value is not None:
            cell.number_format = CURRENCY_FORMAT

    try:
        with _atomic_target(path) as tmp_path:
            wb.save(tmp_path)
    except OSError as e:
        raise ExportError(f"cannot write {path}: {e}") from e


def write_export_table(table: ExportTable, path: Path, sheet_name: str) -> Path:
    """Write a reconciled ExportTable as a single-sheet workbook."""
    path = Path(path)
    _save_workbook(
        table.rows,
        path,
        sheet_name,
        price_cells=table.price_cells(),
    )
    logger.info("wrote %s rows=%d", path.name, len(table))
    return path


def image_grid_rows(results: Sequence[PricingResult]) -> list[list[Any]]:
    """Fixed grid for batches with no original table.

    The total column falls back to the unit price when no total was returned.
    """
    rows: list[list[Any]] = [list(IMAGE_GRID_HEADERS)]
    for number, result in enumerate(results, start=1):
        total = result.total_price if result.total_price is not None else result.unit_price
        rows.append([
            number,
            result.description or "N/A",
            PRICER_LABEL,
            result.source or "N/A",
            result.unit_price if result.unit_price is not None else "",
            total if total is not None else "",
            result.url or "",
        ])
    return rows


def write_image_results(results: Sequence[PricingResult], path: Path) -> Path:
    path = Path(path)
    rows = image_grid_rows(results)
    price_columns = [IMAGE_GRID_HEADERS.index(c) for c in PRICE_COLUMNS]
    price_cells = [(r, c) for r in range(1, len(rows)) for c in price_columns]
    _save_workbook(rows, path, IMAGE_SHEET_NAME, price_cells=price_cells)
    logger.info("wrote %s items=%d", path.name, len(results))
    return path


def csv_frame(
    results: Sequence[PricingResult],
    min_price: float = MIN_PLACEHOLDER_PRICE,
) -> pd.DataFrame:
    """Flat CSV rows. Prices are never blank: missing ones become `min_price`."""
    def money(value: Any) -> str:
        return f"{ensure_numeric(value, min_price):.2f}"

    records = []
    for number, result in enumerate(results, start=1):
        base = result.base_price if result.base_price is not None else result.unit_price
        records.append({
            "Item #": number,
            "Description": result.description or "Unknown Item",
            "Status": result.status.name if result.status is not None else "ESTIMATED",
            "Pricing Tier": result.pricing_tier.value,
            "Base Price": money(base),
            "Adjusted Price": money(result.adjusted_price),
            "Replacement Source": result.source or "System Estimate",
            "Total Replacement Price": money(result.total_price),
            "URL": result.url or "",
            "Confidence": f"{result.confidence:.2f}" if result.confidence is not None else "0.50",
        })
    return pd.DataFrame.from_records(records, columns=list(CSV_HEADERS))


def write_results_csv(
    results: Sequence[PricingResult],
    path: Path,
    min_price: float = MIN_PLACEHOLDER_PRICE,
) -> Path:
    path = Path(path)
    df = csv_frame(results, min_price)
    try:
        with _atomic_target(path) as tmp_path:
            df.to_csv(tmp_path, index=False, encoding="utf-8")
    except OSError as e:
        raise ExportError(f"cannot write {path}: {e}") from e
    logger.info("wrote %s items=%d", path.name, len(results))
    return path
