from __future__ import annotations

import datetime as dt
import logging
import re
from collections.abc import Sequence
from typing import Any

from ..models.raw_table import DetectedSchema, RawTable, cell_text

"""Header row detection for unstructured sheets (TableStructureDetector).

Insurance inventory exports often carry letterhead, report titles and blank rows
above the real column headers. detect() locates the header row in two passes:

1. strict: the first row carrying an item-number signature (`Item #`, `Item#`,
   `Item Number`) wins outright
2. scored: 2 points per header-like cell plus keyword bonuses; highest score
   wins, ties keep the earliest row

Nothing scoring above zero -> row 0. detect() never raises.
"""

__all__ = [
    "MAX_SCAN_ROWS",
    "ITEM_NUMBER_SIGNATURES",
    "KEYWORD_BONUSES",
    "is_header_like",
    "score_row",
    "has_item_number_signature",
    "detect",
]

logger = logging.getLogger(__name__)

MAX_SCAN_ROWS = 20

ITEM_NUMBER_SIGNATURES = ("item #", "item#", "item number")

# (keywords, bonus): a row earns the bonus once when its text contains any keyword
KEYWORD_BONUSES: tuple[tuple[tuple[str, ...], int], ...] = (
    (("description",), 5),
    (("price", "cost"), 5),
    (("qty", "quantity"), 5),
    (("item",), 3),
    (("room",), 3),
)

_HEADER_TEXT_RE = re.compile(r"^[a-zA-Z\s#\-()]+$")
_NUMBER_RE = re.compile(r"^[-+]?\$?[\d,]*\.?\d+%?$")
_DATE_RE = re.compile(r"^\d{1,4}[/\-.]\d{1,2}[/\-.]\d{1,4}([ T]\d{1,2}:\d{2}(:\d{2})?)?$")


def _row_text(row: Sequence[Any]) -> str:
    return " ".join(cell_text(cell) for cell in row).lower()


def is_header_like(value: Any) -> bool:
    """Text that reads like a column title; numbers and dates never do."""
    if isinstance(value, (bool, int, float, dt.date, dt.datetime, dt.time)):
        return False
    text = cell_text(value)
    if not text or _NUMBER_RE.match(text) or _DATE_RE.match(text):
        return False
    return bool(_HEADER_TEXT_RE.match(text)) or " " in text or "#" in text


def score_row(row: Sequence[Any]) -> int:
    score = 2 * sum(1 for cell in row if is_header_like(cell))
    text = _row_text(row)
    for keywords, bonus in KEYWORD_BONUSES:
        if any(keyword in text for keyword in keywords):
            score += bonus
    return score


def has_item_number_signature(row: Sequence[Any]) -> bool:
    if not row:
        return False
    text = _row_text(row)
    if any(signature in text for signature in ITEM_NUMBER_SIGNATURES):
        return True
    return cell_text(row[0]).lower() in ITEM_NUMBER_SIGNATURES


def _schema(table: RawTable, index: int) -> DetectedSchema:
    headers = tuple(cell_text(cell) for cell in table[index]) if table else ()
    return DetectedSchema(data_start_index=index, headers=headers)


def detect(raw_table: RawTable, max_scan_rows: int = MAX_SCAN_ROWS) -> DetectedSchema:
    """Locate the header row of a RawTable.

    Args:
        raw_table: Decoded sheet, unmodified.
        max_scan_rows: Number of leading rows considered.

    Returns:
        DetectedSchema with the header row index and its trimmed header texts.
        An empty table yields DetectedSchema(0, ()).
    """
    scan = raw_table[:max(max_scan_rows, 0)]

    for index, row in enumerate(scan):
        if has_item_number_signature(row):
            logger.debug("header row %d found by item-number signature", index)
            return _schema(raw_table, index)

    best_index, best_score = 0, 0
    for index, row in enumerate(scan):
        score = score_row(row)
        if score > best_score:
            best_index, best_score = index, score

    if best_score == 0:
        logger.debug("no header-like row in first %d rows; using row 0", len(scan))
    else:
        logger.debug("header row %d found by score=%d", best_index, best_score)
    return _schema(raw_table, best_index)
