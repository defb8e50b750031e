from __future__ import annotations

import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

"""RawTable / DetectedSchema / SourceRow models.

A RawTable is one worksheet (or one CSV) exactly as decoded: an immutable tuple of
row tuples holding strings, numbers, dates or "" for empty cells. No header
interpretation is applied at this level.

DetectedSchema records where the header row sits; rows before it are metadata rows
(letterhead, report titles) that must survive export untouched.
"""

__all__ = [
    "RawTable",
    "DetectedSchema",
    "SourceRow",
    "make_raw_table",
    "cell_text",
    "is_blank_row",
    "iter_source_rows",
    "non_blank_rows",
]

RawTable = tuple[tuple[Any, ...], ...]


def make_raw_table(rows: Iterable[Iterable[Any]]) -> RawTable:
    """Freeze nested iterables into a RawTable."""
    return tuple(tuple(row) for row in rows)


def cell_text(value: Any) -> str:
    """Trimmed text of a raw cell; None / NaN become ""."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def is_blank_row(row: Iterable[Any]) -> bool:
    """True when every cell is empty or whitespace (an empty row is blank)."""
    return all(cell_text(cell) == "" for cell in row)


@dataclass(frozen=True)
class DetectedSchema:
    """Header location inside a RawTable.

    data_start_index is the 0-based index of the header row. Data rows start at
    data_start_index + 1. Always >= 0.
    """
    data_start_index: int
    headers: tuple[str, ...]

    def __post_init__(self) -> None:
        if self.data_start_index < 0:
            raise ValueError("data_start_index must be >= 0")


@dataclass(frozen=True)
class SourceRow:
    """One row after the header row."""
    index: int  # row index inside the RawTable
    cells: tuple[Any, ...]
    is_blank: bool


def iter_source_rows(table: RawTable, schema: DetectedSchema) -> Iterator[SourceRow]:
    for index in range(schema.data_start_index + 1, len(table)):
        cells = tuple(table[index])
        yield SourceRow(index=index, cells=cells, is_blank=is_blank_row(cells))


def non_blank_rows(table: RawTable, schema: DetectedSchema) -> list[SourceRow]:
    """Rows eligible for pricing, in submission order."""
    return [row for row in iter_source_rows(table, schema) if not row.is_blank]
