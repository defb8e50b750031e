from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""ExportTable model.

RawTable-shaped output of the row aligner: metadata rows copied verbatim, header
row extended with the derived column names, data rows extended with the matching
pricing values, blank rows left blank.
"""

__all__ = [
    "DERIVED_COLUMNS",
    "PRICE_COLUMNS",
    "PRICER_LABEL",
    "ExportTable",
]

DERIVED_COLUMNS = (
    "Pricer",
    "Replacement Source",
    "Replacement Price",
    "Total Replacement Price",
    "URL",
)
PRICE_COLUMNS = ("Replacement Price", "Total Replacement Price")
PRICER_LABEL = "AI Pricer"


@dataclass(frozen=True)
class ExportTable:
    rows: tuple[tuple[Any, ...], ...]
    data_start_index: int  # header row index

    @property
    def header(self) -> tuple[Any, ...]:
        return self.rows[self.data_start_index] if self.rows else ()

    def price_cells(self) -> list[tuple[int, int]]:
        """(row, column) indexes of the non-empty derived price cells in data rows.

        Derived cells are the last len(DERIVED_COLUMNS) cells of a priced row.
        """
        width = len(DERIVED_COLUMNS)
        offsets = [DERIVED_COLUMNS.index(name) - width for name in PRICE_COLUMNS]
        cells: list[tuple[int, int]] = []
        for row_index in range(self.data_start_index + 1, len(self.rows)):
            row = self.rows[row_index]
            if len(row) < width or row[-width] != PRICER_LABEL:
                continue
            for offset in offsets:
                if row[offset] not in ("", None):
                    cells.append((row_index, len(row) + offset))
        return cells

    def __len__(self) -> int:
        return len(self.rows)
