from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from typing import Any

import pandas as pd

from ..models.pricing_result import PricingResult
from ..models.view_state import FILTER_COLUMNS, TableRow, ViewPage, ViewState
from .classifier import display_source
from .formatter import display, display_allow_zero, status_label

"""ResultsTableEngine: filter / sort / paginate over one results set.

The engine owns exactly one ViewState. The backing results are never mutated;
every operation recomputes the derived view (filtered, then sorted) and the
page is cut from that view. All operations are synchronous and free of I/O.

current_page resets to 1 whenever the filtered set or the sort changes.
"""

__all__ = [
    "PAGE_SIZE_OPTIONS",
    "NUMERIC_SORT_COLUMNS",
    "TEXT_SORT_COLUMNS",
    "ResultsTableEngine",
    "display_status",
    "display_quantity",
    "calculated_total",
]

logger = logging.getLogger(__name__)

PAGE_SIZE_OPTIONS = (10, 25, 50, 100)

# camelCase names used by the results table front end
_COLUMN_ALIASES = {
    "itemNumber": "item_number",
    "adjustedPrice": "adjusted_price",
    "depCat": "depreciation_category",
    "pricingTier": "pricing_tier",
}


def display_status(result: PricingResult) -> str:
    return status_label(result.status)


def display_quantity(result: PricingResult) -> float:
    """Quantity shown in the table; missing quantities display as 1."""
    return result.quantity if result.quantity is not None else 1


def calculated_total(result: PricingResult) -> float:
    """(replacement price - depreciation amount) * quantity."""
    quantity = display_quantity(result)
    price = result.unit_price or 0.0
    depreciation = result.depreciation_amount or 0.0
    return price * quantity - depreciation * quantity


NUMERIC_SORT_COLUMNS: dict[str, Callable[[PricingResult], float]] = {
    "item_number": lambda r: float(r.item_number or 0),
    "adjusted_price": lambda r: r.adjusted_price or 0.0,
    "quantity": lambda r: r.quantity or 0.0,
}

TEXT_SORT_COLUMNS: dict[str, Callable[[PricingResult], str]] = {
    "description": lambda r: r.description,
    "status": display_status,
    "source": display_source,
    "pricing_tier": lambda r: r.pricing_tier.label,
    "depreciation_category": lambda r: r.depreciation_category,
}

_FILTER_VALUES: dict[str, Callable[[PricingResult], str]] = {
    "status": display_status,
    "source": display_source,
    "depreciation_category": lambda r: r.depreciation_category,
}


def _column(name: str) -> str:
    return _COLUMN_ALIASES.get(name, name)


def _folded(getter: Callable[[PricingResult], str]) -> Callable[[PricingResult], str]:
    return lambda result: getter(result).lower()


class ResultsTableEngine:
    """Filter / sort / pagination state over a classified results set.

    Args:
        results: Classified results, in service order.
        page_size: Initial page size; must be one of page_size_options.
        page_size_options: Accepted page sizes.
    """

    def __init__(
        self,
        results: Sequence[PricingResult] = (),
        *,
        page_size: int = 10,
        page_size_options: Sequence[int] = PAGE_SIZE_OPTIONS,
    ) -> None:
        if page_size not in page_size_options:
            raise ValueError(f"page_size {page_size} not in {tuple(page_size_options)}")
        self.page_size_options = tuple(page_size_options)
        self.state = ViewState(page_size=page_size)
        self._results: list[PricingResult] = []
        self._filtered: list[PricingResult] = []
        self.set_results(results)

    @property
    def results(self) -> list[PricingResult]:
        return list(self._results)

    @property
    def filtered(self) -> list[PricingResult]:
        """Filtered and sorted view."""
        return list(self._filtered)

    @property
    def total_count(self) -> int:
        return len(self._results)

    @property
    def filtered_count(self) -> int:
        return len(self._filtered)

    # ------------------------------------------------------------------ data

    def set_results(self, results: Sequence[PricingResult]) -> None:
        """Replace the backing set; filters are kept, page resets to 1."""
        self._results = list(results)
        self.apply_filters()

    # --------------------------------------------------------------- filters

    def _matches(self, result: PricingResult) -> bool:
        term = self.state.search_term.strip().lower()
        if term:
            haystacks = (result.description, display_source(result), display_status(result))
            if not any(term in text.lower() for text in haystacks):
                return False
        for column, wanted in self.state.active_filters().items():
            if _FILTER_VALUES[column](result).strip().lower() != wanted.strip().lower():
                return False
        return True

    def apply_filters(self) -> None:
        """Recompute the filtered view, re-apply the active sort, go to page 1."""
        self._filtered = [r for r in self._results if self._matches(r)]
        self._apply_sort()
        self.state.current_page = 1
        logger.debug("filters applied: %d -> %d results", len(self._results), len(self._filtered))

    def set_search(self, term: str) -> None:
        self.state.search_term = term or ""
        self.apply_filters()

    def set_column_filter(self, column: str, value: str) -> None:
        """Filter on an exact (case-insensitive) display value. "" clears the filter."""
        column = _column(column)
        if column not in FILTER_COLUMNS:
            raise ValueError(f"cannot filter on column {column!r}")
        self.state.column_filters[column] = value or ""
        self.apply_filters()

    def clear_filters(self) -> None:
        self.state.search_term = ""
        for column in FILTER_COLUMNS:
            self.state.column_filters[column] = ""
        self.apply_filters()

    def unique_column_values(self, column: str) -> list[str]:
        """Sorted distinct display values of a filter column over the full set."""
        column = _column(column)
        if column not in FILTER_COLUMNS:
            raise ValueError(f"cannot filter on column {column!r}")
        getter = _FILTER_VALUES[column]
        values = {getter(r) for r in self._results}
        return sorted(v for v in values if v and v != "N/A")

    # ------------------------------------------------------------------ sort

    def _apply_sort(self) -> None:
        column = self.state.sort_column
        if column is None:
            return
        reverse = self.state.sort_direction == "desc"
        key: Callable[[PricingResult], Any]
        if column in NUMERIC_SORT_COLUMNS:
            key = NUMERIC_SORT_COLUMNS[column]
        else:
            key = _folded(TEXT_SORT_COLUMNS[column])
        # sorted() is stable in both directions
        self._filtered = sorted(self._filtered, key=key, reverse=reverse)

    def sort(self, column: str) -> None:
        """Sort by `column`; sorting by the current column again flips direction."""
        column = _column(column)
        if column not in NUMERIC_SORT_COLUMNS and column not in TEXT_SORT_COLUMNS:
            raise ValueError(f"cannot sort on column {column!r}")
        if column == self.state.sort_column:
            self.state.sort_direction = "desc" if self.state.sort_direction == "asc" else "asc"
        else:
            self.state.sort_column = column
            self.state.sort_direction = "asc"
        self._filtered = [r for r in self._results if self._matches(r)]
        self._apply_sort()
        self.state.current_page = 1

    # ------------------------------------------------------------ pagination

    def page_count(self) -> int:
        return math.ceil(len(self._filtered) / self.state.page_size)

    def change_page(self, page: int) -> bool:
        """Go to `page`. Returns False (and changes nothing) outside [1, page_count]."""
        if not 1 <= page <= self.page_count():
            logger.debug("change_page(%s) ignored, page_count=%d", page, self.page_count())
            return False
        self.state.current_page = page
        return True

    def change_page_size(self, page_size: int) -> bool:
        """Set the page size and go to page 1. Returns False for unconfigured sizes."""
        if page_size not in self.page_size_options:
            logger.debug("page size %s rejected, options=%s", page_size, self.page_size_options)
            return False
        self.state.page_size = page_size
        self.state.current_page = 1
        return True

    # ------------------------------------------------------------- rendering

    def _table_row(self, result: PricingResult) -> TableRow:
        return TableRow(
            item_number=result.item_number,
            description=result.description or "Unknown Item",
            status=display_status(result),
            pricing_tier=result.pricing_tier.label,
            source=display_source(result),
            replacement_price=display(result.adjusted_price),
            quantity=display_quantity(result),
            depreciation_category=result.depreciation_category,
            depreciation_percent=result.depreciation_percent,
            depreciation_amount=display_allow_zero(result.depreciation_amount),
            total_price=display(calculated_total(result)),
            url=result.url or "",
        )

    def page(self) -> ViewPage:
        """The current page of the filtered, sorted view."""
        size = self.state.page_size
        start = (self.state.current_page - 1) * size
        end = min(start + size, len(self._filtered))
        rows = [self._table_row(r) for r in self._filtered[start:end]]
        return ViewPage(
            rows=rows,
            current_page=self.state.current_page,
            page_count=self.page_count(),
            page_size=size,
            filtered_count=len(self._filtered),
            total_count=len(self._results),
            start_index=start,
            end_index=max(end, start),
        )

    def current_page_rows(self) -> list[TableRow]:
        return self.page().rows

    def page_frame(self) -> pd.DataFrame:
        """Current page as a DataFrame (one column per TableRow field)."""
        rows = self.current_page_rows()
        columns = list(TableRow.__dataclass_fields__)
        return pd.DataFrame([[getattr(row, c) for c in columns] for row in rows], columns=columns)
