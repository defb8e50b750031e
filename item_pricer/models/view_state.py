from __future__ import annotations

from dataclasses import dataclass, field

"""ViewState model for the results table.

One ViewState per displayed results set. Only the ResultsTableEngine that owns it
writes to it.
"""

__all__ = [
    "FILTER_COLUMNS",
    "ViewState",
    "TableRow",
    "ViewPage",
]

FILTER_COLUMNS = ("status", "source", "depreciation_category")


def _empty_filters() -> dict[str, str]:
    return {column: "" for column in FILTER_COLUMNS}


@dataclass
class ViewState:
    """Filter / sort / pagination state of the displayed results table."""
    search_term: str = ""
    column_filters: dict[str, str] = field(default_factory=_empty_filters)
    sort_column: str | None = None
    sort_direction: str = "asc"  # asc | desc
    current_page: int = 1
    page_size: int = 10

    def active_filters(self) -> dict[str, str]:
        return {k: v for k, v in self.column_filters.items() if v}


@dataclass(frozen=True)
class TableRow:
    """Display values for one rendered table row."""
    item_number: int
    description: str
    status: str
    pricing_tier: str
    source: str
    replacement_price: str
    quantity: float
    depreciation_category: str
    depreciation_percent: str
    depreciation_amount: str
    total_price: str
    url: str


@dataclass(frozen=True)
class ViewPage:
    """One rendered page of the filtered, sorted view."""
    rows: list[TableRow]
    current_page: int
    page_count: int
    page_size: int
    filtered_count: int
    total_count: int
    start_index: int  # 0-based, inclusive
    end_index: int  # 0-based, exclusive

    @property
    def has_pagination(self) -> bool:
        return self.page_count > 1
