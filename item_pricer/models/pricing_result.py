from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

"""PricingResult domain model and its enums.

A PricingResult is the classified answer from the pricing service for one
non-blank source row. Results arrive in the same relative order as the rows were
submitted; position is the only link back to the source row.
"""

__all__ = [
    "RawResultRecord",
    "ResultStatus",
    "PricingTier",
    "PricingResult",
]

# Upstream record exactly as received (inconsistent key casing).
RawResultRecord = Mapping[str, Any]


class ResultStatus(Enum):
    """Status reported by the pricing service for one item."""
    FOUND = "found"
    ESTIMATED = "estimated"
    UNAVAILABLE = "unavailable"
    MANUAL_REVIEW = "manual-review"


class PricingTier(Enum):
    """How a replacement price was obtained.

    Order of preference for display: exact match > web search > market average >
    category baseline. UNAVAILABLE means no market price could be determined.
    """
    EXACT_MATCH = "EXACT_MATCH"
    WEB_SEARCH = "WEB_SEARCH"
    MARKET_AVERAGE = "MARKET_AVERAGE"
    CATEGORY_BASELINE = "CATEGORY_BASELINE"
    UNAVAILABLE = "UNAVAILABLE"

    @property
    def label(self) -> str:
        return _TIER_LABELS[self]


_TIER_LABELS = {
    PricingTier.EXACT_MATCH: "Exact Match",
    PricingTier.WEB_SEARCH: "Web Search",
    PricingTier.MARKET_AVERAGE: "Market Average",
    PricingTier.CATEGORY_BASELINE: "Category Baseline",
    PricingTier.UNAVAILABLE: "No Market Price",
}


@dataclass(frozen=True)
class PricingResult:
    """Classified pricing answer for one non-blank source row."""
    item_number: int
    description: str
    status: ResultStatus | None  # None: upstream status not recognised
    source: str
    unit_price: float | None  # replacement (adjusted) unit price, positive or None
    total_price: float | None
    url: str | None
    pricing_tier: PricingTier
    confidence: float | None = None  # 0..1
    base_price: float | None = None
    quantity: float | None = None
    depreciation_category: str = ""
    depreciation_percent: str = ""
    depreciation_amount: float | None = None  # zero / negative allowed

    @property
    def adjusted_price(self) -> float | None:
        return self.unit_price
