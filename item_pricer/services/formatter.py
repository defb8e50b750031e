from __future__ import annotations

import math
from typing import Any

from ..models.pricing_result import ResultStatus

"""Price formatting and normalization (PriceFormatter).

Two numeric policies coexist on purpose:

- extract_numeric / display: a price that is missing, unparsable or non-positive
  is *absent* (None / ""). The results table never shows a fake price.
- extract_amount / display_allow_zero: zero and negative amounts pass through
  (depreciation amounts legitimately show $0.00).

ensure_numeric is the CSV export policy: a price is never left blank and falls
back to a minimum placeholder.
"""

__all__ = [
    "MIN_PLACEHOLDER_PRICE",
    "extract_numeric",
    "extract_amount",
    "display",
    "display_allow_zero",
    "ensure_numeric",
    "status_label",
]

MIN_PLACEHOLDER_PRICE = 1.00

_STATUS_LABELS = {
    ResultStatus.FOUND: "Found",
    ResultStatus.ESTIMATED: "Estimated",
    ResultStatus.MANUAL_REVIEW: "Manual Review",
}


def _parse(value: Any) -> float | None:
    """Parse a number or currency string; None for anything else."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace("$", "").replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def extract_numeric(value: Any) -> float | None:
    """Positive price or None.

    >>> extract_numeric("$1,234.50")
    1234.5
    >>> extract_numeric("") is None
    True
    >>> extract_numeric(-5) is None
    True
    """
    number = _parse(value)
    if number is None or number <= 0:
        return None
    return number


def extract_amount(value: Any) -> float | None:
    """Like extract_numeric but zero and negative amounts pass through."""
    return _parse(value)


def display(value: Any) -> str:
    """`$X.XX` for a positive price, "" otherwise."""
    number = extract_numeric(value)
    if number is None:
        return ""
    return f"${number:.2f}"


def display_allow_zero(value: Any) -> str:
    number = extract_amount(value)
    if number is None:
        return ""
    return f"${number:.2f}"


def ensure_numeric(value: Any, minimum: float = MIN_PLACEHOLDER_PRICE) -> float:
    """Positive price, or `minimum` when no valid price exists (CSV export)."""
    number = extract_numeric(value)
    return number if number is not None else minimum


def status_label(status: ResultStatus | None) -> str:
    # never "N/A"
    return _STATUS_LABELS.get(status, "Processed") if status is not None else "Processed"
