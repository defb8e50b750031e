from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..models.pricing_result import RawResultRecord

"""Service boundary adapter for raw pricing records.

The pricing service returns records whose keys are inconsistently cased and named
(`Price` / `price` / `replacementPrice`, `Total Replacement Price` /
`totalReplacementPrice`, ...). normalize() is the only place that knows about
those spellings; everything downstream works on NormalizedRecord.
"""

__all__ = [
    "FIELD_ALIASES",
    "NormalizedRecord",
    "normalize",
]

# canonical field -> accepted keys, in priority order. Keys are compared after
# lower-casing and dropping everything but letters and digits.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "item_number": ("itemNumber", "Item #", "item_no"),
    "description": ("description", "Item Description", "title"),
    "status": ("Search Status", "status"),
    "source": ("source", "replacementSource", "Replacement Source"),
    "unit_price": ("price", "adjustedPrice", "replacementPrice", "Replacement Price", "unitPrice"),
    "base_price": ("basePrice", "Base Price"),
    "total_price": ("Total Replacement Price", "totalReplacementPrice", "totalPrice"),
    "url": ("url", "productUrl"),
    "pricing_tier": ("pricingTier", "Pricing Tier", "tier"),
    "confidence": ("confidence",),
    "quantity": ("quantity", "QTY"),
    "depreciation_category": ("depCat", "Dep. Cat", "depreciationCategory"),
    "depreciation_percent": ("depPercent", "Dep Percent", "depreciationPercent"),
    "depreciation_amount": ("depAmount", "Dep Amount", "depreciationAmount"),
}

_KEY_RE = re.compile(r"[^a-z0-9]")


def _fold(key: str) -> str:
    return _KEY_RE.sub("", key.lower())


@dataclass(frozen=True)
class NormalizedRecord:
    """Raw values under canonical names. Values are not parsed yet."""
    item_number: Any = None
    description: Any = None
    status: Any = None
    source: Any = None
    unit_price: Any = None
    base_price: Any = None
    total_price: Any = None
    url: Any = None
    pricing_tier: Any = None
    confidence: Any = None
    quantity: Any = None
    depreciation_category: Any = None
    depreciation_percent: Any = None
    depreciation_amount: Any = None


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def normalize(raw: RawResultRecord) -> NormalizedRecord:
    """Map one raw record onto canonical field names.

    The first alias holding a non-empty value wins. A record that is not a
    mapping normalizes to an empty record.
    """
    if not isinstance(raw, Mapping):
        return NormalizedRecord()
    folded: dict[str, Any] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            continue
        folded_key = _fold(key)
        if not _present(folded.get(folded_key)):
            folded[folded_key] = value

    values: dict[str, Any] = {}
    for field_name, aliases in FIELD_ALIASES.items():
        for alias in aliases:
            value = folded.get(_fold(alias))
            if _present(value):
                values[field_name] = value
                break
    return NormalizedRecord(**values)
