from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Any

from ..models.pricing_result import PricingResult, PricingTier, RawResultRecord, ResultStatus
from ..models.raw_table import cell_text
from .formatter import extract_amount, extract_numeric
from .normalizer import normalize

"""ResultClassifier: raw pricing records -> PricingResult.

Tier assignment, in priority order:
1. an upstream tier (e.g. from image analysis) is authoritative and kept
2. status FOUND + specific source  -> EXACT_MATCH
   status FOUND + generic / no source -> WEB_SEARCH
   status ESTIMATED -> MARKET_AVERAGE
   anything else -> CATEGORY_BASELINE

Also hosts the source-name helpers shared by the results table and the exporter.
"""

__all__ = [
    "GENERIC_SOURCES",
    "UPSTREAM_TIER_ALIASES",
    "parse_status",
    "parse_tier",
    "is_generic_source",
    "derive_tier",
    "classify",
    "classify_all",
    "clean_source_name",
    "normalize_source_name",
    "display_source",
]

logger = logging.getLogger(__name__)

# Placeholder "sources" the service emits when no retailer was identified.
GENERIC_SOURCES = frozenset({
    "",
    "n/a",
    "na",
    "none",
    "unknown",
    "no trusted source found",
    "market search completed - no trusted prices found",
    "market search",
    "web search",
    "market average",
    "category baseline",
    "default estimate",
    "system estimate",
    "openai estimate",
    "google shopping fallback",
    "purchase price fallback",
    "emergency baseline",
    "error recovery",
    "processing complete",
})

UPSTREAM_TIER_ALIASES: dict[str, PricingTier] = {
    "SERP": PricingTier.EXACT_MATCH,
    "MARKET_NEW": PricingTier.EXACT_MATCH,
    "EXACT": PricingTier.EXACT_MATCH,
    "FALLBACK": PricingTier.WEB_SEARCH,
    "AGGREGATED": PricingTier.MARKET_AVERAGE,
    "BASELINE": PricingTier.CATEGORY_BASELINE,
    "NO_MARKET_PRICE": PricingTier.UNAVAILABLE,
}

_STATUS_ALIASES: dict[str, ResultStatus] = {
    "found": ResultStatus.FOUND,
    "estimated": ResultStatus.ESTIMATED,
    "unavailable": ResultStatus.UNAVAILABLE,
    "no-market-price": ResultStatus.UNAVAILABLE,
    "not-found": ResultStatus.UNAVAILABLE,
    "manual-review": ResultStatus.MANUAL_REVIEW,
    "manual-needed": ResultStatus.MANUAL_REVIEW,
}

_HOST_NAMES = {
    "walmart.com": "Walmart",
    "amazon.com": "Amazon",
    "homedepot.com": "Home Depot",
    "lowes.com": "Lowes",
    "target.com": "Target",
    "bestbuy.com": "Best Buy",
    "wayfair.com": "Wayfair",
    "staples.com": "Staples",
    "officedepot.com": "Office Depot",
}

_PROTOCOL_RE = re.compile(r"^https?://", re.IGNORECASE)
_WWW_RE = re.compile(r"^www\.", re.IGNORECASE)


def parse_status(value: Any) -> ResultStatus | None:
    key = re.sub(r"[\s_]+", "-", cell_text(value).lower())
    return _STATUS_ALIASES.get(key)


def parse_tier(value: Any) -> PricingTier | None:
    """Recognised upstream tier, or None."""
    key = re.sub(r"[\s-]+", "_", cell_text(value).upper())
    if not key:
        return None
    if key in PricingTier.__members__:
        return PricingTier[key]
    return UPSTREAM_TIER_ALIASES.get(key)


def is_generic_source(source: Any) -> bool:
    return cell_text(source).lower() in GENERIC_SOURCES


def derive_tier(status: ResultStatus | None, source: Any) -> PricingTier:
    if status is ResultStatus.FOUND:
        return PricingTier.WEB_SEARCH if is_generic_source(source) else PricingTier.EXACT_MATCH
    if status is ResultStatus.ESTIMATED:
        return PricingTier.MARKET_AVERAGE
    return PricingTier.CATEGORY_BASELINE


def _confidence(value: Any) -> float | None:
    number = extract_amount(value)
    if number is None:
        return None
    return min(max(number, 0.0), 1.0)


def _item_number(value: Any, fallback: int) -> int:
    number = extract_amount(value)
    if number is None or number != int(number) or number < 1:
        return fallback
    return int(number)


def classify(raw: RawResultRecord, item_number: int | None = None) -> PricingResult:
    """Classify one raw record.

    item_number is used when the record does not carry its own item number
    (1 when neither is available).
    """
    record = normalize(raw)
    status = parse_status(record.status)
    source = cell_text(record.source)

    tier = parse_tier(record.pricing_tier)
    if tier is None:
        if record.pricing_tier is not None:
            logger.warning("unrecognised upstream tier=%r; deriving from status", record.pricing_tier)
        tier = derive_tier(status, source)

    url = cell_text(record.url)
    if url.upper() == "N/A":
        url = ""

    return PricingResult(
        item_number=_item_number(record.item_number, item_number or 1),
        description=cell_text(record.description),
        status=status,
        source=source,
        unit_price=extract_numeric(record.unit_price),
        total_price=extract_numeric(record.total_price),
        url=url or None,
        pricing_tier=tier,
        confidence=_confidence(record.confidence),
        base_price=extract_numeric(record.base_price),
        quantity=extract_numeric(record.quantity),
        depreciation_category=cell_text(record.depreciation_category),
        depreciation_percent=cell_text(record.depreciation_percent),
        depreciation_amount=extract_amount(record.depreciation_amount),
    )


def classify_all(raws: Iterable[RawResultRecord]) -> list[PricingResult]:
    """Classify a result list, numbering items 1..N by position."""
    return [classify(raw, item_number=i) for i, raw in enumerate(raws, start=1)]


def clean_source_name(source: str) -> str:
    """Strip protocol and `www.`, keep the host part, capitalise the first letter."""
    cleaned = _WWW_RE.sub("", _PROTOCOL_RE.sub("", source.strip()))
    cleaned = cleaned.split("/")[0]
    return cleaned[:1].upper() + cleaned[1:]


def normalize_source_name(source: Any, tier: PricingTier) -> str:
    """Source label for exports: cleaned retailer / domain, or the tier label."""
    if is_generic_source(source):
        return tier.label
    cleaned = clean_source_name(cell_text(source))
    return cleaned or tier.label


def _source_from_url(url: str) -> str:
    host = _WWW_RE.sub("", _PROTOCOL_RE.sub("", url.strip())).split("/")[0].lower()
    host = host.split(":")[0]
    if not host:
        return ""
    return _HOST_NAMES.get(host, host[:1].upper() + host[1:])


def display_source(result: PricingResult) -> str:
    """Source label for the results table.

    Same as normalize_source_name, except that a result with no usable source but
    a product URL is labelled with the URL's retailer.
    """
    if is_generic_source(result.source) and result.url:
        derived = _source_from_url(result.url)
        if derived:
            return derived
    return normalize_source_name(result.source, result.pricing_tier)
