from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from ..models.pricing_result import PricingResult, PricingTier, ResultStatus

"""Results summary statistics and SUMMARY line rendering.

SUMMARY line format:
SUMMARY items={n} exact={exact} web={web} market={market} baseline={baseline}
unavailable={unavailable} manual_review={manual} success_rate={pct}
total_value={total} elapsed_sec={elapsed}
"""

__all__ = [
    "ResultsStatistics",
    "calculate_statistics",
    "render_summary_line",
]


@dataclass(frozen=True)
class ResultsStatistics:
    """Aggregates over one results set.

    success_rate is the share (0-100, rounded) of items priced by an exact match
    or a web search. Price figures only consider positive adjusted prices.
    """
    total_items: int
    tier_counts: dict[PricingTier, int] = field(default_factory=dict)
    status_counts: dict[ResultStatus | None, int] = field(default_factory=dict)
    exact_matches: int = 0
    success_rate: int = 0
    priced_items: int = 0
    total_value: float = 0.0
    average_price: float = 0.0
    min_price: float = 0.0
    max_price: float = 0.0
    elapsed_seconds: float = 0.0

    @property
    def estimated_items(self) -> int:
        return self.tier_counts[PricingTier.MARKET_AVERAGE] + self.tier_counts[PricingTier.CATEGORY_BASELINE]

    @property
    def manual_review_items(self) -> int:
        return self.status_counts.get(ResultStatus.MANUAL_REVIEW, 0)


def calculate_statistics(results: Sequence[PricingResult], elapsed_seconds: float = 0.0) -> ResultsStatistics:
    tier_counts = {tier: 0 for tier in PricingTier}
    status_counts: dict[ResultStatus | None, int] = {}
    prices: list[float] = []

    for result in results:
        tier_counts[result.pricing_tier] += 1
        status_counts[result.status] = status_counts.get(result.status, 0) + 1
        if result.adjusted_price is not None and result.adjusted_price > 0:
            prices.append(result.adjusted_price)

    total = len(results)
    exact = tier_counts[PricingTier.EXACT_MATCH] + tier_counts[PricingTier.WEB_SEARCH]
    total_value = sum(prices)
    return ResultsStatistics(
        total_items=total,
        tier_counts=tier_counts,
        status_counts=status_counts,
        exact_matches=exact,
        success_rate=round(exact / total * 100) if total else 0,
        priced_items=len(prices),
        total_value=total_value,
        average_price=total_value / len(prices) if prices else 0.0,
        min_price=min(prices) if prices else 0.0,
        max_price=max(prices) if prices else 0.0,
        elapsed_seconds=elapsed_seconds,
    )


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # avoid scientific notation
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.2f}"


def render_summary_line(stats: ResultsStatistics) -> str:
    """Render the SUMMARY line for one results set.

    >>> render_summary_line(calculate_statistics([]))
    'SUMMARY items=0 exact=0 web=0 market=0 baseline=0 unavailable=0 manual_review=0 success_rate=0 total_value=0.00 elapsed_sec=0'
    """
    tiers = stats.tier_counts
    return (
        f"SUMMARY items={stats.total_items} "
        f"exact={tiers.get(PricingTier.EXACT_MATCH, 0)} "
        f"web={tiers.get(PricingTier.WEB_SEARCH, 0)} "
        f"market={tiers.get(PricingTier.MARKET_AVERAGE, 0)} "
        f"baseline={tiers.get(PricingTier.CATEGORY_BASELINE, 0)} "
        f"unavailable={tiers.get(PricingTier.UNAVAILABLE, 0)} "
        f"manual_review={stats.manual_review_items} "
        f"success_rate={stats.success_rate} "
        f"total_value={stats.total_value:.2f} "
        f"elapsed_sec={_format_seconds(stats.elapsed_seconds)}"
    )
