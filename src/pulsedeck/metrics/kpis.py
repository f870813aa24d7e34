"""Aggregate snapshots, derived KPIs and period-over-period deltas.

Ratios are never averaged: every derived metric is recomputed from summed
raw counters and rounded to 2 decimal places (half away from zero).
"""
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Optional


COMPARISON_METRICS = ("spend", "revenue", "roas", "cpa", "ctr", "cpm", "cvr", "mer")

_CENTS = Decimal("0.01")


def round2(value: float) -> float:
    """Round to 2 decimals the way SQL ROUND does on numerics."""
    return float(Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    if denominator > 0:
        return round2(numerator * scale / denominator)
    return 0.0


@dataclass(frozen=True)
class RawTotals:
    """Summed raw counters for a filtered set of daily metric rows."""

    spend: float = 0.0
    revenue: float = 0.0
    impressions: int = 0
    clicks: int = 0
    conversions: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "RawTotals":
        """Build from a query row; NULL sums (no matching rows) become 0."""
        return cls(
            spend=float(row["spend"] or 0),
            revenue=float(row["revenue"] or 0),
            impressions=int(row["impressions"] or 0),
            clicks=int(row["clicks"] or 0),
            conversions=int(row["conversions"] or 0),
        )


@dataclass(frozen=True)
class AggregateSnapshot:
    """Raw sums plus derived KPIs for one window."""

    spend: float
    revenue: float
    impressions: int
    clicks: int
    conversions: int
    roas: float
    cpa: float
    ctr: float
    cpm: float
    cvr: float
    mer: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def compute_snapshot(totals: RawTotals) -> AggregateSnapshot:
    """Derive ROAS, CPA, CTR, CPM, CVR and MER from summed counters.

    Args:
        totals: Summed raw counters

    Returns:
        AggregateSnapshot; a ratio is 0 whenever its denominator is 0
    """
    return AggregateSnapshot(
        spend=totals.spend,
        revenue=totals.revenue,
        impressions=totals.impressions,
        clicks=totals.clicks,
        conversions=totals.conversions,
        roas=_ratio(totals.revenue, totals.spend),
        cpa=_ratio(totals.spend, totals.conversions),
        ctr=_ratio(totals.clicks, totals.impressions, 100.0),
        cpm=_ratio(totals.spend, totals.impressions, 1000.0),
        cvr=_ratio(totals.conversions, totals.clicks, 100.0),
        # MER is total revenue over total spend for the window.
        mer=_ratio(totals.revenue, totals.spend),
    )


def percent_change(current: float, baseline: float) -> float:
    """Percentage change from baseline; 0 when the baseline is not positive."""
    if baseline > 0:
        return round2((current - baseline) / baseline * 100)
    return 0.0


@dataclass(frozen=True)
class ComparisonResult:
    """Percentage change of each headline metric against a prior window."""

    spend_change: float
    revenue_change: float
    roas_change: float
    cpa_change: float
    ctr_change: float
    cpm_change: float
    cvr_change: float
    mer_change: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


def compare_snapshots(
    current: AggregateSnapshot, comparison: AggregateSnapshot
) -> ComparisonResult:
    """Compute per-metric percentage changes between two snapshots."""
    changes = {
        f"{metric}_change": percent_change(
            getattr(current, metric), getattr(comparison, metric)
        )
        for metric in COMPARISON_METRICS
    }
    return ComparisonResult(**changes)


def comparison_or_empty(result: Optional[ComparisonResult]) -> dict[str, float]:
    """Serialize a comparison, using ``{}`` when no comparison window exists."""
    return result.to_dict() if result is not None else {}
