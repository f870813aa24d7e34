"""PulseDeck metrics core.

Resolves date windows, derives KPIs from summed counters, compares periods
and generates insights. Storage-backed aggregation lives in
``metrics.overview`` and ``metrics.breakdowns``.
"""
from .dates import ComparisonMode, DatePreset, DateRange, resolve_date_range
from .insights import Insight, InsightType, Severity
from .kpis import AggregateSnapshot, ComparisonResult, RawTotals, compute_snapshot

__all__ = [
    "AggregateSnapshot",
    "ComparisonMode",
    "ComparisonResult",
    "DatePreset",
    "DateRange",
    "Insight",
    "InsightType",
    "RawTotals",
    "Severity",
    "compute_snapshot",
    "resolve_date_range",
]
