"""KPI overview aggregator: current window, comparison window and insights."""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

from ..errors import NotFoundError
from ..storage.metrics_store import MetricsStore
from .dates import DateRange
from .insights import (
    ANOMALY_INSIGHT_LIMIT,
    ANOMALY_LOOKBACK_DAYS,
    Insight,
    PlatformSnapshot,
    anomaly_insights,
    comparison_insights,
    platform_insights,
)
from .kpis import (
    AggregateSnapshot,
    ComparisonResult,
    compare_snapshots,
    comparison_or_empty,
    compute_snapshot,
    round2,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Overview:
    """Everything the overview endpoint returns for one request."""

    date_range: DateRange
    current: AggregateSnapshot
    comparison_snapshot: Optional[AggregateSnapshot] = None
    comparison: Optional[ComparisonResult] = None
    insights: list[Insight] = field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        current = self.current
        return {
            "spend": round2(current.spend),
            "revenue": round2(current.revenue),
            "roas": current.roas,
            "cpa": current.cpa,
            "ctr": current.ctr,
            "cpm": current.cpm,
            "cvr": current.cvr,
            "mer": current.mer,
            "comparison": comparison_or_empty(self.comparison),
            "insights": [insight.to_dict() for insight in self.insights],
        }


def require_workspace(store: MetricsStore, workspace_id: str) -> None:
    """Raise NotFoundError unless the workspace exists."""
    if not store.workspace_exists(workspace_id):
        raise NotFoundError(workspace_id)


class OverviewAggregator:
    """Compute the KPI overview for a workspace.

    Issues sequential queries on one store: current aggregate, optional
    comparison aggregate, platform breakdown, anomaly lookup. Any query
    failure aborts the whole overview.
    """

    def __init__(self, store: MetricsStore) -> None:
        self.store = store

    def snapshot(
        self,
        workspace_id: str,
        date_range: DateRange,
        platforms: Optional[Sequence[str]] = None,
        accounts: Optional[Sequence[str]] = None,
    ) -> AggregateSnapshot:
        """Aggregate snapshot for the primary window."""
        totals = self.store.sum_counters(
            workspace_id, date_range.start, date_range.end, platforms, accounts
        )
        return compute_snapshot(totals)

    def platform_snapshots(
        self, workspace_id: str, date_range: DateRange
    ) -> list[PlatformSnapshot]:
        """Per-platform snapshots over the primary window (no filters applied)."""
        return [
            PlatformSnapshot(platform=item.platform, snapshot=compute_snapshot(item.totals))
            for item in self.store.platform_totals(
                workspace_id, date_range.start, date_range.end
            )
        ]

    def build(
        self,
        workspace_id: str,
        date_range: DateRange,
        platforms: Optional[Sequence[str]] = None,
        accounts: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ) -> Overview:
        """Build the overview.

        Args:
            workspace_id: Workspace ID
            date_range: Resolved primary and optional comparison windows
            platforms: Optional platform filter
            accounts: Optional account filter
            now: Reference time for the anomaly lookback (defaults to now)

        Returns:
            Overview

        Raises:
            NotFoundError: Unknown workspace
            DependencyError: Any storage failure
        """
        require_workspace(self.store, workspace_id)
        now = now or datetime.now()

        current = self.snapshot(workspace_id, date_range, platforms, accounts)

        comparison_snapshot: Optional[AggregateSnapshot] = None
        comparison: Optional[ComparisonResult] = None
        if date_range.has_comparison:
            totals = self.store.sum_counters(
                workspace_id,
                date_range.comparison_start,
                date_range.comparison_end,
                platforms,
                accounts,
            )
            comparison_snapshot = compute_snapshot(totals)
            comparison = compare_snapshots(current, comparison_snapshot)

        insights = comparison_insights(comparison, workspace_id)
        insights.extend(platform_insights(self.platform_snapshots(workspace_id, date_range)))

        anomalies = self.store.unreviewed_anomalies(
            workspace_id,
            since=now - timedelta(days=ANOMALY_LOOKBACK_DAYS),
            limit=ANOMALY_INSIGHT_LIMIT,
        )
        insights.extend(anomaly_insights(anomalies))

        logger.info(
            "Overview built: workspace=%s window=%s..%s comparison=%s insights=%s",
            workspace_id,
            date_range.start.isoformat(),
            date_range.end.isoformat(),
            date_range.has_comparison,
            len(insights),
        )

        return Overview(
            date_range=date_range,
            current=current,
            comparison_snapshot=comparison_snapshot,
            comparison=comparison,
            insights=insights,
        )
