"""Rule-based insight generation for the metrics overview."""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .kpis import AggregateSnapshot, ComparisonResult


SPEND_CHANGE_THRESHOLD = 10.0
SPEND_CHANGE_WARNING = 25.0
ROAS_CHANGE_THRESHOLD = 15.0
UNDERPERFORMING_ROAS = 1.0
ANOMALY_LOOKBACK_DAYS = 7
ANOMALY_INSIGHT_LIMIT = 3


class InsightType(str, Enum):
    """Insight categories."""

    PERFORMANCE_CHANGE = "performance_change"
    TREND = "trend"
    ANOMALY = "anomaly"


class Severity(str, Enum):
    """Insight severities, lowest to highest."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.INFO: 1, Severity.WARNING: 2, Severity.CRITICAL: 3}


@dataclass(frozen=True)
class Insight:
    """Human-readable observation attached to an overview response."""

    type: InsightType
    message: str
    severity: Severity
    entity_type: str
    entity_id: str

    def to_dict(self) -> dict[str, str]:
        return {
            "type": self.type.value,
            "message": self.message,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
        }


@dataclass(frozen=True)
class PlatformSnapshot:
    """Aggregate snapshot for a single ad platform."""

    platform: str
    snapshot: AggregateSnapshot


@dataclass(frozen=True)
class AnomalyRecord:
    """Unreviewed anomaly detection read from the anomaly store."""

    entity_type: str
    entity_id: str
    metric: str
    anomaly_type: str
    severity: Severity
    current_value: float
    expected_value: float
    created_at: str


def _format_value(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def comparison_insights(
    comparison: Optional[ComparisonResult], workspace_id: str
) -> list[Insight]:
    """Spend and ROAS change insights; empty when there is no comparison."""
    if comparison is None:
        return []

    insights: list[Insight] = []

    spend_change = comparison.spend_change
    if abs(spend_change) > SPEND_CHANGE_THRESHOLD:
        direction = "increased" if spend_change > 0 else "decreased"
        insights.append(
            Insight(
                type=InsightType.PERFORMANCE_CHANGE,
                message=(
                    f"Spend {direction} by {abs(spend_change):.1f}% "
                    "compared to previous period"
                ),
                severity=(
                    Severity.WARNING
                    if abs(spend_change) > SPEND_CHANGE_WARNING
                    else Severity.INFO
                ),
                entity_type="workspace",
                entity_id=workspace_id,
            )
        )

    roas_change = comparison.roas_change
    if abs(roas_change) > ROAS_CHANGE_THRESHOLD:
        direction = "improved" if roas_change > 0 else "declined"
        insights.append(
            Insight(
                type=InsightType.PERFORMANCE_CHANGE,
                message=f"ROAS {direction} by {abs(roas_change):.1f}%",
                severity=(
                    Severity.CRITICAL
                    if roas_change < -ROAS_CHANGE_THRESHOLD
                    else Severity.INFO
                ),
                entity_type="workspace",
                entity_id=workspace_id,
            )
        )

    return insights


def platform_insights(platforms: Iterable[PlatformSnapshot]) -> list[Insight]:
    """Leader and underperformer insights across platforms with spend.

    Platforms are ranked by ROAS descending (ties by name). Nothing is
    emitted unless at least two platforms have spend.
    """
    ranked = sorted(
        (item for item in platforms if item.snapshot.spend > 0),
        key=lambda item: (-item.snapshot.roas, item.platform),
    )
    if len(ranked) < 2:
        return []

    best = ranked[0]
    worst = ranked[-1]

    insights = [
        Insight(
            type=InsightType.TREND,
            message=(
                f"{best.platform} is your best performing platform "
                f"with {best.snapshot.roas:.2f} ROAS"
            ),
            severity=Severity.INFO,
            entity_type="platform",
            entity_id=best.platform,
        )
    ]

    if worst.snapshot.roas < UNDERPERFORMING_ROAS:
        insights.append(
            Insight(
                type=InsightType.TREND,
                message=(
                    f"{worst.platform} is underperforming with "
                    f"{worst.snapshot.roas:.2f} ROAS - consider optimization"
                ),
                severity=Severity.WARNING,
                entity_type="platform",
                entity_id=worst.platform,
            )
        )

    return insights


def anomaly_insights(anomalies: Iterable[AnomalyRecord]) -> list[Insight]:
    """One insight per anomaly, keeping the store's ordering."""
    return [
        Insight(
            type=InsightType.ANOMALY,
            message=(
                f"{anomaly.metric.upper()} {anomaly.anomaly_type} detected in "
                f"{anomaly.entity_type} - {_format_value(anomaly.current_value)} "
                f"vs expected {_format_value(anomaly.expected_value)}"
            ),
            severity=anomaly.severity,
            entity_type=anomaly.entity_type,
            entity_id=anomaly.entity_id,
        )
        for anomaly in anomalies
    ]
