"""Unit tests for insight rules."""
import pytest

from src.pulsedeck.metrics.insights import (
    AnomalyRecord,
    InsightType,
    PlatformSnapshot,
    Severity,
    anomaly_insights,
    comparison_insights,
    platform_insights,
)
from src.pulsedeck.metrics.kpis import ComparisonResult, RawTotals, compute_snapshot


def _comparison(spend_change: float = 0.0, roas_change: float = 0.0) -> ComparisonResult:
    return ComparisonResult(
        spend_change=spend_change,
        revenue_change=0.0,
        roas_change=roas_change,
        cpa_change=0.0,
        ctr_change=0.0,
        cpm_change=0.0,
        cvr_change=0.0,
        mer_change=0.0,
    )


def _platform(name: str, spend: float, revenue: float) -> PlatformSnapshot:
    return PlatformSnapshot(
        platform=name,
        snapshot=compute_snapshot(RawTotals(spend=spend, revenue=revenue)),
    )


def test_no_comparison_no_insights():
    assert comparison_insights(None, "ws_1") == []


def test_spend_increase_over_25_is_warning():
    insights = comparison_insights(_comparison(spend_change=30.0), "ws_1")

    assert len(insights) == 1
    insight = insights[0]
    assert insight.type == InsightType.PERFORMANCE_CHANGE
    assert insight.severity == Severity.WARNING
    assert insight.entity_type == "workspace"
    assert insight.entity_id == "ws_1"
    assert insight.message == "Spend increased by 30.0% compared to previous period"


def test_spend_decrease_between_10_and_25_is_info():
    insights = comparison_insights(_comparison(spend_change=-12.5), "ws_1")

    assert insights[0].severity == Severity.INFO
    assert "decreased by 12.5%" in insights[0].message


@pytest.mark.parametrize("change", [10.0, -10.0, 0.0])
def test_spend_threshold_is_strict(change):
    assert comparison_insights(_comparison(spend_change=change), "ws_1") == []


def test_spend_exactly_25_is_info():
    insights = comparison_insights(_comparison(spend_change=25.0), "ws_1")

    assert insights[0].severity == Severity.INFO


def test_roas_decline_is_critical():
    insights = comparison_insights(_comparison(roas_change=-20.0), "ws_1")

    assert len(insights) == 1
    assert insights[0].severity == Severity.CRITICAL
    assert insights[0].message == "ROAS declined by 20.0%"


def test_roas_improvement_is_info():
    insights = comparison_insights(_comparison(roas_change=16.0), "ws_1")

    assert insights[0].severity == Severity.INFO
    assert "improved" in insights[0].message


@pytest.mark.parametrize("change", [15.0, -15.0])
def test_roas_threshold_is_strict(change):
    assert comparison_insights(_comparison(roas_change=change), "ws_1") == []


def test_spend_and_roas_insights_in_order():
    insights = comparison_insights(_comparison(spend_change=40.0, roas_change=-30.0), "ws_1")

    assert [insight.severity for insight in insights] == [Severity.WARNING, Severity.CRITICAL]
    assert insights[0].message.startswith("Spend")
    assert insights[1].message.startswith("ROAS")


def test_platform_leader_and_underperformer():
    insights = platform_insights(
        [_platform("tiktok", 100.0, 50.0), _platform("facebook", 100.0, 400.0)]
    )

    assert len(insights) == 2
    leader, laggard = insights
    assert leader.type == InsightType.TREND
    assert leader.severity == Severity.INFO
    assert leader.entity_id == "facebook"
    assert leader.message == "facebook is your best performing platform with 4.00 ROAS"
    assert laggard.severity == Severity.WARNING
    assert laggard.entity_type == "platform"
    assert laggard.entity_id == "tiktok"
    assert "0.50 ROAS" in laggard.message


def test_platform_laggard_at_exactly_one_not_flagged():
    insights = platform_insights(
        [_platform("google", 100.0, 100.0), _platform("facebook", 100.0, 300.0)]
    )

    assert len(insights) == 1
    assert insights[0].entity_id == "facebook"


def test_single_platform_no_trend_insight():
    assert platform_insights([_platform("google", 100.0, 10.0)]) == []


def test_platforms_without_spend_ignored():
    insights = platform_insights(
        [
            _platform("google", 100.0, 10.0),
            _platform("snapchat", 0.0, 0.0),
        ]
    )

    assert insights == []


def test_anomaly_insights_keep_order_and_severity():
    anomalies = [
        AnomalyRecord(
            entity_type="campaign",
            entity_id="cmp_1",
            metric="cpa",
            anomaly_type="spike",
            severity=Severity.CRITICAL,
            current_value=48.5,
            expected_value=20.0,
            created_at="2024-06-14T10:00:00",
        ),
        AnomalyRecord(
            entity_type="account",
            entity_id="acc_1",
            metric="roas",
            anomaly_type="drop",
            severity=Severity.INFO,
            current_value=1.0,
            expected_value=2.0,
            created_at="2024-06-13T10:00:00",
        ),
    ]

    insights = anomaly_insights(anomalies)

    assert [insight.entity_id for insight in insights] == ["cmp_1", "acc_1"]
    assert insights[0].type == InsightType.ANOMALY
    assert insights[0].severity == Severity.CRITICAL
    assert insights[0].message == "CPA spike detected in campaign - 48.5 vs expected 20"
    assert insights[1].to_dict()["severity"] == "info"
