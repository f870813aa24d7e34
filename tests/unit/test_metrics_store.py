"""Unit tests for MetricsStore queries."""
import sqlite3
from datetime import date, datetime, timedelta

import pytest

from src.pulsedeck.errors import DependencyError
from src.pulsedeck.metrics.insights import Severity
from src.pulsedeck.metrics.kpis import RawTotals
from src.pulsedeck.storage.metrics_store import MetricsStore
from tests.helpers import (
    add_account,
    add_anomaly,
    add_metric,
    add_workspace,
    connect,
    make_db,
)


NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def db_conn(tmp_path):
    """Seeded database with two workspaces and three accounts."""
    conn = connect(make_db(tmp_path))
    add_workspace(conn, "ws_1")
    add_workspace(conn, "ws_2")
    add_account(conn, "acc_fb", "facebook", "ws_1")
    add_account(conn, "acc_google", "google", "ws_1")
    add_account(conn, "acc_other", "facebook", "ws_2")
    yield conn
    conn.close()


@pytest.fixture
def store(db_conn):
    return MetricsStore(db_conn)


def test_workspace_exists(store):
    assert store.workspace_exists("ws_1")
    assert not store.workspace_exists("ws_missing")


def test_sum_counters_adds_rows_in_window(db_conn, store):
    add_metric(db_conn, "2024-06-01", "acc_fb", "facebook", 10.5, 1000, 20, 2, 30.0)
    add_metric(db_conn, "2024-06-02", "acc_fb", "facebook", 20.25, 2000, 30, 3, 45.5)
    add_metric(db_conn, "2024-06-03", "acc_google", "google", 5.0, 500, 5, 1, 10.0)
    add_metric(db_conn, "2024-06-04", "acc_google", "google", 99.0, 9900, 99, 9, 99.0)

    totals = store.sum_counters("ws_1", date(2024, 6, 1), date(2024, 6, 3))

    assert totals == RawTotals(
        spend=35.75, revenue=85.5, impressions=3500, clicks=55, conversions=6
    )


def test_sum_counters_window_is_inclusive(db_conn, store):
    add_metric(db_conn, "2024-06-01", "acc_fb", "facebook", spend=1.0)
    add_metric(db_conn, "2024-06-05", "acc_fb", "facebook", spend=2.0)

    totals = store.sum_counters("ws_1", date(2024, 6, 1), date(2024, 6, 5))

    assert totals.spend == 3.0


def test_sum_counters_null_counters_count_as_zero(db_conn, store):
    add_metric(db_conn, "2024-06-01", "acc_fb", "facebook", None, None, None, None, None)
    add_metric(db_conn, "2024-06-01", "acc_fb", "facebook", 5.0, 100, None, 1, None)

    totals = store.sum_counters("ws_1", date(2024, 6, 1), date(2024, 6, 1))

    assert totals == RawTotals(spend=5.0, revenue=0.0, impressions=100, clicks=0, conversions=1)


def test_sum_counters_empty_window(store):
    assert store.sum_counters("ws_1", date(2024, 1, 1), date(2024, 1, 31)) == RawTotals()


def test_sum_counters_isolates_workspaces(db_conn, store):
    add_metric(db_conn, "2024-06-01", "acc_fb", "facebook", spend=10.0)
    add_metric(db_conn, "2024-06-01", "acc_other", "facebook", spend=1000.0)

    assert store.sum_counters("ws_1", date(2024, 6, 1), date(2024, 6, 1)).spend == 10.0
    assert store.sum_counters("ws_2", date(2024, 6, 1), date(2024, 6, 1)).spend == 1000.0


def test_sum_counters_platform_and_account_filters(db_conn, store):
    add_metric(db_conn, "2024-06-01", "acc_fb", "facebook", spend=10.0)
    add_metric(db_conn, "2024-06-01", "acc_google", "google", spend=20.0)

    window = (date(2024, 6, 1), date(2024, 6, 1))

    assert store.sum_counters("ws_1", *window, platforms=["google"]).spend == 20.0
    assert store.sum_counters("ws_1", *window, accounts=["acc_fb"]).spend == 10.0
    assert store.sum_counters("ws_1", *window, platforms=["facebook", "google"]).spend == 30.0
    assert (
        store.sum_counters("ws_1", *window, platforms=["google"], accounts=["acc_fb"]).spend
        == 0.0
    )


def test_platform_totals(db_conn, store):
    add_metric(db_conn, "2024-06-01", "acc_fb", "facebook", 100.0, revenue=400.0, campaign_id="cmp_a")
    add_metric(db_conn, "2024-06-02", "acc_fb", "facebook", 50.0, revenue=0.0, campaign_id="cmp_b")
    add_metric(db_conn, "2024-06-01", "acc_google", "google", 100.0, revenue=50.0)

    rows = store.platform_totals("ws_1", date(2024, 6, 1), date(2024, 6, 30))

    assert [row.platform for row in rows] == ["facebook", "google"]
    facebook = rows[0]
    assert facebook.totals.spend == 150.0
    assert facebook.totals.revenue == 400.0
    assert facebook.account_count == 1
    assert facebook.campaign_count == 2
    assert rows[1].campaign_count == 0


def test_grouped_totals_by_date(db_conn, store):
    add_metric(db_conn, "2024-06-02", "acc_fb", "facebook", spend=1.0)
    add_metric(db_conn, "2024-06-01", "acc_fb", "facebook", spend=2.0)
    add_metric(db_conn, "2024-06-01", "acc_google", "google", spend=3.0)

    buckets = store.grouped_totals("ws_1", date(2024, 6, 1), date(2024, 6, 2), "date")

    assert [(bucket.date, bucket.totals.spend) for bucket in buckets] == [
        ("2024-06-01", 5.0),
        ("2024-06-02", 1.0),
    ]


def test_grouped_totals_by_account(db_conn, store):
    add_metric(db_conn, "2024-06-01", "acc_fb", "facebook", spend=2.0)
    add_metric(db_conn, "2024-06-01", "acc_google", "google", spend=3.0)

    buckets = store.grouped_totals("ws_1", date(2024, 6, 1), date(2024, 6, 1), "account")

    assert [(bucket.account_id, bucket.platform) for bucket in buckets] == [
        ("acc_fb", "facebook"),
        ("acc_google", "google"),
    ]
    assert buckets[0].account_name == "facebook acc_fb"


def test_daily_rows_paginates_and_filters(db_conn, store):
    for day in range(1, 6):
        add_metric(db_conn, f"2024-06-0{day}", "acc_fb", "facebook", spend=float(day))
    add_metric(db_conn, "2024-06-03", "acc_google", "google", spend=100.0)

    rows, total = store.daily_rows(
        "ws_1",
        {"platform": "facebook"},
        date_from=None,
        date_to=None,
        sort_by="date",
        descending=True,
        limit=2,
        offset=1,
    )

    assert total == 5
    assert [row["date"] for row in rows] == ["2024-06-04", "2024-06-03"]
    assert rows[0]["account_name"] == "facebook acc_fb"


def test_unreviewed_anomalies_top_three_by_severity_then_recency(db_conn, store):
    """Four unreviewed anomalies in the lookback; only the top three return."""
    add_anomaly(db_conn, (NOW - timedelta(days=1)).isoformat(), "info", entity_id="a_info")
    add_anomaly(db_conn, (NOW - timedelta(days=2)).isoformat(), "critical", entity_id="a_crit_old")
    add_anomaly(db_conn, (NOW - timedelta(hours=3)).isoformat(), "warning", entity_id="a_warn")
    add_anomaly(db_conn, (NOW - timedelta(hours=1)).isoformat(), "critical", entity_id="a_crit_new")

    anomalies = store.unreviewed_anomalies("ws_1", since=NOW - timedelta(days=7), limit=3)

    assert [anomaly.entity_id for anomaly in anomalies] == [
        "a_crit_new",
        "a_crit_old",
        "a_warn",
    ]
    assert anomalies[0].severity is Severity.CRITICAL


def test_unreviewed_anomalies_excludes_reviewed_old_and_other_workspaces(db_conn, store):
    add_anomaly(db_conn, (NOW - timedelta(days=1)).isoformat(), "critical", is_reviewed=True)
    add_anomaly(db_conn, (NOW - timedelta(days=8)).isoformat(), "critical", entity_id="stale")
    add_anomaly(db_conn, (NOW - timedelta(days=1)).isoformat(), "critical", workspace_id="ws_2")
    add_anomaly(db_conn, (NOW - timedelta(days=1)).isoformat(), "info", entity_id="keep")

    anomalies = store.unreviewed_anomalies("ws_1", since=NOW - timedelta(days=7), limit=3)

    assert [anomaly.entity_id for anomaly in anomalies] == ["keep"]


def test_query_failure_raises_dependency_error(tmp_path):
    conn = connect(make_db(tmp_path))
    conn.close()

    with pytest.raises(DependencyError) as exc_info:
        MetricsStore(conn).sum_counters("ws_1", date(2024, 6, 1), date(2024, 6, 1))

    assert isinstance(exc_info.value.__cause__, sqlite3.Error)


def test_ping(store):
    store.ping()
