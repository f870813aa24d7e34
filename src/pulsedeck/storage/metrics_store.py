"""Read-only queries over daily metrics and anomaly detections."""
import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..errors import DependencyError
from ..metrics.insights import AnomalyRecord, Severity
from ..metrics.kpis import RawTotals


logger = logging.getLogger(__name__)


_SUM_COLUMNS = """
    COALESCE(SUM(m.spend), 0) AS spend,
    COALESCE(SUM(m.revenue), 0) AS revenue,
    COALESCE(SUM(m.impressions), 0) AS impressions,
    COALESCE(SUM(m.clicks), 0) AS clicks,
    COALESCE(SUM(m.conversions), 0) AS conversions
"""

_SEVERITY_ORDER = "CASE severity {} ELSE 0 END".format(
    " ".join(f"WHEN '{level.value}' THEN {level.rank}" for level in Severity)
)

GROUP_BY_FIELDS = {
    "date": ("m.date", "m.date AS date, NULL AS platform, NULL AS account_id, NULL AS account_name"),
    "platform": ("m.platform", "NULL AS date, m.platform AS platform, NULL AS account_id, NULL AS account_name"),
    "account": (
        "m.account_id, a.account_name, a.platform",
        "NULL AS date, a.platform AS platform, m.account_id AS account_id, a.account_name AS account_name",
    ),
}

DAILY_SORT_COLUMNS = {
    "date": "m.date",
    "platform": "m.platform",
    "spend": "m.spend",
    "revenue": "m.revenue",
    "impressions": "m.impressions",
    "clicks": "m.clicks",
    "conversions": "m.conversions",
}

DAILY_FILTER_COLUMNS = ("platform", "account_id", "campaign_id", "adset_id", "ad_id")


@dataclass(frozen=True)
class PlatformTotals:
    """Summed counters for one platform plus entity counts."""

    platform: str
    totals: RawTotals
    account_count: int
    campaign_count: int


@dataclass(frozen=True)
class GroupedTotals:
    """Summed counters for one trends bucket."""

    date: Optional[str]
    platform: Optional[str]
    account_id: Optional[str]
    account_name: Optional[str]
    totals: RawTotals


def _in_clause(column: str, values: Sequence[str]) -> str:
    placeholders = ", ".join("?" for _ in values)
    return f"{column} IN ({placeholders})"


class MetricsStore:
    """Query layer bound to a single pooled connection.

    Every sqlite3 failure is re-raised as DependencyError.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def _fetchall(self, operation: str, sql: str, params: Sequence[Any]) -> list[sqlite3.Row]:
        try:
            return self.conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise DependencyError(f"{operation} query failed: {exc}") from exc

    def ping(self) -> None:
        """Run a trivial query to confirm the database is reachable."""
        self._fetchall("ping", "SELECT 1", ())

    def workspace_exists(self, workspace_id: str) -> bool:
        rows = self._fetchall(
            "workspace lookup",
            "SELECT 1 FROM workspaces WHERE id = ?",
            (workspace_id,),
        )
        return bool(rows)

    def _window_filter(
        self,
        workspace_id: str,
        start: date,
        end: date,
        platforms: Optional[Sequence[str]],
        accounts: Optional[Sequence[str]],
    ) -> tuple[str, list[Any]]:
        conditions = ["a.workspace_id = ?", "m.date >= ?", "m.date <= ?"]
        params: list[Any] = [workspace_id, start.isoformat(), end.isoformat()]

        if platforms:
            conditions.append(_in_clause("m.platform", platforms))
            params.extend(platforms)

        if accounts:
            conditions.append(_in_clause("m.account_id", accounts))
            params.extend(accounts)

        return " AND ".join(conditions), params

    def sum_counters(
        self,
        workspace_id: str,
        start: date,
        end: date,
        platforms: Optional[Sequence[str]] = None,
        accounts: Optional[Sequence[str]] = None,
    ) -> RawTotals:
        """Sum raw counters over the inclusive window for a workspace.

        Args:
            workspace_id: Workspace ID
            start: Inclusive start date
            end: Inclusive end date
            platforms: Optional platform filter
            accounts: Optional account filter (accounts.id)

        Returns:
            RawTotals (all zero when nothing matches)
        """
        where, params = self._window_filter(workspace_id, start, end, platforms, accounts)
        sql = f"""
        SELECT {_SUM_COLUMNS}
        FROM metrics_daily m
        JOIN accounts a ON m.account_id = a.id
        WHERE {where}
        """
        rows = self._fetchall("aggregate metrics", sql, params)
        return RawTotals.from_row(rows[0])

    def platform_totals(
        self,
        workspace_id: str,
        start: date,
        end: date,
        platforms: Optional[Sequence[str]] = None,
        accounts: Optional[Sequence[str]] = None,
    ) -> list[PlatformTotals]:
        """Summed counters per platform, ordered by platform name."""
        where, params = self._window_filter(workspace_id, start, end, platforms, accounts)
        sql = f"""
        SELECT
            m.platform AS platform,
            {_SUM_COLUMNS},
            COUNT(DISTINCT a.id) AS account_count,
            COUNT(DISTINCT m.campaign_id) AS campaign_count
        FROM metrics_daily m
        JOIN accounts a ON m.account_id = a.id
        WHERE {where}
        GROUP BY m.platform
        ORDER BY m.platform
        """
        rows = self._fetchall("platform breakdown", sql, params)
        return [
            PlatformTotals(
                platform=row["platform"],
                totals=RawTotals.from_row(row),
                account_count=int(row["account_count"]),
                campaign_count=int(row["campaign_count"]),
            )
            for row in rows
        ]

    def grouped_totals(
        self,
        workspace_id: str,
        start: date,
        end: date,
        group_by: str,
        platforms: Optional[Sequence[str]] = None,
    ) -> list[GroupedTotals]:
        """Summed counters bucketed by date, platform or account."""
        group_expr, select_expr = GROUP_BY_FIELDS[group_by]
        where, params = self._window_filter(workspace_id, start, end, platforms, None)
        sql = f"""
        SELECT {select_expr}, {_SUM_COLUMNS}
        FROM metrics_daily m
        JOIN accounts a ON m.account_id = a.id
        WHERE {where}
        GROUP BY {group_expr}
        ORDER BY {group_expr}
        """
        rows = self._fetchall("trends", sql, params)
        return [
            GroupedTotals(
                date=row["date"],
                platform=row["platform"],
                account_id=row["account_id"],
                account_name=row["account_name"],
                totals=RawTotals.from_row(row),
            )
            for row in rows
        ]

    def daily_rows(
        self,
        workspace_id: str,
        filters: dict[str, Optional[str]],
        date_from: Optional[date],
        date_to: Optional[date],
        sort_by: str,
        descending: bool,
        limit: int,
        offset: int,
    ) -> tuple[list[dict[str, Any]], int]:
        """Page of raw daily rows plus the total matching count.

        Args:
            workspace_id: Workspace ID
            filters: Equality filters keyed by DAILY_FILTER_COLUMNS
            date_from: Optional inclusive start
            date_to: Optional inclusive end
            sort_by: Key of DAILY_SORT_COLUMNS
            descending: Sort direction
            limit: Page size
            offset: Rows to skip

        Returns:
            (rows, total)
        """
        conditions = ["a.workspace_id = ?"]
        params: list[Any] = [workspace_id]

        if date_from is not None:
            conditions.append("m.date >= ?")
            params.append(date_from.isoformat())
        if date_to is not None:
            conditions.append("m.date <= ?")
            params.append(date_to.isoformat())

        for column in DAILY_FILTER_COLUMNS:
            value = filters.get(column)
            if value:
                conditions.append(f"m.{column} = ?")
                params.append(value)

        where = " AND ".join(conditions)

        count_rows = self._fetchall(
            "daily metrics count",
            f"""
            SELECT COUNT(*) AS total
            FROM metrics_daily m
            JOIN accounts a ON m.account_id = a.id
            WHERE {where}
            """,
            params,
        )
        total = int(count_rows[0]["total"])

        direction = "DESC" if descending else "ASC"
        rows = self._fetchall(
            "daily metrics",
            f"""
            SELECT
                m.id, m.date, m.platform, m.account_id, a.account_name,
                m.campaign_id, m.adset_id, m.ad_id,
                COALESCE(m.spend, 0) AS spend,
                COALESCE(m.impressions, 0) AS impressions,
                COALESCE(m.clicks, 0) AS clicks,
                COALESCE(m.conversions, 0) AS conversions,
                COALESCE(m.revenue, 0) AS revenue
            FROM metrics_daily m
            JOIN accounts a ON m.account_id = a.id
            WHERE {where}
            ORDER BY {DAILY_SORT_COLUMNS[sort_by]} {direction}, m.id {direction}
            LIMIT ? OFFSET ?
            """,
            [*params, limit, offset],
        )
        return [dict(row) for row in rows], total

    def unreviewed_anomalies(
        self, workspace_id: str, since: datetime, limit: int
    ) -> list[AnomalyRecord]:
        """Unreviewed anomalies created at or after ``since``.

        Ordered by severity (critical first) then most recent first.
        """
        sql = f"""
        SELECT entity_type, entity_id, metric, anomaly_type, severity,
               current_value, expected_value, created_at
        FROM anomaly_detections
        WHERE workspace_id = ? AND created_at >= ? AND is_reviewed = 0
        ORDER BY {_SEVERITY_ORDER} DESC, created_at DESC
        LIMIT ?
        """
        rows = self._fetchall(
            "anomaly lookup",
            sql,
            (workspace_id, since.isoformat(timespec="seconds"), limit),
        )
        return [
            AnomalyRecord(
                entity_type=row["entity_type"],
                entity_id=row["entity_id"],
                metric=row["metric"],
                anomaly_type=row["anomaly_type"],
                severity=Severity(row["severity"]),
                current_value=float(row["current_value"]),
                expected_value=float(row["expected_value"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]
