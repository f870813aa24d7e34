"""Shared SQLite seeding helpers for tests."""
import sqlite3
from pathlib import Path
from typing import Optional

from src.pulsedeck.storage.schema import init_database


def make_db(tmp_path: Path, name: str = "pulsedeck.db") -> Path:
    db_path = tmp_path / name
    init_database(db_path)
    return db_path


def connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def add_workspace(conn: sqlite3.Connection, workspace_id: str = "ws_1") -> None:
    conn.execute(
        "INSERT INTO workspaces (id, name) VALUES (?, ?)",
        (workspace_id, f"Workspace {workspace_id}"),
    )
    conn.commit()


def add_account(
    conn: sqlite3.Connection,
    account_id: str,
    platform: str,
    workspace_id: str = "ws_1",
) -> None:
    conn.execute(
        """
        INSERT INTO accounts (id, workspace_id, platform, account_id, account_name)
        VALUES (?, ?, ?, ?, ?)
        """,
        (account_id, workspace_id, platform, f"ext_{account_id}", f"{platform} {account_id}"),
    )
    conn.commit()


def add_metric(
    conn: sqlite3.Connection,
    metric_date: str,
    account_id: str,
    platform: str,
    spend: Optional[float] = 0.0,
    impressions: Optional[int] = 0,
    clicks: Optional[int] = 0,
    conversions: Optional[int] = 0,
    revenue: Optional[float] = 0.0,
    campaign_id: Optional[str] = None,
) -> None:
    conn.execute(
        """
        INSERT INTO metrics_daily (
            date, platform, account_id, campaign_id,
            spend, impressions, clicks, conversions, revenue
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            metric_date,
            platform,
            account_id,
            campaign_id,
            spend,
            impressions,
            clicks,
            conversions,
            revenue,
        ),
    )
    conn.commit()


def add_anomaly(
    conn: sqlite3.Connection,
    created_at: str,
    severity: str = "warning",
    workspace_id: str = "ws_1",
    entity_id: str = "cmp_1",
    metric: str = "cpa",
    anomaly_type: str = "spike",
    current_value: float = 40.0,
    expected_value: float = 20.0,
    is_reviewed: bool = False,
) -> None:
    conn.execute(
        """
        INSERT INTO anomaly_detections (
            workspace_id, entity_type, entity_id, metric, anomaly_type,
            severity, current_value, expected_value, is_reviewed, created_at
        ) VALUES (?, 'campaign', ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            workspace_id,
            entity_id,
            metric,
            anomaly_type,
            severity,
            current_value,
            expected_value,
            int(is_reviewed),
            created_at,
        ),
    )
    conn.commit()
