"""SQLite schema definitions for the PulseDeck metrics store.

Database: data/pulsedeck.db (WAL mode)
Tables: workspaces, accounts, campaigns, metrics_daily, anomaly_detections
"""
import logging
import sqlite3
from pathlib import Path


logger = logging.getLogger(__name__)


SCHEMA_VERSION = 1


def init_database(db_path: str | Path) -> None:
    """Initialize metrics database with schema.

    Creates tables if they don't exist.
    Enables WAL mode for concurrent reads.

    Args:
        db_path: Path to SQLite database file
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)

    try:
        conn.execute("PRAGMA journal_mode=WAL")

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

        cursor = conn.execute("SELECT MAX(version) FROM schema_version")
        current_version = cursor.fetchone()[0] or 0

        if current_version < SCHEMA_VERSION:
            _apply_schema(conn)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info("Database schema initialized (version %s)", SCHEMA_VERSION)
        else:
            logger.debug("Database schema up to date (version %s)", current_version)

    finally:
        conn.close()


def _apply_schema(conn: sqlite3.Connection) -> None:
    """Apply database schema.

    Args:
        conn: SQLite connection (in transaction)
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS workspaces (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            default_currency TEXT NOT NULL DEFAULT 'USD',
            timezone TEXT NOT NULL DEFAULT 'UTC',
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS accounts (
            id TEXT PRIMARY KEY,
            workspace_id TEXT NOT NULL REFERENCES workspaces(id),
            platform TEXT NOT NULL,
            account_id TEXT NOT NULL,
            account_name TEXT,
            status TEXT NOT NULL DEFAULT 'active',
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_accounts_workspace
        ON accounts(workspace_id)
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS campaigns (
            id TEXT PRIMARY KEY,
            account_id TEXT NOT NULL REFERENCES accounts(id),
            campaign_id TEXT NOT NULL,
            campaign_name TEXT,
            status TEXT NOT NULL DEFAULT 'active',
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS metrics_daily (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            date TEXT NOT NULL,
            platform TEXT NOT NULL,
            account_id TEXT NOT NULL REFERENCES accounts(id),
            campaign_id TEXT REFERENCES campaigns(id),
            adset_id TEXT,
            ad_id TEXT,
            spend REAL DEFAULT 0,
            impressions INTEGER DEFAULT 0,
            clicks INTEGER DEFAULT 0,
            conversions INTEGER DEFAULT 0,
            revenue REAL DEFAULT 0,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_metrics_account_date
        ON metrics_daily(account_id, date)
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_metrics_platform_date
        ON metrics_daily(platform, date)
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS anomaly_detections (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            workspace_id TEXT NOT NULL REFERENCES workspaces(id),
            entity_type TEXT NOT NULL,
            entity_id TEXT NOT NULL,
            metric TEXT NOT NULL,
            platform TEXT,
            anomaly_type TEXT NOT NULL,
            severity TEXT NOT NULL
                CHECK (severity IN ('info', 'warning', 'critical')),
            current_value REAL NOT NULL,
            expected_value REAL NOT NULL,
            is_reviewed INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        )
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_anomaly_workspace_created
        ON anomaly_detections(workspace_id, created_at)
        WHERE is_reviewed = 0
        """
    )
