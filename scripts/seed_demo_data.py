#!/usr/bin/env python3
"""Seed a demo workspace with accounts, daily metrics and anomalies.

Usage:
    PYTHONPATH=. python scripts/seed_demo_data.py
    PYTHONPATH=. python scripts/seed_demo_data.py --db data/pulsedeck.db --days 60
"""
import argparse
import logging
import random
import sqlite3
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.pulsedeck.storage.schema import init_database


logger = logging.getLogger("seed_demo_data")

WORKSPACE_ID = "ws_demo"

# Scenarios to seed: one account per platform
SCENARIOS = [
    {
        "account": "acc_fb_main",
        "platform": "facebook",
        "name": "Facebook - Prospecting",
        "daily_spend": 120.0,
        "cpm": 11.0,
        "ctr": 0.018,
        "cvr": 0.04,
        "aov": 70.0,
    },
    {
        "account": "acc_google_search",
        "platform": "google",
        "name": "Google - Brand Search",
        "daily_spend": 80.0,
        "cpm": 25.0,
        "ctr": 0.06,
        "cvr": 0.08,
        "aov": 65.0,
    },
    {
        "account": "acc_tiktok_ugc",
        "platform": "tiktok",
        "name": "TikTok - UGC Tests",
        "daily_spend": 50.0,
        "cpm": 6.0,
        "ctr": 0.009,
        "cvr": 0.01,
        "aov": 40.0,
    },
]

ANOMALIES = [
    ("campaign", "cmp_acc_fb_main", "cpa", "spike", "critical", 48.2, 21.0),
    ("account", "acc_tiktok_ugc", "roas", "drop", "warning", 0.4, 1.1),
    ("campaign", "cmp_acc_google_search", "ctr", "spike", "info", 9.1, 6.0),
]


def seed(db_path: Path, days: int, rng: random.Random) -> None:
    init_database(db_path)

    conn = sqlite3.connect(db_path)
    try:
        conn.execute(
            "INSERT OR REPLACE INTO workspaces (id, name) VALUES (?, ?)",
            (WORKSPACE_ID, "Demo Workspace"),
        )

        for scenario in SCENARIOS:
            conn.execute(
                """
                INSERT OR REPLACE INTO accounts (id, workspace_id, platform, account_id, account_name)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    scenario["account"],
                    WORKSPACE_ID,
                    scenario["platform"],
                    f"ext_{scenario['account']}",
                    scenario["name"],
                ),
            )
            conn.execute(
                """
                INSERT OR REPLACE INTO campaigns (id, account_id, campaign_id, campaign_name)
                VALUES (?, ?, ?, ?)
                """,
                (
                    f"cmp_{scenario['account']}",
                    scenario["account"],
                    f"ext_cmp_{scenario['account']}",
                    f"{scenario['name']} - Always On",
                ),
            )

        today = date.today()
        rows = 0
        for offset in range(days):
            metric_date = (today - timedelta(days=offset)).isoformat()
            for scenario in SCENARIOS:
                spend = round(scenario["daily_spend"] * rng.uniform(0.8, 1.2), 2)
                impressions = int(spend / scenario["cpm"] * 1000)
                clicks = int(impressions * scenario["ctr"])
                conversions = int(clicks * scenario["cvr"])
                revenue = round(conversions * scenario["aov"] * rng.uniform(0.9, 1.1), 2)

                conn.execute(
                    """
                    INSERT INTO metrics_daily (
                        date, platform, account_id, campaign_id,
                        spend, impressions, clicks, conversions, revenue
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        metric_date,
                        scenario["platform"],
                        scenario["account"],
                        f"cmp_{scenario['account']}",
                        spend,
                        impressions,
                        clicks,
                        conversions,
                        revenue,
                    ),
                )
                rows += 1

        now = datetime.now()
        for hours_ago, anomaly in enumerate(ANOMALIES, start=1):
            entity_type, entity_id, metric, anomaly_type, severity, current, expected = anomaly
            conn.execute(
                """
                INSERT INTO anomaly_detections (
                    workspace_id, entity_type, entity_id, metric, anomaly_type,
                    severity, current_value, expected_value, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    WORKSPACE_ID,
                    entity_type,
                    entity_id,
                    metric,
                    anomaly_type,
                    severity,
                    current,
                    expected,
                    (now - timedelta(hours=hours_ago)).isoformat(timespec="seconds"),
                ),
            )

        conn.commit()
        logger.info(
            "Seeded workspace %s: %s metric rows over %s days, %s anomalies",
            WORKSPACE_ID,
            rows,
            days,
            len(ANOMALIES),
        )
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed PulseDeck demo data")
    parser.add_argument("--db", default="data/pulsedeck.db", help="SQLite database path")
    parser.add_argument("--days", type=int, default=30, help="Days of history to generate")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    seed(Path(args.db), args.days, random.Random(args.seed))


if __name__ == "__main__":
    main()
