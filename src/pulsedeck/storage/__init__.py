"""SQLite storage for PulseDeck metrics.

Persists to data/pulsedeck.db (WAL mode); see schema.py for tables.
"""
from .metrics_store import MetricsStore
from .pool import ConnectionPool
from .schema import init_database

__all__ = ["ConnectionPool", "MetricsStore", "init_database"]
