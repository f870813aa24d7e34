"""Request-scoped dependencies: one pooled connection per request."""
import sqlite3
from typing import Iterator

from fastapi import Depends, Request

from ..storage.metrics_store import MetricsStore
from ..storage.pool import ConnectionPool


def get_db(request: Request) -> Iterator[sqlite3.Connection]:
    """Borrow a connection for the request; released when the response is done."""
    pool: ConnectionPool = request.app.state.pool
    with pool.connection() as conn:
        yield conn


def get_store(conn: sqlite3.Connection = Depends(get_db)) -> MetricsStore:
    return MetricsStore(conn)
