"""Fixed-size SQLite connection pool with scoped acquisition."""
import logging
import queue
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..errors import DependencyError


logger = logging.getLogger(__name__)


class ConnectionPool:
    """Hands out SQLite connections for the lifetime of one unit of work.

    Connections are created lazily up to ``size`` and are shared across
    threads, so they are opened with ``check_same_thread=False``. A
    connection is only ever used by one borrower at a time.
    """

    def __init__(self, db_path: str | Path, size: int = 5, timeout: float = 10.0) -> None:
        if size <= 0:
            raise ValueError("pool size must be positive")

        self.db_path = Path(db_path)
        self.size = size
        self.timeout = timeout

        self._idle: queue.LifoQueue[sqlite3.Connection] = queue.LifoQueue(maxsize=size)
        self._created = 0
        self._lock = threading.Lock()
        self._closed = False

    def _open(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=self.timeout,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as exc:
            logger.error("Failed to open SQLite connection to %s: %s", self.db_path, exc)
            raise DependencyError(f"Cannot open database {self.db_path}") from exc
        return conn

    def _acquire(self) -> sqlite3.Connection:
        if self._closed:
            raise DependencyError("Connection pool is closed")

        try:
            return self._idle.get_nowait()
        except queue.Empty:
            pass

        with self._lock:
            if self._created < self.size:
                self._created += 1
                try:
                    return self._open()
                except DependencyError:
                    self._created -= 1
                    raise

        try:
            return self._idle.get(timeout=self.timeout)
        except queue.Empty as exc:
            logger.error(
                "Timed out after %ss waiting for a database connection (size=%s)",
                self.timeout,
                self.size,
            )
            raise DependencyError("Timed out waiting for a database connection") from exc

    def _release(self, conn: sqlite3.Connection) -> None:
        if self._closed:
            conn.close()
            return
        if conn.in_transaction:
            conn.rollback()
        self._idle.put_nowait(conn)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Borrow a connection; it is returned to the pool on exit, even on error."""
        conn = self._acquire()
        try:
            yield conn
        finally:
            self._release(conn)

    def close(self) -> None:
        """Close all idle connections and refuse further acquisitions."""
        self._closed = True
        closed = 0
        while True:
            try:
                conn = self._idle.get_nowait()
            except queue.Empty:
                break
            conn.close()
            closed += 1
        logger.info("Connection pool closed (%s connections)", closed)
