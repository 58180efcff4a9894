"""
Database connection factory utilities for the transaction store.

Provides an injectable PoolManager owning one psycopg ConnectionPool with
explicit lifecycle management, a one-off connection helper with retry logic
for transient connection failures (tenacity), and statement-timeout helpers.

Retries only cover establishing a connection for maintenance tasks (schema
creation, bulk loads). Query execution is never retried.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Generator, Optional

import psycopg
from psycopg import Connection, Cursor, sql
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from transaction_query.config import Settings, get_settings
from transaction_query.utils.logging import get_logger

log = get_logger(__name__)

# Sessions run in UTC so timestamptz values round-trip as UTC datetimes.
SESSION_OPTIONS = "-c timezone=UTC"


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


class PoolManager:
    """
    Thread-safe owner of one lazily created connection pool.

    Instances are injected into the store backend; nothing here is global.
    """

    def __init__(
        self,
        dsn: Optional[str] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self._dsn = dsn or build_dsn(settings)
        self._min_size = min_size if min_size is not None else settings.db_pool_min_size
        self._max_size = max_size if max_size is not None else settings.db_pool_max_size
        self._pool: Optional[ConnectionPool] = None
        self._lock = threading.Lock()

    def get_pool(self) -> ConnectionPool:
        """
        Get or create the connection pool.

        Returns
        -------
        ConnectionPool
            The managed sync pool instance.
        """
        with self._lock:
            if self._pool is None:
                self._pool = ConnectionPool(
                    conninfo=self._dsn,
                    min_size=self._min_size,
                    max_size=self._max_size,
                    kwargs={"options": SESSION_OPTIONS},
                    name="transaction-query",
                    open=True,
                )
                log.info(
                    "Connection pool opened",
                    extra={"min_size": self._min_size, "max_size": self._max_size},
                )
            return self._pool

    @contextmanager
    def connection(self) -> Generator[Connection, None, None]:
        """
        Context manager for obtaining a connection from the pool.

        Example
        -------
            manager = PoolManager()
            with manager.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
        """
        with self.get_pool().connection() as conn:
            yield conn

    def close(self) -> None:
        """Close the pool if it was opened."""
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.close()
            log.info("Connection pool closed")


def apply_statement_timeout(cur: Cursor, timeout_ms: int) -> None:
    """
    Bound every statement of the current transaction to `timeout_ms`.

    A non-positive value leaves the server default in place.
    """
    if timeout_ms <= 0:
        return
    cur.execute(
        sql.SQL("SET LOCAL statement_timeout = {}").format(sql.Literal(int(timeout_ms)))
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.
    Use this for one-off maintenance work; queries go through the pool.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn or build_dsn(), options=SESSION_OPTIONS)


__all__ = [
    "PoolManager",
    "apply_statement_timeout",
    "build_dsn",
    "get_sync_connection",
]
