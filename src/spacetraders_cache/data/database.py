"""PostgreSQL connection pool shared by the loaders and lookups.

psycopg2 is blocking, so each unit of work runs in a worker thread on a
connection borrowed from a bounded pool. A connection is held for exactly
one transaction and always handed back, whether the work committed or not.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

import psycopg2
from psycopg2.pool import ThreadedConnectionPool

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreError(Exception):
    """A database operation failed."""


class ConnectionPool(Protocol):
    def getconn(self) -> Any: ...

    def putconn(self, conn: Any) -> None: ...

    def closeall(self) -> None: ...


class Database:
    """Bounded pool of connections, one transaction per borrow."""

    def __init__(self, pool: ConnectionPool, max_connections: int = 5) -> None:
        self._pool = pool
        self.max_connections = max_connections
        # ThreadedConnectionPool raises instead of waiting when exhausted
        self._slots = asyncio.Semaphore(max_connections)

    @classmethod
    def connect(cls, dsn: str, max_connections: int = 5) -> Database:
        """Open a pool against `dsn`. Fails fast if the server is unreachable."""
        try:
            pool = ThreadedConnectionPool(1, max_connections, dsn=dsn)
        except psycopg2.Error as exc:
            raise StoreError(f"Database connection failed: {exc}") from exc
        logger.debug("Opened connection pool (max %d)", max_connections)
        return cls(pool, max_connections=max_connections)

    def close(self) -> None:
        """Close every pooled connection."""
        self._pool.closeall()

    async def run(self, work: Callable[[Any], T]) -> T:
        """Run `work(cursor)` in a single transaction and return its result.

        Commits if `work` returns, rolls back if it raises.
        """
        async with self._slots:
            return await asyncio.to_thread(self._run_sync, work)

    def _run_sync(self, work: Callable[[Any], T]) -> T:
        try:
            conn = self._pool.getconn()
        except psycopg2.Error as exc:
            raise StoreError(f"Could not get a connection: {exc}") from exc
        try:
            # psycopg2: leaving the block commits, an exception rolls back
            with conn:
                with conn.cursor() as cursor:
                    return work(cursor)
        except psycopg2.Error as exc:
            raise StoreError(str(exc).strip() or type(exc).__name__) from exc
        finally:
            self._pool.putconn(conn)
