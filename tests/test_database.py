"""Tests for the pooled transaction runner."""

import asyncio
import time

import pytest

from conftest import FakePool, FakeStore
from spacetraders_cache.data.database import Database, StoreError


class TestDatabaseRun:
    async def test_commits_and_returns_result(
        self, db: Database, store: FakeStore, pool: FakePool,
    ) -> None:
        def work(cursor):
            cursor.execute("CREATE TABLE t (\n    x int\n)")
            return "done"

        assert await db.run(work) == "done"
        assert store.commits == 1
        assert "t" in store.tables
        assert pool.in_use == 0

    async def test_database_error_rolls_back_and_is_wrapped(
        self, db: Database, store: FakeStore, pool: FakePool,
    ) -> None:
        store.fail_on = lambda sql, params: True

        with pytest.raises(StoreError, match="forced failure"):
            await db.run(lambda cursor: cursor.execute("DROP TABLE IF EXISTS t"))
        assert store.rollbacks == 1
        assert pool.in_use == 0

    async def test_other_errors_propagate_unwrapped(
        self, db: Database, store: FakeStore, pool: FakePool,
    ) -> None:
        def work(cursor):
            raise KeyError("boom")

        with pytest.raises(KeyError):
            await db.run(work)
        assert store.rollbacks == 1
        assert pool.in_use == 0

    async def test_concurrent_callers_never_exceed_pool(self, store: FakeStore) -> None:
        pool = FakePool(store)
        db = Database(pool, max_connections=2)

        def slow(cursor):
            time.sleep(0.02)
            return 1

        results = await asyncio.gather(*(db.run(slow) for _ in range(8)))
        assert results == [1] * 8
        assert pool.peak <= 2
        assert pool.in_use == 0

    def test_close_closes_pool(self, db: Database, pool: FakePool) -> None:
        db.close()
        assert pool.closed
