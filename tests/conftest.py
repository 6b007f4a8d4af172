"""Shared fixtures: an in-memory stand-in for the Postgres pool and a fake API."""

from __future__ import annotations

import copy
import re
import threading
from collections.abc import Callable
from typing import Any

import httpx
import psycopg2
import pytest

from spacetraders_cache.client import SpaceTradersClient
from spacetraders_cache.config import Settings
from spacetraders_cache.data.database import Database
from spacetraders_cache.rate_limiter import RateLimiter

_INSERT = re.compile(r"INSERT INTO (\w+)\(([^)]*)\) VALUES ")
_SELECT = re.compile(
    r"SELECT (.+?) FROM (\w+)"
    r"(?: WHERE (\w+) = %s)?"
    r"(?: ORDER BY (\w+))?"
    r"(?: LIMIT (%s|\d+))?"
    r"(?: OFFSET (%s))?$"
)


# --- Fake database ---


class FakeStore:
    """Committed tables plus a log of every statement that was executed."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = tables or {}
        self.statements: list[tuple[str, Any]] = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_on: Callable[[str, Any], bool] | None = None

    def inserts(self, table: str | None = None) -> list[tuple[str, Any]]:
        prefix = f"INSERT INTO {table}(" if table else "INSERT INTO"
        return [(sql, p) for sql, p in self.statements if sql.startswith(prefix)]

    def writes(self) -> list[str]:
        return [sql for sql, _ in self.statements if not sql.startswith("SELECT")]


class FakeCursor:
    def __init__(self, conn: FakeConnection) -> None:
        self._conn = conn
        self.connection = conn
        self._rows: list[tuple[Any, ...]] = []
        self._values: list[tuple[Any, ...]] = []

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *args: Any) -> None:
        pass

    def mogrify(self, template: bytes, args: Any) -> bytes:
        """Record one VALUES row as execute_values renders it."""
        self._values.append(tuple(args))
        return b"(" + b",".join([b"?"] * len(args)) + b")"

    def execute(self, sql: str | bytes, params: Any = None) -> None:
        if isinstance(sql, bytes):
            # execute_values: rows arrive pre-rendered through mogrify
            sql = sql.decode()
            params = [value for row in self._values for value in row]
            self._values = []
        store = self._conn.store
        store.statements.append((sql, params))
        if store.fail_on is not None and store.fail_on(sql, params):
            raise psycopg2.DataError("forced failure")
        tables = self._conn.pending
        words = sql.split()
        self._rows = []

        if sql.startswith("DROP TABLE IF EXISTS"):
            tables.pop(words[4], None)
        elif sql.startswith("CREATE TABLE"):
            tables[words[2]] = []
        elif sql.startswith("INSERT INTO"):
            match = _INSERT.match(sql)
            name = match.group(1)
            if name not in tables:
                raise psycopg2.ProgrammingError(f'relation "{name}" does not exist')
            columns = [c.strip() for c in match.group(2).split(",")]
            n = len(columns)
            assert sql.count("?") == len(params)
            for i in range(0, len(params), n):
                tables[name].append(dict(zip(columns, params[i:i + n])))
        elif "FROM pg_tables" in sql:
            _, wanted = params
            self._rows = [(t,) for t in wanted if t in tables]
        elif sql.startswith("SELECT COUNT(*) FROM"):
            self._rows = [(len(tables[words[-1]]),)]
        elif sql.startswith("SELECT"):
            self._select(sql, list(params or ()))
        else:
            raise AssertionError(f"unexpected SQL: {sql}")

    def _select(self, sql: str, params: list[Any]) -> None:
        match = _SELECT.match(sql)
        assert match, sql
        columns = [c.strip() for c in match.group(1).split(",")]
        rows = list(self._conn.pending[match.group(2)])
        if match.group(3):
            value = params.pop(0)
            rows = [r for r in rows if r.get(match.group(3)) == value]
        if match.group(4):
            rows.sort(key=lambda r: r[match.group(4)])
        limit = match.group(5)
        if limit:
            limit = params.pop(0) if limit == "%s" else int(limit)
            offset = params.pop(0) if match.group(6) else 0
            rows = rows[offset:offset + limit]
        self._rows = [tuple(r.get(c) for c in columns) for r in rows]

    def fetchall(self) -> list[tuple[Any, ...]]:
        return list(self._rows)

    def fetchone(self) -> tuple[Any, ...] | None:
        return self._rows[0] if self._rows else None


class FakeConnection:
    """Mimics psycopg2: `with conn:` commits on success, rolls back on error."""

    encoding = "UTF8"

    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.pending: dict[str, list[dict[str, Any]]] = {}

    def __enter__(self) -> FakeConnection:
        self.pending = copy.deepcopy(self.store.tables)
        return self

    def __exit__(self, exc_type: Any, *args: Any) -> bool:
        if exc_type is None:
            self.store.tables = self.pending
            self.store.commits += 1
        else:
            self.store.rollbacks += 1
        return False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)


class FakePool:
    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.in_use = 0
        self.peak = 0
        self.closed = False
        self._lock = threading.Lock()

    def getconn(self) -> FakeConnection:
        with self._lock:
            self.in_use += 1
            self.peak = max(self.peak, self.in_use)
        return FakeConnection(self.store)

    def putconn(self, conn: FakeConnection) -> None:
        with self._lock:
            self.in_use -= 1

    def closeall(self) -> None:
        self.closed = True


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def pool(store: FakeStore) -> FakePool:
    return FakePool(store)


@pytest.fixture
def db(pool: FakePool) -> Database:
    return Database(pool, max_connections=5)


# --- Fake API ---


def make_system(index: int, waypoints: int = 2, factions: tuple[str, ...] = ()) -> dict[str, Any]:
    """Raw /systems item as the API returns it."""
    symbol = f"X1-S{index:03d}"
    return {
        "symbol": symbol,
        "sectorSymbol": "X1",
        "type": "RED_STAR",
        "x": index,
        "y": -index,
        "waypoints": [
            {
                "symbol": f"{symbol}-W{w}",
                "type": "PLANET" if w == 0 else "MOON",
                "x": index + w,
                "y": index - w,
                "orbitals": [],
            }
            for w in range(waypoints)
        ],
        "factions": [{"symbol": f} for f in factions],
    }


class FakeApi:
    """httpx handler serving a paginated /systems catalog and simple JSON routes."""

    def __init__(self, systems: list[dict[str, Any]] | None = None) -> None:
        self.systems = systems or []
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, tuple[int, Any]] = {}
        self.fail_page: int | None = None

    @property
    def pages(self) -> list[int]:
        return [
            int(r.url.params["page"]) for r in self.requests
            if r.url.path.endswith("/systems")
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/v2")
        if path in self.routes:
            status, payload = self.routes[path]
            return httpx.Response(status, json=payload)
        if path == "/systems":
            page = int(request.url.params["page"])
            limit = int(request.url.params["limit"])
            if page == self.fail_page:
                return httpx.Response(
                    500, json={"error": {"message": "Internal error", "code": 500}},
                )
            items = self.systems[(page - 1) * limit:page * limit]
            return httpx.Response(200, json={
                "data": items,
                "meta": {"total": len(self.systems), "page": page, "limit": limit},
            })
        return httpx.Response(404, json={"error": {"message": f"No route {path}", "code": 404}})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        token="test-token",
        database_url="postgresql://cache@localhost/test",
        _env_file=None,
    )


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
async def client(settings: Settings, fake_api: FakeApi) -> SpaceTradersClient:
    limiter = RateLimiter(rate=1000.0, burst=1000)
    c = SpaceTradersClient(
        settings, rate_limiter=limiter, transport=httpx.MockTransport(fake_api),
    )
    yield c
    await c.close()
