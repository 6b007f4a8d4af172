"""Read-only lookups against the cached systems and waypoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from spacetraders_cache.data.database import Database
from spacetraders_cache.data.schema import CACHE_TABLES


@dataclass(frozen=True)
class CachedSystem:
    """A row of the systems table."""

    symbol: str
    sector_symbol: str
    type: str
    x: int
    y: int
    factions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CachedWaypoint:
    """A row of the waypoints table. Flags are None until enriched."""

    symbol: str
    type: str
    system_symbol: str
    x: int
    y: int
    is_marketplace: bool | None = None
    is_shipyard: bool | None = None


_SYSTEM_SELECT = "SELECT symbol, sector_symbol, type, x, y, factions FROM systems"
_WAYPOINT_SELECT = (
    "SELECT symbol, type, system_symbol, x, y, is_marketplace, is_shipyard FROM waypoints"
)


def _system(row: tuple[Any, ...]) -> CachedSystem:
    symbol, sector, type_, x, y, factions = row
    return CachedSystem(symbol, sector, type_, x, y, list(factions or []))


async def list_systems(db: Database, limit: int = 20, offset: int = 0) -> list[CachedSystem]:
    """Cached systems ordered by symbol."""

    def work(cursor: Any) -> list[CachedSystem]:
        cursor.execute(f"{_SYSTEM_SELECT} ORDER BY symbol LIMIT %s OFFSET %s", (limit, offset))
        return [_system(row) for row in cursor.fetchall()]

    return await db.run(work)


async def get_system(db: Database, symbol: str) -> CachedSystem | None:
    def work(cursor: Any) -> CachedSystem | None:
        cursor.execute(f"{_SYSTEM_SELECT} WHERE symbol = %s LIMIT 1", (symbol,))
        row = cursor.fetchone()
        return _system(row) if row else None

    return await db.run(work)


async def get_waypoint(db: Database, symbol: str) -> CachedWaypoint | None:
    """Look up one cached waypoint, or None if the cache doesn't have it."""

    def work(cursor: Any) -> CachedWaypoint | None:
        cursor.execute(f"{_WAYPOINT_SELECT} WHERE symbol = %s LIMIT 1", (symbol,))
        row = cursor.fetchone()
        return CachedWaypoint(*row) if row else None

    return await db.run(work)


async def list_waypoints(db: Database, system_symbol: str) -> list[CachedWaypoint]:
    """Cached waypoints of one system, ordered by symbol."""

    def work(cursor: Any) -> list[CachedWaypoint]:
        cursor.execute(
            f"{_WAYPOINT_SELECT} WHERE system_symbol = %s ORDER BY symbol", (system_symbol,),
        )
        return [CachedWaypoint(*row) for row in cursor.fetchall()]

    return await db.run(work)


async def count_rows(db: Database) -> dict[str, int]:
    """Row counts of both cache tables."""

    def work(cursor: Any) -> dict[str, int]:
        counts = {}
        for table in CACHE_TABLES:
            cursor.execute(f"SELECT COUNT(*) FROM {table.name}")
            counts[table.name] = cursor.fetchone()[0]
        return counts

    return await db.run(work)
