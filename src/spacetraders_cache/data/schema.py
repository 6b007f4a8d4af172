"""Table definitions for the systems cache and the existence check.

Resetting is destructive on purpose: if either table is missing, both are
dropped and rebuilt from a fresh fetch so the two never disagree. Anything
stored in them beyond the fetched snapshot is lost on rebuild.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from spacetraders_cache.data.database import Database

logger = logging.getLogger(__name__)

SCHEMA = "public"


@dataclass(frozen=True)
class TableSpec:
    """Name and (column, type) pairs of a cache table."""

    name: str
    columns: tuple[tuple[str, str], ...]

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.columns)

    def create_sql(self) -> str:
        cols = ",\n".join(f"    {name:<20}{sql_type}" for name, sql_type in self.columns)
        return f"CREATE TABLE {self.name} (\n{cols}\n)"

    def drop_sql(self) -> str:
        return f"DROP TABLE IF EXISTS {self.name}"


SYSTEMS = TableSpec(
    name="systems",
    columns=(
        ("symbol", "text"),
        ("sector_symbol", "text"),
        ("type", "text"),
        ("x", "int"),
        ("y", "int"),
        ("factions", "text[]"),
    ),
)

WAYPOINTS = TableSpec(
    name="waypoints",
    columns=(
        ("symbol", "text"),
        ("type", "text"),
        ("system_symbol", "text"),
        ("x", "int"),
        ("y", "int"),
        ("is_marketplace", "boolean"),
        ("is_shipyard", "boolean"),
    ),
)

CACHE_TABLES = (SYSTEMS, WAYPOINTS)


def _present_tables(cursor: Any) -> set[str]:
    cursor.execute(
        "SELECT tablename FROM pg_tables WHERE schemaname = %s AND tablename = ANY(%s)",
        (SCHEMA, [t.name for t in CACHE_TABLES]),
    )
    return {row[0] for row in cursor.fetchall()}


async def tables_present(db: Database) -> bool:
    """True only if both cache tables exist."""
    present = await db.run(_present_tables)
    missing = [t.name for t in CACHE_TABLES if t.name not in present]
    if missing:
        logger.info("Cache tables missing: %s", ", ".join(missing))
        return False
    return True


def reset_table(cursor: Any, table: TableSpec) -> None:
    """Drop `table` if it exists and create it empty, on the caller's transaction."""
    cursor.execute(table.drop_sql())
    cursor.execute(table.create_sql())


async def create_table(db: Database, table: TableSpec) -> None:
    """Drop and recreate `table` in its own transaction."""
    logger.info("Creating %s table", table.name)
    await db.run(lambda cursor: reset_table(cursor, table))


async def drop_table(db: Database, table: TableSpec) -> None:
    """Drop `table` if it exists."""
    await db.run(lambda cursor: cursor.execute(table.drop_sql()))
