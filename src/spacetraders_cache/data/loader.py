"""Bulk load fetched systems and waypoints into the cache tables.

Each table is written in one transaction: the table is reset, then rows go
in as multi-row INSERTs, each sized so its bound parameters stay under the
server's per-statement ceiling. Nothing is visible until every chunk has
gone in; any failure rolls the whole table back.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from psycopg2.extras import execute_values

from spacetraders_cache.data.database import Database
from spacetraders_cache.data.schema import SYSTEMS, WAYPOINTS, TableSpec, reset_table
from spacetraders_cache.models import System

logger = logging.getLogger(__name__)

# PostgreSQL wire protocol: parameter count is a 16-bit field
MAX_BOUND_PARAMETERS = 65535

SYSTEM_COLUMNS = SYSTEMS.column_names
# is_marketplace / is_shipyard are not known from the catalog and stay NULL
WAYPOINT_COLUMNS = WAYPOINTS.column_names[:5]

Row = tuple[Any, ...]


def system_rows(systems: Sequence[System]) -> list[Row]:
    return [
        (s.symbol, s.sector_symbol, s.type.value, s.x, s.y, s.faction_symbols)
        for s in systems
    ]


def waypoint_rows(systems: Sequence[System]) -> list[Row]:
    """Flatten every system's waypoints; systems without any contribute nothing."""
    return [
        (w.symbol, w.type.value, s.symbol, w.x, w.y)
        for s in systems
        for w in s.waypoints
    ]


def chunk_rows(
    rows: Sequence[Row], columns_per_row: int, max_params: int = MAX_BOUND_PARAMETERS,
) -> list[Sequence[Row]]:
    """Split rows into input-ordered chunks of at most max_params // columns_per_row."""
    size = max_params // columns_per_row
    if size < 1:
        raise ValueError(
            f"{max_params} parameters cannot hold a single row of {columns_per_row} columns",
        )
    return [rows[i:i + size] for i in range(0, len(rows), size)]


async def _load_table(
    db: Database,
    table: TableSpec,
    columns: Sequence[str],
    rows: Sequence[Row],
    max_params: int,
) -> int:
    chunks = chunk_rows(rows, len(columns), max_params)
    sql = f"INSERT INTO {table.name}({', '.join(columns)}) VALUES %s"

    def work(cursor: Any) -> int:
        reset_table(cursor, table)
        for n, chunk in enumerate(chunks, 1):
            execute_values(cursor, sql, chunk, page_size=len(chunk))
            logger.debug("%s: chunk %d/%d (%d rows)", table.name, n, len(chunks), len(chunk))
        return len(rows)

    logger.info("Creating %s table", table.name)
    inserted = await db.run(work)
    logger.info(
        "Loaded %d rows into %s in %d statement(s)", inserted, table.name, len(chunks),
    )
    return inserted


async def load_systems(
    db: Database, systems: Sequence[System], *, max_params: int = MAX_BOUND_PARAMETERS,
) -> int:
    """Rebuild the systems table from `systems`. Returns rows inserted."""
    return await _load_table(db, SYSTEMS, SYSTEM_COLUMNS, system_rows(systems), max_params)


async def load_waypoints(
    db: Database, systems: Sequence[System], *, max_params: int = MAX_BOUND_PARAMETERS,
) -> int:
    """Rebuild the waypoints table from the systems' nested waypoints."""
    return await _load_table(
        db, WAYPOINTS, WAYPOINT_COLUMNS, waypoint_rows(systems), max_params,
    )
