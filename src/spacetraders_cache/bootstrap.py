"""Build the local systems cache once, when it is missing."""

from __future__ import annotations

import logging

from spacetraders_cache.api import systems as systems_api
from spacetraders_cache.client import SpaceTradersClient
from spacetraders_cache.config import MAX_PAGE_SIZE
from spacetraders_cache.data import loader, schema
from spacetraders_cache.data.database import Database

logger = logging.getLogger(__name__)


async def ensure_cache_ready(
    client: SpaceTradersClient,
    db: Database,
    *,
    page_size: int = MAX_PAGE_SIZE,
    force: bool = False,
) -> bool:
    """Make sure both cache tables exist, fetching and loading them if not.

    Returns True if a fetch-and-load cycle ran. With both tables present
    (and `force` unset) nothing is fetched or written. If either table is
    missing, both are rebuilt from one catalog fetch: systems first, then
    waypoints from the same in-memory result.

    The waypoints table is dropped before anything is loaded, so if any
    step fails it stays missing and the next run starts over. Errors
    propagate to the caller.
    """
    if not force and await schema.tables_present(db):
        logger.info("Systems cache present, skipping bootstrap")
        return False

    logger.info("Building systems cache%s", " (forced)" if force else "")
    systems = await systems_api.fetch_all_systems(client, page_size=page_size)
    await schema.drop_table(db, schema.WAYPOINTS)
    await loader.load_systems(db, systems)
    await loader.load_waypoints(db, systems)
    logger.info("Systems cache ready")
    return True
