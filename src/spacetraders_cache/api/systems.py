"""System and waypoint API operations."""

from __future__ import annotations

import logging

from spacetraders_cache.client import SpaceTradersClient, parse, parse_items
from spacetraders_cache.config import MAX_PAGE_SIZE
from spacetraders_cache.models import Meta, System, Waypoint

logger = logging.getLogger(__name__)


async def list_systems_page(
    client: SpaceTradersClient, page: int = 1, limit: int = MAX_PAGE_SIZE,
) -> tuple[list[System], Meta]:
    """Fetch a single page of the systems catalog."""
    items, meta = await client.get_page("/systems", page=page, limit=limit)
    return parse_items(System, items), meta


async def fetch_all_systems(
    client: SpaceTradersClient, page_size: int = MAX_PAGE_SIZE,
) -> list[System]:
    """Fetch the whole systems catalog, in upstream order.

    Either every page arrives and validates, or the error propagates and
    no systems are returned.
    """
    logger.info("Fetching systems catalog (%d per page)...", page_size)
    items, meta = await client.get_paginated("/systems", limit=page_size)
    systems = parse_items(System, items)
    logger.info(
        "Fetched %d systems with %d waypoints (reported total %d)",
        len(systems), sum(len(s.waypoints) for s in systems), meta.total,
    )
    return systems


async def get_system_waypoints(
    client: SpaceTradersClient, system_symbol: str,
) -> list[Waypoint]:
    """Fetch all waypoints in a system."""
    items, _ = await client.get_paginated(f"/systems/{system_symbol}/waypoints")
    return parse_items(Waypoint, items)


async def get_waypoint(
    client: SpaceTradersClient, system_symbol: str, waypoint_symbol: str,
) -> Waypoint:
    """Fetch a single waypoint."""
    body = await client.get(f"/systems/{system_symbol}/waypoints/{waypoint_symbol}")
    return parse(Waypoint, body)


def system_symbol_from_waypoint(waypoint_symbol: str) -> str:
    """Extract system symbol from a waypoint symbol (e.g. 'X1-XV5-H58' -> 'X1-XV5')."""
    parts = waypoint_symbol.split("-")
    if len(parts) < 3:
        raise ValueError(
            f"Invalid waypoint symbol '{waypoint_symbol}': expected format like 'X1-XV5-H58'",
        )
    return f"{parts[0]}-{parts[1]}"
