"""Fleet (ships) API operations."""

from __future__ import annotations

from spacetraders_cache.client import SpaceTradersClient, parse_items
from spacetraders_cache.models import Ship


async def list_ships(client: SpaceTradersClient) -> list[Ship]:
    """Fetch all ships in the fleet."""
    items, _ = await client.get_paginated("/my/ships")
    return parse_items(Ship, items)
