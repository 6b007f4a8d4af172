"""Contract API operations."""

from __future__ import annotations

from spacetraders_cache.client import SpaceTradersClient, parse_items
from spacetraders_cache.models import Contract


async def list_contracts(client: SpaceTradersClient) -> list[Contract]:
    """Fetch all contracts."""
    items, _ = await client.get_paginated("/my/contracts")
    return parse_items(Contract, items)
