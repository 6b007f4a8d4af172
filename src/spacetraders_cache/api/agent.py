"""Agent API operations."""

from __future__ import annotations

from spacetraders_cache.client import SpaceTradersClient, parse
from spacetraders_cache.models import Agent


async def get_agent(client: SpaceTradersClient) -> Agent:
    """Fetch the current agent's info."""
    body = await client.get("/my/agent")
    return parse(Agent, body)
