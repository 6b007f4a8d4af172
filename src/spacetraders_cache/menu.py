"""Interactive main menu, run once the systems cache is ready."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from rich.console import Console
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from spacetraders_cache.api import agent as agent_api
from spacetraders_cache.api import contracts as contracts_api
from spacetraders_cache.api import fleet as fleet_api
from spacetraders_cache.api import systems as systems_api
from spacetraders_cache.client import ApiError, SpaceTradersClient, SpaceTradersError
from spacetraders_cache.data import catalog
from spacetraders_cache.data.catalog import CachedWaypoint
from spacetraders_cache.data.database import Database, StoreError
from spacetraders_cache.models import Waypoint

logger = logging.getLogger(__name__)

SYSTEMS_PER_PAGE = 20


class MenuChoice(str, Enum):
    GET_AGENT = "Get agent"
    LIST_SYSTEMS = "List systems"
    GET_SYSTEM = "Get system"
    GET_WAYPOINT = "Get waypoint"
    LIST_CONTRACTS = "List contracts"
    LIST_SHIPS = "List ships"
    EXIT = "Exit"


def _flag(value: bool | None) -> str:
    if value is None:
        return "?"
    return "yes" if value else "no"


async def lookup_waypoint(
    client: SpaceTradersClient, db: Database, symbol: str,
) -> CachedWaypoint | Waypoint | None:
    """Cached waypoint if we have it, otherwise ask the API. None if neither knows it."""
    cached = await catalog.get_waypoint(db, symbol)
    if cached is not None:
        return cached
    logger.info("Waypoint %s not cached, fetching from API", symbol)
    system_symbol = systems_api.system_symbol_from_waypoint(symbol)
    try:
        return await systems_api.get_waypoint(client, system_symbol, symbol)
    except ApiError as exc:
        if exc.status_code == 404:
            return None
        raise


class Menu:
    """Prompt loop over the cache and a handful of live API reads."""

    def __init__(
        self,
        client: SpaceTradersClient,
        db: Database,
        console: Console | None = None,
    ) -> None:
        self.client = client
        self.db = db
        self.console = console or Console()

    async def _ask(self, prompt: str, **kwargs) -> str:
        # rich prompts block on stdin
        return await asyncio.to_thread(Prompt.ask, prompt, console=self.console, **kwargs)

    async def run(self) -> None:
        choices = list(MenuChoice)
        while True:
            for n, choice in enumerate(choices, 1):
                self.console.print(f"  [bold]{n}[/bold]. {choice.value}")
            raw = await self._ask(
                "Main Menu", choices=[str(n) for n in range(1, len(choices) + 1)],
            )
            choice = choices[int(raw) - 1]
            if choice is MenuChoice.EXIT:
                self.console.print("Bye!")
                return
            try:
                await self.handle(choice)
            except (SpaceTradersError, StoreError, ValueError) as exc:
                logger.debug("Menu action %s failed", choice.name, exc_info=True)
                self.console.print(f"[red]{type(exc).__name__}:[/red] {exc}")

    async def handle(self, choice: MenuChoice) -> None:
        if choice is MenuChoice.GET_AGENT:
            await self.show_agent()
        elif choice is MenuChoice.LIST_SYSTEMS:
            page = await asyncio.to_thread(
                IntPrompt.ask, "Page", default=1, console=self.console,
            )
            await self.show_systems(max(1, page))
        elif choice is MenuChoice.GET_SYSTEM:
            symbol = (await self._ask("System symbol")).strip().upper()
            await self.show_system(symbol)
        elif choice is MenuChoice.GET_WAYPOINT:
            symbol = (await self._ask("Waypoint symbol")).strip().upper()
            await self.show_waypoint(symbol)
        elif choice is MenuChoice.LIST_CONTRACTS:
            await self.show_contracts()
        elif choice is MenuChoice.LIST_SHIPS:
            await self.show_ships()

    async def show_agent(self) -> None:
        agent = await agent_api.get_agent(self.client)
        table = Table(title=f"Agent {agent.symbol}", show_header=False)
        table.add_row("Headquarters", agent.headquarters)
        table.add_row("Credits", f"{agent.credits:,}")
        table.add_row("Faction", agent.starting_faction)
        table.add_row("Ships", str(agent.ship_count))
        self.console.print(table)

    async def show_systems(self, page: int = 1) -> None:
        systems = await catalog.list_systems(
            self.db, limit=SYSTEMS_PER_PAGE, offset=(page - 1) * SYSTEMS_PER_PAGE,
        )
        if not systems:
            self.console.print(f"No cached systems on page {page}.")
            return
        table = Table(title=f"Systems (page {page})")
        for col in ("Symbol", "Sector", "Type", "X", "Y", "Factions"):
            table.add_column(col)
        for s in systems:
            table.add_row(
                s.symbol, s.sector_symbol, s.type, str(s.x), str(s.y),
                ", ".join(s.factions) or "-",
            )
        self.console.print(table)

    async def show_system(self, symbol: str) -> None:
        system = await catalog.get_system(self.db, symbol)
        if system is None:
            self.console.print(f"System {symbol} is not cached.")
            return
        waypoints = await catalog.list_waypoints(self.db, symbol)
        table = Table(
            title=f"{system.symbol} {system.type} at ({system.x}, {system.y})",
            caption=f"Factions: {', '.join(system.factions) or '-'}",
        )
        for col in ("Waypoint", "Type", "X", "Y", "Marketplace", "Shipyard"):
            table.add_column(col)
        for w in waypoints:
            table.add_row(
                w.symbol, w.type, str(w.x), str(w.y),
                _flag(w.is_marketplace), _flag(w.is_shipyard),
            )
        self.console.print(table)

    async def show_waypoint(self, symbol: str) -> None:
        waypoint = await lookup_waypoint(self.client, self.db, symbol)
        if waypoint is None:
            self.console.print(f"Waypoint {symbol} not found.")
            return
        source = "cache" if isinstance(waypoint, CachedWaypoint) else "API"
        table = Table(title=f"{waypoint.symbol} ({source})", show_header=False)
        table.add_row("System", waypoint.system_symbol)
        table.add_row("Type", str(getattr(waypoint.type, "value", waypoint.type)))
        table.add_row("Coordinates", f"({waypoint.x}, {waypoint.y})")
        table.add_row("Marketplace", _flag(waypoint.is_marketplace))
        table.add_row("Shipyard", _flag(waypoint.is_shipyard))
        self.console.print(table)

    async def show_contracts(self) -> None:
        contracts = await contracts_api.list_contracts(self.client)
        table = Table(title=f"Contracts ({len(contracts)})")
        for col in ("ID", "Faction", "Type", "Accepted", "Fulfilled", "Deadline"):
            table.add_column(col)
        for c in contracts:
            table.add_row(
                c.id, c.faction_symbol, c.type.value, _flag(c.accepted),
                _flag(c.fulfilled), c.terms.deadline.isoformat(timespec="minutes"),
            )
        self.console.print(table)

    async def show_ships(self) -> None:
        ships = await fleet_api.list_ships(self.client)
        table = Table(title=f"Ships ({len(ships)})")
        for col in ("Symbol", "Role", "Location", "Status", "Fuel", "Cargo"):
            table.add_column(col)
        for s in ships:
            table.add_row(
                s.symbol, s.registration.role, s.nav.waypoint_symbol, s.nav.status.value,
                f"{s.fuel.current}/{s.fuel.capacity}", f"{s.cargo.units}/{s.cargo.capacity}",
            )
        self.console.print(table)
