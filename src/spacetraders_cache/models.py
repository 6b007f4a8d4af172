"""Pydantic models for SpaceTraders API responses."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


# --- Enums ---


class SystemType(str, Enum):
    NEUTRON_STAR = "NEUTRON_STAR"
    RED_STAR = "RED_STAR"
    ORANGE_STAR = "ORANGE_STAR"
    BLUE_STAR = "BLUE_STAR"
    YOUNG_STAR = "YOUNG_STAR"
    WHITE_DWARF = "WHITE_DWARF"
    BLACK_HOLE = "BLACK_HOLE"
    HYPERGIANT = "HYPERGIANT"
    NEBULA = "NEBULA"
    UNSTABLE = "UNSTABLE"


class WaypointType(str, Enum):
    PLANET = "PLANET"
    GAS_GIANT = "GAS_GIANT"
    MOON = "MOON"
    ORBITAL_STATION = "ORBITAL_STATION"
    JUMP_GATE = "JUMP_GATE"
    ASTEROID_FIELD = "ASTEROID_FIELD"
    ASTEROID = "ASTEROID"
    ENGINEERED_ASTEROID = "ENGINEERED_ASTEROID"
    ASTEROID_BASE = "ASTEROID_BASE"
    NEBULA = "NEBULA"
    DEBRIS_FIELD = "DEBRIS_FIELD"
    GRAVITY_WELL = "GRAVITY_WELL"
    ARTIFICIAL_GRAVITY_WELL = "ARTIFICIAL_GRAVITY_WELL"
    FUEL_STATION = "FUEL_STATION"


class ShipNavStatus(str, Enum):
    DOCKED = "DOCKED"
    IN_ORBIT = "IN_ORBIT"
    IN_TRANSIT = "IN_TRANSIT"


class ContractType(str, Enum):
    PROCUREMENT = "PROCUREMENT"
    TRANSPORT = "TRANSPORT"
    SHUTTLE = "SHUTTLE"


# --- Response envelope ---


class Meta(BaseModel):
    total: int
    page: int
    limit: int


# --- Agent ---


class Agent(BaseModel):
    account_id: str | None = Field(None, alias="accountId")
    symbol: str
    headquarters: str
    credits: int
    starting_faction: str = Field(alias="startingFaction")
    ship_count: int = Field(0, alias="shipCount")


# --- Systems ---


class SystemFaction(BaseModel):
    symbol: str


class WaypointOrbital(BaseModel):
    symbol: str


class SystemWaypoint(BaseModel):
    """Waypoint summary embedded in a system listing."""

    model_config = {"frozen": True}

    symbol: str
    type: WaypointType
    x: int
    y: int
    orbits: str | None = None
    orbitals: list[WaypointOrbital] = Field(default_factory=list)


class System(BaseModel):
    model_config = {"frozen": True}

    symbol: str
    sector_symbol: str = Field(alias="sectorSymbol")
    type: SystemType
    x: int
    y: int
    waypoints: list[SystemWaypoint] = Field(default_factory=list)
    factions: list[SystemFaction] = Field(default_factory=list)

    @property
    def faction_symbols(self) -> list[str]:
        """Distinct faction symbols, first occurrence wins."""
        return list(dict.fromkeys(f.symbol for f in self.factions))


# --- Waypoints ---


class WaypointTrait(BaseModel):
    symbol: str
    name: str
    description: str = ""


class WaypointFaction(BaseModel):
    symbol: str


class Waypoint(BaseModel):
    symbol: str
    type: WaypointType
    system_symbol: str = Field(alias="systemSymbol")
    x: int
    y: int
    orbits: str | None = None
    orbitals: list[WaypointOrbital] = Field(default_factory=list)
    traits: list[WaypointTrait] = Field(default_factory=list)
    faction: WaypointFaction | None = None
    is_under_construction: bool = Field(False, alias="isUnderConstruction")

    def has_trait(self, symbol: str) -> bool:
        return any(t.symbol == symbol for t in self.traits)

    @property
    def is_marketplace(self) -> bool:
        return self.has_trait("MARKETPLACE")

    @property
    def is_shipyard(self) -> bool:
        return self.has_trait("SHIPYARD")


# --- Contracts ---


class ContractDelivery(BaseModel):
    trade_symbol: str = Field(alias="tradeSymbol")
    destination_symbol: str = Field(alias="destinationSymbol")
    units_required: int = Field(alias="unitsRequired")
    units_fulfilled: int = Field(alias="unitsFulfilled")


class ContractPayment(BaseModel):
    on_accepted: int = Field(alias="onAccepted")
    on_fulfilled: int = Field(alias="onFulfilled")


class ContractTerms(BaseModel):
    deadline: datetime
    payment: ContractPayment
    deliver: list[ContractDelivery] = Field(default_factory=list)


class Contract(BaseModel):
    id: str
    faction_symbol: str = Field(alias="factionSymbol")
    type: ContractType
    terms: ContractTerms
    accepted: bool
    fulfilled: bool


# --- Ships (only the fields the menu shows) ---


class ShipRegistration(BaseModel):
    name: str
    faction_symbol: str = Field(alias="factionSymbol")
    role: str


class ShipNav(BaseModel):
    system_symbol: str = Field(alias="systemSymbol")
    waypoint_symbol: str = Field(alias="waypointSymbol")
    status: ShipNavStatus
    flight_mode: str = Field("CRUISE", alias="flightMode")


class ShipCargo(BaseModel):
    capacity: int
    units: int


class ShipFuel(BaseModel):
    current: int
    capacity: int


class Ship(BaseModel):
    symbol: str
    registration: ShipRegistration
    nav: ShipNav
    cargo: ShipCargo
    fuel: ShipFuel
