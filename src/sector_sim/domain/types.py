"""Common types and enums."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping


class ResourceType(str, Enum):
    """Resource kinds circulating through regional markets."""

    # Raw
    FOOD = "Food"
    COMMON_MATERIALS = "CommonMaterials"
    RARE_MATERIALS = "RareMaterials"
    VOLATILES = "Volatiles"

    # Manufactured
    CONSUMER_GOODS = "ConsumerGoods"
    HEAVY_MACHINERY = "HeavyMachinery"
    HIGH_TECH_GOODS = "HighTechGoods"
    SHIP_PARTS = "ShipParts"

    # Local only
    TRANSPORT_CAPACITY = "TransportCapacity"


class MissionType(str, Enum):
    ESCORT = "Escort"
    ASSAULT = "Assault"
    DEFENSE = "Defense"
    RESCUE = "Rescue"
    INVESTIGATION = "Investigation"


class MissionPhase(str, Enum):
    TRAVEL = "Travel"
    EXECUTION = "Execution"
    RETURN = "Return"
    COMPLETED = "Completed"


class UnitStatus(str, Enum):
    STATIONED = "Stationed"
    ON_MISSION = "OnMission"
    UNDER_REPAIR = "UnderRepair"
    UNDER_CONSTRUCTION = "UnderConstruction"


class ExperienceTier(str, Enum):
    GREEN = "Green"
    REGULAR = "Regular"
    VETERAN = "Veteran"
    ELITE = "Elite"


class Severity(str, Enum):
    CRITICAL = "Critical"
    WARNING = "Warning"
    INFO = "Info"
    POSITIVE = "Positive"


@dataclass(frozen=True)
class ResourceFlow:
    """One resource's production/consumption for one colony in one turn."""

    produced: int = 0
    consumed: int = 0
    # Units received from a market pool (intra-region or cross-sector).
    imported: int = 0
    in_shortage: bool = False

    @property
    def surplus(self) -> int:
        return self.produced - self.consumed

    @property
    def unmet_need(self) -> int:
        return max(0, self.consumed - self.produced - self.imported)

    @property
    def residual_surplus(self) -> int:
        return max(0, self.produced - self.consumed + self.imported)

    def with_imported(self, imported: int) -> "ResourceFlow":
        updated = replace(self, imported=imported)
        return replace(updated, in_shortage=updated.unmet_need > 0)


# Every ResourceType is present in a summary, zero-valued when unused.
ColonyResourceSummary = dict[ResourceType, ResourceFlow]


def empty_summary() -> ColonyResourceSummary:
    return {resource: ResourceFlow() for resource in ResourceType}


def complete_summary(partial: Mapping[ResourceType, ResourceFlow] | None) -> ColonyResourceSummary:
    """Fill in missing resource kinds with zero flows."""
    summary = empty_summary()
    if partial:
        summary.update(partial)
    return summary


@dataclass(frozen=True)
class Modifier:
    id: str
    target: str
    operation: str  # "add" | "multiply"
    value: float
    source_type: str
    source_id: str
    source_name: str


@dataclass(frozen=True)
class Colony:
    """A market participant. `dynamism` orders access to shared pools."""

    id: str
    name: str
    region_id: str
    dynamism: int
    modifiers: tuple[Modifier, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Region:
    id: str
    name: str
    # Multiplies mission difficulty, 0.5 to 1.5.
    threat_modifier: float = 1.0


@dataclass(frozen=True)
class TradeLink:
    """An active bidirectional trade link between two regions."""

    link_id: str
    region_a: str
    region_b: str
