"""Market resolution records."""

from __future__ import annotations

from dataclasses import dataclass, field

from sector_sim.domain.types import ColonyResourceSummary, ResourceType


@dataclass(frozen=True)
class Shortage:
    colony_id: str
    resource: ResourceType
    # Unmet need after all allocation steps.
    deficit_amount: int


@dataclass(frozen=True)
class ExportBonus:
    colony_id: str
    resource: ResourceType
    attribute_target: str
    bonus_amount: int


@dataclass(frozen=True)
class TradeFlow:
    """One resource moved between two regions in one direction for one turn."""

    from_region_id: str
    to_region_id: str
    resource: ResourceType
    # Exporter residual surplus before the efficiency cut.
    surplus_available: int
    # floor(surplus_available * efficiency)
    transferred: int
    # Actually claimed by importer colonies.
    received: int


@dataclass(frozen=True)
class RegionMarketSummary:
    region_id: str
    total_production: dict[ResourceType, int]
    total_consumption: dict[ResourceType, int]
    net_surplus: dict[ResourceType, int]
    shortages: list[Shortage] = field(default_factory=list)


@dataclass(frozen=True)
class MarketResolution:
    """Output of one region's intra-region resolution."""

    colony_flows: dict[str, ColonyResourceSummary]
    summary: RegionMarketSummary
    export_bonuses: list[ExportBonus]


@dataclass(frozen=True)
class TradePassResult:
    """One directional cross-sector pass: updated importer flows plus transfers."""

    importer_flows: dict[str, ColonyResourceSummary]
    trade_flows: list[TradeFlow]


@dataclass(frozen=True)
class RegionMarketState:
    """Per-region market state persisted after the market phase."""

    region_id: str
    total_production: dict[ResourceType, int]
    total_consumption: dict[ResourceType, int]
    net_surplus: dict[ResourceType, int]
    inbound_flows: list[TradeFlow] = field(default_factory=list)
    outbound_flows: list[TradeFlow] = field(default_factory=list)
