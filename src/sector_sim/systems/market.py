"""Regional market resolution.

Each region pools the positive surplus of its colonies per tradeable resource and
hands it out to colonies in deficit, highest dynamism first. Whatever cannot be
covered becomes a shortage. Resources flagged non-tradeable (transport capacity)
never enter the pool, so a deficit in them is a shortage straight away.

A colony earns an export bonus for a resource when it contributed surplus and the
pool for that resource actually shrank during allocation. Producing surplus that
nobody draws is not rewarded.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, Sequence

from sector_sim.domain.market_models import ExportBonus, MarketResolution, RegionMarketSummary, Shortage
from sector_sim.domain.types import (
    Colony,
    ColonyResourceSummary,
    ResourceType,
    complete_summary,
)
from sector_sim.rules.ruleset import MarketConfig

logger = logging.getLogger(__name__)


class FlowProvider(Protocol):
    """Computes a colony's pre-market flows (imported=0, in_shortage=False)."""

    def __call__(self, colony: Colony, deposits: Sequence[Any]) -> ColonyResourceSummary: ...


def compute_raw_flows(
    colonies: Sequence[Colony],
    deposits: Mapping[str, Sequence[Any]],
    flow_provider: FlowProvider,
) -> dict[str, ColonyResourceSummary]:
    raw: dict[str, ColonyResourceSummary] = {}
    for colony in colonies:
        summary = flow_provider(colony, deposits.get(colony.id, ()))
        raw[colony.id] = complete_summary(summary)
    return raw


def by_priority(colonies: Sequence[Colony]) -> list[Colony]:
    """Highest dynamism first. Stable: ties keep list order."""
    return sorted(colonies, key=lambda c: c.dynamism, reverse=True)


def zero_totals() -> dict[ResourceType, int]:
    return {resource: 0 for resource in ResourceType}


def summarize_flows(
    region_id: str,
    colony_flows: Mapping[str, ColonyResourceSummary],
    shortages: list[Shortage] | None = None,
) -> RegionMarketSummary:
    total_production = zero_totals()
    total_consumption = zero_totals()
    for summary in colony_flows.values():
        for resource in ResourceType:
            flow = summary[resource]
            total_production[resource] += flow.produced
            total_consumption[resource] += flow.consumed
    net_surplus = {r: total_production[r] - total_consumption[r] for r in ResourceType}
    return RegionMarketSummary(
        region_id=region_id,
        total_production=total_production,
        total_consumption=total_consumption,
        net_surplus=net_surplus,
        shortages=list(shortages or []),
    )


def resolve_market(
    region_id: str,
    colonies: Sequence[Colony],
    raw_flows: Mapping[str, ColonyResourceSummary],
    config: MarketConfig,
) -> MarketResolution:
    """Resolve one region's market for one turn."""
    flows = {colony.id: complete_summary(raw_flows.get(colony.id)) for colony in colonies}
    tradeable = config.tradeable

    pool: dict[ResourceType, int] = {}
    for resource in tradeable:
        pool[resource] = sum(max(0, flows[c.id][resource].surplus) for c in colonies)
    initial_pool = dict(pool)

    imported: dict[str, dict[ResourceType, int]] = {c.id: {} for c in colonies}
    for colony in by_priority(colonies):
        for resource in tradeable:
            flow = flows[colony.id][resource]
            if flow.surplus >= 0:
                continue
            received = min(-flow.surplus, pool[resource])
            pool[resource] -= received
            imported[colony.id][resource] = received

    colony_flows: dict[str, ColonyResourceSummary] = {}
    shortages: list[Shortage] = []
    for colony in colonies:
        updated: ColonyResourceSummary = {}
        for resource in ResourceType:
            flow = flows[colony.id][resource]
            if resource in config.non_tradeable:
                updated[resource] = flow.with_imported(0)
            else:
                updated[resource] = flow.with_imported(imported[colony.id].get(resource, 0))
            if updated[resource].in_shortage:
                shortages.append(
                    Shortage(
                        colony_id=colony.id,
                        resource=resource,
                        deficit_amount=updated[resource].unmet_need,
                    )
                )
        colony_flows[colony.id] = updated

    export_bonuses: list[ExportBonus] = []
    for colony in colonies:
        for resource in tradeable:
            if flows[colony.id][resource].surplus <= 0:
                continue
            if initial_pool[resource] > pool[resource]:
                export_bonuses.append(
                    ExportBonus(
                        colony_id=colony.id,
                        resource=resource,
                        attribute_target=config.export_bonus_attribute,
                        bonus_amount=config.export_bonus_amount,
                    )
                )

    logger.debug(
        "Region %s resolved: %d colonies, %d shortages, %d export bonuses",
        region_id,
        len(colonies),
        len(shortages),
        len(export_bonuses),
    )
    return MarketResolution(
        colony_flows=colony_flows,
        summary=summarize_flows(region_id, flows, shortages),
        export_bonuses=export_bonuses,
    )
