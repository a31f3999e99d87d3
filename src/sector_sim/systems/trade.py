"""Cross-sector trade along active trade links."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Sequence

from sector_sim.domain.market_models import TradeFlow, TradePassResult
from sector_sim.domain.types import Colony, ColonyResourceSummary, ResourceType
from sector_sim.rules.ruleset import MarketConfig
from sector_sim.systems.market import by_priority

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionSide:
    """One end of a pass: a region's colonies and its post-resolution flows."""

    region_id: str
    colonies: Sequence[Colony]
    colony_flows: Mapping[str, ColonyResourceSummary]


@dataclass(frozen=True)
class LinkTradeResult:
    flows_a: dict[str, ColonyResourceSummary]
    flows_b: dict[str, ColonyResourceSummary]
    a_to_b: list[TradeFlow]
    b_to_a: list[TradeFlow]


def residual_surplus(colony_flows: Mapping[str, ColonyResourceSummary], resource: ResourceType) -> int:
    """Surplus left in a region after intra-region allocation gave some away."""
    return sum(summary[resource].residual_surplus for summary in colony_flows.values())


def apply_trade_pass(exporter: RegionSide, importer: RegionSide, config: MarketConfig) -> TradePassResult:
    """One directional pass. The exporter's flows are read, never changed."""
    updated = dict(importer.colony_flows)
    trade_flows: list[TradeFlow] = []
    ordered = [c for c in by_priority(importer.colonies) if c.id in updated]

    for resource in config.tradeable:
        surplus = residual_surplus(exporter.colony_flows, resource)
        if surplus <= 0:
            continue
        available = math.floor(surplus * config.cross_sector_efficiency)
        if available <= 0:
            continue

        remaining = available
        total_received = 0
        for colony in ordered:
            if remaining <= 0:
                break
            summary = updated[colony.id]
            flow = summary[resource]
            deficit = flow.unmet_need
            if deficit <= 0:
                continue
            received = min(deficit, remaining)
            remaining -= received
            total_received += received
            updated[colony.id] = {**summary, resource: flow.with_imported(flow.imported + received)}

        if total_received > 0:
            trade_flows.append(
                TradeFlow(
                    from_region_id=exporter.region_id,
                    to_region_id=importer.region_id,
                    resource=resource,
                    surplus_available=surplus,
                    transferred=available,
                    received=total_received,
                )
            )

    return TradePassResult(importer_flows=updated, trade_flows=trade_flows)


def resolve_trade_link(side_a: RegionSide, side_b: RegionSide, config: MarketConfig) -> LinkTradeResult:
    """Both directions of one link, each evaluated against the same pre-trade snapshot."""
    a_to_b = apply_trade_pass(side_a, side_b, config)
    b_to_a = apply_trade_pass(side_b, side_a, config)
    logger.debug(
        "Trade %s<->%s: %d flows out, %d flows in",
        side_a.region_id,
        side_b.region_id,
        len(a_to_b.trade_flows),
        len(b_to_a.trade_flows),
    )
    return LinkTradeResult(
        flows_a=b_to_a.importer_flows,
        flows_b=a_to_b.importer_flows,
        a_to_b=a_to_b.trade_flows,
        b_to_a=b_to_a.trade_flows,
    )
