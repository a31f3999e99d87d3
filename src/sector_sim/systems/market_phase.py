"""Market phase: regional markets, cross-sector trade, shortages and bonuses.

Order of work each turn:

1. Drop last turn's market modifiers from every colony.
2. Resolve every region's internal market.
3. Run both directions of every active trade link.
4. Derive shortages from the post-trade flows.
5. Attach shortage maluses and export bonuses as fresh market modifiers.
6. Record per-region totals and trade flows.
7. Emit one notification per colony left in shortage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from sector_sim.domain.events import Notification
from sector_sim.domain.market_models import ExportBonus, RegionMarketState, Shortage, TradeFlow
from sector_sim.domain.types import Colony, ColonyResourceSummary, Modifier, ResourceType, Severity
from sector_sim.rules.ruleset import MarketConfig, Ruleset
from sector_sim.sim.state import GameState, PhaseResult
from sector_sim.systems.market import FlowProvider, compute_raw_flows, resolve_market, summarize_flows
from sector_sim.systems.trade import RegionSide, resolve_trade_link

logger = logging.getLogger(__name__)

MARKET_MODIFIER_SOURCE = "market"


@dataclass(frozen=True)
class MarketPhaseResult(PhaseResult):
    colony_flows: dict[str, ColonyResourceSummary]
    shortages: list[Shortage]
    export_bonuses: list[ExportBonus]
    trade_flows: list[TradeFlow]


def resolve_market_phase(state: GameState, flow_provider: FlowProvider, rules: Ruleset) -> MarketPhaseResult:
    config = rules.market
    colonies = clear_market_modifiers(state.colonies)

    colonies_by_region: dict[str, list[Colony]] = {region_id: [] for region_id in state.regions}
    for colony in colonies.values():
        if colony.region_id not in colonies_by_region:
            logger.warning("Colony %s is in unknown region %s; skipping market", colony.id, colony.region_id)
            continue
        colonies_by_region[colony.region_id].append(colony)

    region_flows: dict[str, dict[str, ColonyResourceSummary]] = {}
    export_bonuses: list[ExportBonus] = []
    for region_id, region_colonies in colonies_by_region.items():
        raw = compute_raw_flows(region_colonies, state.deposits, flow_provider)
        resolution = resolve_market(region_id, region_colonies, raw, config)
        region_flows[region_id] = resolution.colony_flows
        export_bonuses.extend(resolution.export_bonuses)

    inbound: dict[str, list[TradeFlow]] = {region_id: [] for region_id in state.regions}
    outbound: dict[str, list[TradeFlow]] = {region_id: [] for region_id in state.regions}
    trade_flows: list[TradeFlow] = []
    for link in state.trade_links:
        if link.region_a not in region_flows or link.region_b not in region_flows:
            logger.warning("Trade link %s names an unknown region; skipping", link.link_id)
            continue
        if link.region_a == link.region_b:
            logger.warning("Trade link %s connects region %s to itself; skipping", link.link_id, link.region_a)
            continue
        result = resolve_trade_link(
            RegionSide(link.region_a, colonies_by_region[link.region_a], region_flows[link.region_a]),
            RegionSide(link.region_b, colonies_by_region[link.region_b], region_flows[link.region_b]),
            config,
        )
        region_flows[link.region_a] = result.flows_a
        region_flows[link.region_b] = result.flows_b
        for flow in result.a_to_b:
            outbound[link.region_a].append(flow)
            inbound[link.region_b].append(flow)
        for flow in result.b_to_a:
            outbound[link.region_b].append(flow)
            inbound[link.region_a].append(flow)
        trade_flows.extend(result.a_to_b)
        trade_flows.extend(result.b_to_a)

    final_flows: dict[str, ColonyResourceSummary] = {}
    for flows in region_flows.values():
        final_flows.update(flows)
    shortages = derive_shortages(final_flows)

    colonies = apply_market_modifiers(colonies, shortages, export_bonuses, config, state.turn)

    region_markets = dict(state.region_markets)
    for region_id in state.regions:
        summary = summarize_flows(region_id, region_flows[region_id])
        region_markets[region_id] = RegionMarketState(
            region_id=region_id,
            total_production=summary.total_production,
            total_consumption=summary.total_consumption,
            net_surplus=summary.net_surplus,
            inbound_flows=inbound[region_id],
            outbound_flows=outbound[region_id],
        )

    notifications = build_shortage_notifications(shortages, colonies, state, config)
    logger.info(
        "Market phase turn %d: %d shortages, %d export bonuses, %d trade flows",
        state.turn,
        len(shortages),
        len(export_bonuses),
        len(trade_flows),
    )
    return MarketPhaseResult(
        state=replace(state, colonies=colonies, region_markets=region_markets),
        notifications=notifications,
        colony_flows=final_flows,
        shortages=shortages,
        export_bonuses=export_bonuses,
        trade_flows=trade_flows,
    )


def derive_shortages(colony_flows: dict[str, ColonyResourceSummary]) -> list[Shortage]:
    shortages: list[Shortage] = []
    for colony_id, summary in colony_flows.items():
        for resource in ResourceType:
            flow = summary[resource]
            if flow.in_shortage:
                shortages.append(Shortage(colony_id=colony_id, resource=resource, deficit_amount=flow.unmet_need))
    return shortages


def clear_market_modifiers(colonies: dict[str, Colony]) -> dict[str, Colony]:
    return {
        colony_id: replace(
            colony,
            modifiers=tuple(m for m in colony.modifiers if m.source_type != MARKET_MODIFIER_SOURCE),
        )
        for colony_id, colony in colonies.items()
    }


def _market_modifier(colony_id: str, source_id: str, source_name: str, target: str, value: float, turn: int) -> Modifier:
    return Modifier(
        id=f"mod_{colony_id}_{source_id}_t{turn}",
        target=target,
        operation="add",
        value=value,
        source_type=MARKET_MODIFIER_SOURCE,
        source_id=source_id,
        source_name=source_name,
    )


def apply_market_modifiers(
    colonies: dict[str, Colony],
    shortages: list[Shortage],
    export_bonuses: list[ExportBonus],
    config: MarketConfig,
    turn: int,
) -> dict[str, Colony]:
    added: dict[str, list[Modifier]] = {}
    for shortage in shortages:
        malus = config.shortage_malus.get(shortage.resource)
        if malus is None:
            continue
        added.setdefault(shortage.colony_id, []).append(
            _market_modifier(
                shortage.colony_id,
                f"shortage_{shortage.resource.value}",
                f"{shortage.resource.value} Shortage",
                malus.target,
                malus.value,
                turn,
            )
        )
    for bonus in export_bonuses:
        added.setdefault(bonus.colony_id, []).append(
            _market_modifier(
                bonus.colony_id,
                f"export_{bonus.resource.value}",
                f"{bonus.resource.value} Export Bonus",
                bonus.attribute_target,
                bonus.bonus_amount,
                turn,
            )
        )

    updated = dict(colonies)
    for colony_id, modifiers in added.items():
        colony = updated.get(colony_id)
        if colony is None:
            continue
        updated[colony_id] = replace(colony, modifiers=colony.modifiers + tuple(modifiers))
    return updated


def build_shortage_notifications(
    shortages: list[Shortage],
    colonies: dict[str, Colony],
    state: GameState,
    config: MarketConfig,
) -> list[Notification]:
    by_colony: dict[str, list[Shortage]] = {}
    for shortage in shortages:
        by_colony.setdefault(shortage.colony_id, []).append(shortage)

    notifications: list[Notification] = []
    for colony_id, colony_shortages in by_colony.items():
        colony = colonies.get(colony_id)
        colony_name = colony.name if colony else colony_id
        region = state.regions.get(colony.region_id) if colony else None
        region_name = region.name if region else "unknown region"
        resources = ", ".join(s.resource.value for s in colony_shortages)
        critical = any(s.resource in config.critical_shortage_resources for s in colony_shortages)
        notifications.append(
            Notification(
                turn=state.turn,
                severity=Severity.CRITICAL if critical else Severity.WARNING,
                category="colony",
                title=f"Resource Shortage: {colony_name}",
                description=(
                    f"{colony_name} ({region_name}) is experiencing shortages: {resources}. "
                    "Colony attributes will be penalised next turn."
                ),
                related_ids=(colony_id,),
            )
        )
    return notifications
