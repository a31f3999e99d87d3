from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from sector_sim.domain.events import Notification
from sector_sim.rules.ruleset import Ruleset
from sector_sim.sim.rng import RandFn, rand_fn
from sector_sim.sim.state import GameState
from sector_sim.systems.market import FlowProvider
from sector_sim.systems.market_phase import MarketPhaseResult, resolve_market_phase
from sector_sim.systems.missions import resolve_mission_phase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnResult:
    state: GameState
    notifications: list[Notification]
    market: MarketPhaseResult


def advance_turn(
    state: GameState,
    flow_provider: FlowProvider,
    rules: Ruleset,
    rand: RandFn | None = None,
) -> TurnResult:
    """Resolve missions then markets for `state.turn`, returning the next turn's snapshot."""
    if rand is None:
        rand = rand_fn(state.rng_seed, turn=state.turn, stream="missions", purpose="combat")

    missions = resolve_mission_phase(state, rules, rand)
    market = resolve_market_phase(missions.state, flow_provider, rules)

    notifications = [*missions.notifications, *market.notifications]
    logger.info("Turn %d resolved with %d notifications", state.turn, len(notifications))
    return TurnResult(
        state=replace(market.state, turn=state.turn + 1),
        notifications=notifications,
        market=market,
    )
