from __future__ import annotations

import logging
import math
from typing import Sequence

from sector_sim.domain.fleet_models import CombatResult, Unit, UnitCombatOutcome
from sector_sim.domain.types import ExperienceTier, MissionType
from sector_sim.rules.ruleset import CombatConfig
from sector_sim.sim.rng import RandFn

logger = logging.getLogger(__name__)

MAX_CONDITION = 100


def _lerp(bounds: tuple[float, float], roll: float) -> float:
    low, high = bounds
    return low + roll * (high - low)


def apply_commander_modifier(fight: int, experience: ExperienceTier, config: CombatConfig) -> int:
    return math.floor(fight * config.experience_modifiers[experience])


def mission_difficulty(mission_type: MissionType, threat_modifier: float, config: CombatConfig) -> float:
    return config.mission_base_difficulty[mission_type] * threat_modifier


def roll_variance(roll: float, config: CombatConfig) -> float:
    return _lerp(config.roll_variance, roll)


def resolve_combat_roll(effective_fight: int, difficulty: float, roll: float, config: CombatConfig) -> bool:
    """True when the task force wins."""
    return effective_fight * roll_variance(roll, config) > difficulty


def sample_condition_loss(won: bool, roll: float, config: CombatConfig) -> float:
    return _lerp(config.win_condition_loss if won else config.lose_condition_loss, roll)


def apply_condition_damage(condition: int, loss_fraction: float) -> int:
    # Half-up rounding, then clamp.
    damaged = math.floor(condition - condition * loss_fraction + 0.5)
    return max(0, min(MAX_CONDITION, damaged))


def build_narrative(won: bool, mission_type: MissionType, outcomes: Sequence[UnitCombatOutcome]) -> str:
    result = "Victory" if won else "Defeat"
    lost = sum(1 for o in outcomes if o.destroyed)
    damaged = sum(1 for o in outcomes if not o.destroyed and o.condition_after < o.condition_before)
    return f"{result}: {mission_type.value} engagement concluded. {lost} ship(s) lost. {damaged} ship(s) damaged."


def resolve_combat(
    units: Sequence[Unit],
    commander_experience: ExperienceTier,
    mission_type: MissionType,
    threat_modifier: float,
    turn: int,
    rand: RandFn,
    config: CombatConfig,
) -> CombatResult:
    """Single-roll engagement: one outcome draw, then one loss draw per unit in order."""
    raw_fight = sum(unit.fight for unit in units)
    effective_fight = apply_commander_modifier(raw_fight, commander_experience, config)
    difficulty = mission_difficulty(mission_type, threat_modifier, config)

    won = resolve_combat_roll(effective_fight, difficulty, rand(), config)

    outcomes: list[UnitCombatOutcome] = []
    for unit in units:
        loss_fraction = sample_condition_loss(won, rand(), config)
        before = max(0, min(MAX_CONDITION, unit.condition))
        after = apply_condition_damage(before, loss_fraction)
        outcomes.append(
            UnitCombatOutcome(
                unit_id=unit.id,
                condition_before=before,
                condition_after=after,
                destroyed=after == 0,
            )
        )

    logger.info(
        "%s combat turn %d: fight %d vs difficulty %.1f -> %s",
        mission_type.value,
        turn,
        effective_fight,
        difficulty,
        "victory" if won else "defeat",
    )
    return CombatResult(
        outcome="victory" if won else "defeat",
        unit_outcomes=outcomes,
        narrative=build_narrative(won, mission_type, outcomes),
        turn=turn,
        effective_fight=effective_fight,
        difficulty=difficulty,
    )
