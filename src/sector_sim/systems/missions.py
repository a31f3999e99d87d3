"""Mission advancement: Travel -> Execution -> Return -> Completed.

Each phase has a transition function that takes the mission and the live unit map
and returns a `MissionStep`. A step flagged `same_turn` hands straight on to the next
phase within the current turn (arrival on the last travel turn). Completed missions
are terminal and are skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Mapping, Sequence

from sector_sim.domain.events import Notification
from sector_sim.domain.fleet_models import CombatResult, Mission, MissionReport, Unit
from sector_sim.domain.types import ExperienceTier, MissionPhase, Region, Severity, UnitStatus
from sector_sim.rules.ruleset import MissionConfig, Ruleset
from sector_sim.sim.rng import RandFn
from sector_sim.sim.state import GameState, PhaseResult
from sector_sim.systems.combat import resolve_combat

logger = logging.getLogger(__name__)

TIER_ORDER = [ExperienceTier.GREEN, ExperienceTier.REGULAR, ExperienceTier.VETERAN, ExperienceTier.ELITE]

REPORT_SUMMARIES = {
    "success": "Mission objectives achieved.",
    "partial_success": "Mission completed with losses.",
    "missing": "Task Force has not returned.",
}


@dataclass(frozen=True)
class MissionContext:
    turn: int
    regions: Mapping[str, Region]
    rand: RandFn
    rules: Ruleset


@dataclass(frozen=True)
class MissionStep:
    mission: Mission
    units: dict[str, Unit]
    notifications: tuple[Notification, ...] = ()
    same_turn: bool = False


def experience_for(missions_completed: int, config: MissionConfig) -> ExperienceTier:
    tier = ExperienceTier.GREEN
    for candidate in TIER_ORDER[1:]:
        threshold = config.experience_thresholds.get(candidate)
        if threshold is not None and missions_completed >= threshold:
            tier = candidate
    return tier


def commander_experience(units: Sequence[Unit], commander_id: str | None) -> ExperienceTier:
    """The named commander's tier, else the best tier present in the task force."""
    for unit in units:
        if commander_id is not None and unit.captain.id == commander_id:
            return unit.captain.experience
    if not units:
        return ExperienceTier.GREEN
    return max((u.captain.experience for u in units), key=TIER_ORDER.index)


def _step_travel(mission: Mission, units: dict[str, Unit], ctx: MissionContext) -> MissionStep:
    if mission.travel_turns_remaining > 1:
        return MissionStep(replace(mission, travel_turns_remaining=mission.travel_turns_remaining - 1), units)
    logger.info("Mission %s arrived at %s", mission.id, mission.target_region_id)
    arrived = replace(mission, travel_turns_remaining=0, phase=MissionPhase.EXECUTION)
    return MissionStep(arrived, units, same_turn=True)


def _step_execution(mission: Mission, units: dict[str, Unit], ctx: MissionContext) -> MissionStep:
    if mission.execution_turns_remaining > 1:
        return MissionStep(replace(mission, execution_turns_remaining=mission.execution_turns_remaining - 1), units)
    return _resolve_execution(mission, units, ctx)


def _resolve_execution(mission: Mission, units: dict[str, Unit], ctx: MissionContext) -> MissionStep:
    task_units = [units[uid] for uid in mission.task_force.unit_ids if uid in units]
    region = ctx.regions.get(mission.target_region_id)
    if region is None:
        logger.warning(
            "Mission %s targets unknown region %s; resolving without combat",
            mission.id,
            mission.target_region_id,
        )

    updated_units = dict(units)
    notifications: list[Notification] = []
    combat: CombatResult | None = None
    lost: list[str] = []

    combat_capable = mission.type in ctx.rules.combat.combat_mission_types
    if region is not None and combat_capable and task_units:
        combat = resolve_combat(
            task_units,
            commander_experience(task_units, mission.task_force.commander_id),
            mission.type,
            region.threat_modifier,
            ctx.turn,
            ctx.rand,
            ctx.rules.combat,
        )
        for unit, outcome in zip(task_units, combat.unit_outcomes):
            if outcome.destroyed:
                del updated_units[unit.id]
                lost.append(unit.id)
                notifications.append(
                    Notification(
                        turn=ctx.turn,
                        severity=Severity.CRITICAL,
                        category="fleet",
                        title="Ship Destroyed",
                        description=f"{unit.name} was destroyed during {mission.type.value} mission {mission.id}.",
                        related_ids=(unit.id, mission.id),
                    )
                )
                continue
            updated_units[unit.id] = replace(
                unit,
                condition=outcome.condition_after,
                battles_count=unit.battles_count + 1,
                captain=replace(unit.captain, battles_count=unit.captain.battles_count + 1),
            )

    survivors = tuple(u.id for u in task_units if u.id in updated_units)
    if not survivors:
        outcome = "missing"
    elif lost:
        outcome = "partial_success"
    else:
        outcome = "success"

    report = MissionReport(
        outcome=outcome,
        summary=REPORT_SUMMARIES[outcome],
        resolved_turn=ctx.turn,
        units_lost=tuple(lost),
        combat=combat,
    )
    resolved = replace(
        mission,
        execution_turns_remaining=0,
        task_force=replace(mission.task_force, unit_ids=survivors),
        report=report,
    )

    if not survivors:
        logger.info("Mission %s lost its entire task force", mission.id)
        notifications.append(
            Notification(
                turn=ctx.turn,
                severity=Severity.CRITICAL,
                category="fleet",
                title="Task Force Lost",
                description=f"The task force on {mission.type.value} mission {mission.id} has not returned.",
                related_ids=(mission.id, *lost),
            )
        )
        completed = replace(resolved, phase=MissionPhase.COMPLETED, completed_turn=ctx.turn)
        return MissionStep(completed, updated_units, tuple(notifications))

    logger.info("Mission %s executed (%s); returning", mission.id, outcome)
    return MissionStep(replace(resolved, phase=MissionPhase.RETURN), updated_units, tuple(notifications))


def _step_return(mission: Mission, units: dict[str, Unit], ctx: MissionContext) -> MissionStep:
    if mission.return_turns_remaining > 1:
        return MissionStep(replace(mission, return_turns_remaining=mission.return_turns_remaining - 1), units)

    config = ctx.rules.missions
    updated_units = dict(units)
    for unit_id in mission.task_force.unit_ids:
        unit = updated_units.get(unit_id)
        if unit is None:
            continue
        captain_missions = unit.captain.missions_completed + 1
        updated_units[unit_id] = replace(
            unit,
            status=UnitStatus.STATIONED,
            missions_completed=unit.missions_completed + 1,
            captain=replace(
                unit.captain,
                missions_completed=captain_missions,
                experience=experience_for(captain_missions, config),
            ),
        )

    completed = replace(
        mission,
        return_turns_remaining=0,
        phase=MissionPhase.COMPLETED,
        completed_turn=ctx.turn,
    )
    success = mission.report is None or mission.report.outcome == "success"
    summary = mission.report.summary if mission.report else REPORT_SUMMARIES["success"]
    region = ctx.regions.get(mission.target_region_id)
    region_name = region.name if region else mission.target_region_id
    notification = Notification(
        turn=ctx.turn,
        severity=Severity.POSITIVE if success else Severity.WARNING,
        category="fleet",
        title="Mission Complete",
        description=f"{mission.type.value} mission to {region_name} has returned. {summary}",
        related_ids=(mission.id, *mission.task_force.unit_ids),
    )
    logger.info("Mission %s completed on turn %d", mission.id, ctx.turn)
    return MissionStep(completed, updated_units, (notification,))


def _step_completed(mission: Mission, units: dict[str, Unit], ctx: MissionContext) -> MissionStep:
    return MissionStep(mission, units)


PHASE_STEPS: dict[MissionPhase, Callable[[Mission, dict[str, Unit], MissionContext], MissionStep]] = {
    MissionPhase.TRAVEL: _step_travel,
    MissionPhase.EXECUTION: _step_execution,
    MissionPhase.RETURN: _step_return,
    MissionPhase.COMPLETED: _step_completed,
}


def step_mission(mission: Mission, units: dict[str, Unit], ctx: MissionContext) -> MissionStep:
    """Run exactly one phase transition."""
    return PHASE_STEPS[mission.phase](mission, units, ctx)


def advance_mission(mission: Mission, units: dict[str, Unit], ctx: MissionContext) -> MissionStep:
    """Advance one mission by one turn, following same-turn transitions."""
    if mission.is_completed:
        return MissionStep(mission, units)
    notifications: list[Notification] = []
    step = step_mission(mission, units, ctx)
    notifications.extend(step.notifications)
    while step.same_turn:
        step = step_mission(step.mission, step.units, ctx)
        notifications.extend(step.notifications)
    return MissionStep(step.mission, step.units, tuple(notifications))


def resolve_mission_phase(state: GameState, rules: Ruleset, rand: RandFn) -> PhaseResult:
    ctx = MissionContext(turn=state.turn, regions=state.regions, rand=rand, rules=rules)
    units = dict(state.units)
    missions = dict(state.missions)
    notifications: list[Notification] = []

    for mission_id, mission in state.missions.items():
        if mission.is_completed:
            continue
        step = advance_mission(mission, units, ctx)
        missions[mission_id] = step.mission
        units = step.units
        notifications.extend(step.notifications)

    return PhaseResult(state=replace(state, missions=missions, units=units), notifications=notifications)
