"""Fleet, mission and combat records."""

from __future__ import annotations

from dataclasses import dataclass

from sector_sim.domain.types import ExperienceTier, MissionPhase, MissionType, UnitStatus


@dataclass(frozen=True)
class Captain:
    id: str
    name: str
    experience: ExperienceTier = ExperienceTier.GREEN
    missions_completed: int = 0
    battles_count: int = 0


@dataclass(frozen=True)
class Unit:
    """A ship. Condition 0 means destroyed; destroyed units leave the live map."""

    id: str
    name: str
    fight: int
    captain: Captain
    condition: int = 100
    status: UnitStatus = UnitStatus.STATIONED
    missions_completed: int = 0
    battles_count: int = 0


@dataclass(frozen=True)
class TaskForce:
    unit_ids: tuple[str, ...]
    commander_id: str | None = None


@dataclass(frozen=True)
class UnitCombatOutcome:
    unit_id: str
    condition_before: int
    condition_after: int
    destroyed: bool


@dataclass(frozen=True)
class CombatResult:
    outcome: str  # "victory" | "defeat"
    unit_outcomes: list[UnitCombatOutcome]
    narrative: str
    turn: int
    effective_fight: int = 0
    difficulty: float = 0.0

    @property
    def destroyed_ids(self) -> list[str]:
        return [o.unit_id for o in self.unit_outcomes if o.destroyed]


@dataclass(frozen=True)
class MissionReport:
    outcome: str  # "success" | "partial_success" | "missing"
    summary: str
    resolved_turn: int
    units_lost: tuple[str, ...] = ()
    combat: CombatResult | None = None


@dataclass(frozen=True)
class Mission:
    id: str
    type: MissionType
    phase: MissionPhase
    target_region_id: str
    task_force: TaskForce
    travel_turns_remaining: int
    execution_turns_remaining: int
    return_turns_remaining: int
    start_turn: int
    completed_turn: int | None = None
    report: MissionReport | None = None

    @property
    def is_completed(self) -> bool:
        return self.phase == MissionPhase.COMPLETED or self.completed_turn is not None
