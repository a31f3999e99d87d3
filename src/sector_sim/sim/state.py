"""Simulation state container."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from sector_sim.domain.events import Notification
from sector_sim.domain.fleet_models import Mission, Unit
from sector_sim.domain.market_models import RegionMarketState
from sector_sim.domain.types import Colony, Region, TradeLink


@dataclass(frozen=True)
class GameState:
    """Whole-state snapshot. Phases return a new snapshot and never mutate this one."""

    turn: int
    rng_seed: int

    regions: dict[str, Region]
    colonies: dict[str, Colony]
    # Colony id -> opaque deposit records handed to the flow provider.
    deposits: dict[str, Sequence[Any]] = field(default_factory=dict)
    trade_links: tuple[TradeLink, ...] = ()

    units: dict[str, Unit] = field(default_factory=dict)
    missions: dict[str, Mission] = field(default_factory=dict)

    region_markets: dict[str, RegionMarketState] = field(default_factory=dict)

    @property
    def active_missions(self) -> list[Mission]:
        return [m for m in self.missions.values() if not m.is_completed]

    @property
    def completed_missions(self) -> list[Mission]:
        return [m for m in self.missions.values() if m.is_completed]

    def missions_for_unit(self, unit_id: str) -> list[Mission]:
        return [m for m in self.missions.values() if unit_id in m.task_force.unit_ids]

    def colonies_in_region(self, region_id: str) -> list[Colony]:
        return [c for c in self.colonies.values() if c.region_id == region_id]


@dataclass(frozen=True)
class PhaseResult:
    state: GameState
    notifications: list[Notification]
