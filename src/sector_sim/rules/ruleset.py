"""Data-driven rules engine."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sector_sim.domain.types import ExperienceTier, MissionType, ResourceType

DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data"


class RulesError(ValueError):
    """Error loading or validating rules."""


@dataclass(frozen=True)
class ShortageMalus:
    target: str
    value: float


@dataclass(frozen=True)
class MarketConfig:
    cross_sector_efficiency: float
    non_tradeable: frozenset[ResourceType]
    export_bonus_attribute: str
    export_bonus_amount: int
    shortage_malus: dict[ResourceType, ShortageMalus]
    critical_shortage_resources: frozenset[ResourceType]

    @property
    def tradeable(self) -> list[ResourceType]:
        return [r for r in ResourceType if r not in self.non_tradeable]


@dataclass(frozen=True)
class CombatConfig:
    experience_modifiers: dict[ExperienceTier, float]
    roll_variance: tuple[float, float]
    win_condition_loss: tuple[float, float]
    lose_condition_loss: tuple[float, float]
    mission_base_difficulty: dict[MissionType, float]
    combat_mission_types: frozenset[MissionType]


@dataclass(frozen=True)
class MissionConfig:
    # Minimum completed missions for each tier above Green.
    experience_thresholds: dict[ExperienceTier, int]


@dataclass(frozen=True)
class Ruleset:
    """Loaded and validated ruleset."""

    market: MarketConfig
    combat: CombatConfig
    missions: MissionConfig

    @staticmethod
    def load(data_dir: Path) -> "Ruleset":
        """Load ruleset from JSON files in data directory."""
        return Ruleset(
            market=_load_market(data_dir / "market.json"),
            combat=_load_combat(data_dir / "combat.json"),
            missions=_load_missions(data_dir / "missions.json"),
        )

    @staticmethod
    def default() -> "Ruleset":
        """Load the ruleset shipped with the package."""
        return Ruleset.load(DEFAULT_DATA_DIR)


def _load_json(path: Path) -> dict[str, Any]:
    """Load JSON file."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as exc:
        raise RulesError(f"Rules file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise RulesError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise RulesError(f"{path}: top level must be object")
    return data


def _enum_value(enum_cls, raw: Any, path: Path):
    try:
        return enum_cls(raw)
    except ValueError as exc:
        raise RulesError(f"{path}: unknown {enum_cls.__name__} {raw!r}") from exc


def _range(raw: Any, default: tuple[float, float], key: str, path: Path) -> tuple[float, float]:
    if raw is None:
        return default
    if not isinstance(raw, list) or len(raw) != 2:
        raise RulesError(f"{path}: {key} must be [min, max]")
    low, high = float(raw[0]), float(raw[1])
    if low > high:
        raise RulesError(f"{path}: {key} min exceeds max")
    return low, high


def _load_market(path: Path) -> MarketConfig:
    data = _load_json(path)

    export_bonus = data.get("export_bonus", {})
    if not isinstance(export_bonus, dict):
        raise RulesError(f"{path}: export_bonus must be object")

    malus_raw = data.get("shortage_malus", {})
    if not isinstance(malus_raw, dict):
        raise RulesError(f"{path}: shortage_malus must be object")
    shortage_malus: dict[ResourceType, ShortageMalus] = {}
    for resource_name, entry in malus_raw.items():
        if not isinstance(entry, dict) or "target" not in entry:
            raise RulesError(f"{path}: shortage_malus.{resource_name} must have a target")
        shortage_malus[_enum_value(ResourceType, resource_name, path)] = ShortageMalus(
            target=str(entry["target"]),
            value=float(entry.get("value", 0.0)),
        )

    efficiency = float(data.get("cross_sector_efficiency", 0.5))
    if not 0.0 <= efficiency <= 1.0:
        raise RulesError(f"{path}: cross_sector_efficiency must be within [0, 1]")

    return MarketConfig(
        cross_sector_efficiency=efficiency,
        non_tradeable=frozenset(
            _enum_value(ResourceType, r, path) for r in data.get("non_tradeable", ["TransportCapacity"])
        ),
        export_bonus_attribute=str(export_bonus.get("attribute", "dynamism")),
        export_bonus_amount=int(export_bonus.get("amount", 1)),
        shortage_malus=shortage_malus,
        critical_shortage_resources=frozenset(
            _enum_value(ResourceType, r, path) for r in data.get("critical_shortage_resources", ["Food"])
        ),
    )


def _load_combat(path: Path) -> CombatConfig:
    data = _load_json(path)

    modifiers_raw = data.get("experience_modifiers", {})
    experience_modifiers = {tier: 1.0 for tier in ExperienceTier}
    for tier_name, value in dict(modifiers_raw).items():
        experience_modifiers[_enum_value(ExperienceTier, tier_name, path)] = float(value)

    difficulty_raw = data.get("mission_base_difficulty", {})
    mission_base_difficulty = {mission_type: 10.0 for mission_type in MissionType}
    for type_name, value in dict(difficulty_raw).items():
        mission_base_difficulty[_enum_value(MissionType, type_name, path)] = float(value)

    return CombatConfig(
        experience_modifiers=experience_modifiers,
        roll_variance=_range(data.get("roll_variance"), (0.85, 1.15), "roll_variance", path),
        win_condition_loss=_range(data.get("win_condition_loss"), (0.05, 0.20), "win_condition_loss", path),
        lose_condition_loss=_range(data.get("lose_condition_loss"), (0.30, 0.60), "lose_condition_loss", path),
        mission_base_difficulty=mission_base_difficulty,
        combat_mission_types=frozenset(
            _enum_value(MissionType, t, path)
            for t in data.get("combat_mission_types", ["Assault", "Defense", "Escort"])
        ),
    )


def _load_missions(path: Path) -> MissionConfig:
    data = _load_json(path)
    thresholds_raw = data.get("experience_thresholds", {"Regular": 2, "Veteran": 5, "Elite": 10})
    if not isinstance(thresholds_raw, dict):
        raise RulesError(f"{path}: experience_thresholds must be object")
    thresholds: dict[ExperienceTier, int] = {}
    for tier_name, value in thresholds_raw.items():
        tier = _enum_value(ExperienceTier, tier_name, path)
        if tier == ExperienceTier.GREEN:
            raise RulesError(f"{path}: Green is the starting tier and takes no threshold")
        thresholds[tier] = int(value)
    return MissionConfig(experience_thresholds=thresholds)
