from __future__ import annotations

from dataclasses import replace

import pytest

from sector_sim.domain.types import ExperienceTier, MissionType
from sector_sim.systems.combat import (
    apply_commander_modifier,
    apply_condition_damage,
    mission_difficulty,
    resolve_combat,
    resolve_combat_roll,
    roll_variance,
    sample_condition_loss,
)

from tests.helpers.factories import RULES, make_unit, sequence_rand

COMBAT = RULES.combat


def test_single_weak_ship_is_destroyed_by_maximal_loss() -> None:
    unit = make_unit("ship_001", fight=1, condition=1)

    result = resolve_combat(
        [unit],
        ExperienceTier.REGULAR,
        MissionType.ASSAULT,
        threat_modifier=1.5,
        turn=4,
        rand=sequence_rand(1.0, 1.0),
        config=COMBAT,
    )

    assert result.difficulty == pytest.approx(30.0)
    assert result.effective_fight == 1
    assert result.outcome == "defeat"
    (outcome,) = result.unit_outcomes
    assert outcome.condition_after == 0
    assert outcome.destroyed is True
    assert result.destroyed_ids == ["ship_001"]
    assert result.narrative == "Defeat: Assault engagement concluded. 1 ship(s) lost. 0 ship(s) damaged."


@pytest.mark.parametrize(
    ("tier", "expected"),
    [
        (ExperienceTier.GREEN, 16),
        (ExperienceTier.REGULAR, 20),
        (ExperienceTier.VETERAN, 22),
        (ExperienceTier.ELITE, 24),
    ],
)
def test_commander_modifier_floors_scaled_fight(tier: ExperienceTier, expected: int) -> None:
    assert apply_commander_modifier(20, tier, COMBAT) == expected


def test_commander_modifier_truncates_fractions() -> None:
    # 7 * 1.1 = 7.7
    assert apply_commander_modifier(7, ExperienceTier.VETERAN, COMBAT) == 7


@pytest.mark.parametrize(
    ("mission_type", "base"),
    [
        (MissionType.ESCORT, 10),
        (MissionType.ASSAULT, 20),
        (MissionType.DEFENSE, 15),
        (MissionType.RESCUE, 12),
        (MissionType.INVESTIGATION, 8),
    ],
)
def test_difficulty_scales_with_threat(mission_type: MissionType, base: int) -> None:
    assert mission_difficulty(mission_type, 1.0, COMBAT) == pytest.approx(base)
    assert mission_difficulty(mission_type, 0.5, COMBAT) == pytest.approx(base * 0.5)


def test_roll_variance_spans_configured_range() -> None:
    assert roll_variance(0.0, COMBAT) == pytest.approx(0.85)
    assert roll_variance(0.5, COMBAT) == pytest.approx(1.0)
    assert roll_variance(1.0, COMBAT) == pytest.approx(1.15)


def test_victory_requires_strictly_exceeding_difficulty() -> None:
    flat = replace(COMBAT, roll_variance=(1.0, 1.0))
    assert resolve_combat_roll(20, 20.0, 0.5, flat) is False
    assert resolve_combat_roll(21, 20.0, 0.5, flat) is True


def test_condition_loss_ranges_depend_on_outcome() -> None:
    assert sample_condition_loss(True, 0.0, COMBAT) == pytest.approx(0.05)
    assert sample_condition_loss(True, 1.0, COMBAT) == pytest.approx(0.20)
    assert sample_condition_loss(False, 0.0, COMBAT) == pytest.approx(0.30)
    assert sample_condition_loss(False, 1.0, COMBAT) == pytest.approx(0.60)


def test_condition_damage_rounds_half_up_and_clamps() -> None:
    assert apply_condition_damage(100, 0.05) == 95
    # 10 - 2.5 = 7.5
    assert apply_condition_damage(10, 0.25) == 8
    assert apply_condition_damage(1, 0.6) == 0
    assert apply_condition_damage(50, 1.5) == 0


def test_victory_damages_every_unit_with_its_own_draw() -> None:
    units = [make_unit("ship_a", fight=30), make_unit("ship_b", fight=30)]

    result = resolve_combat(
        units,
        ExperienceTier.REGULAR,
        MissionType.ESCORT,
        threat_modifier=1.0,
        turn=2,
        rand=sequence_rand(0.99, 0.0, 1.0),
        config=COMBAT,
    )

    assert result.outcome == "victory"
    after = {o.unit_id: o.condition_after for o in result.unit_outcomes}
    assert after == {"ship_a": 95, "ship_b": 80}
    assert result.destroyed_ids == []
    assert result.narrative == "Victory: Escort engagement concluded. 0 ship(s) lost. 2 ship(s) damaged."


def test_out_of_range_condition_is_clamped_before_damage() -> None:
    unit = make_unit("ship_001", fight=100, condition=140)

    result = resolve_combat(
        [unit],
        ExperienceTier.ELITE,
        MissionType.DEFENSE,
        threat_modifier=1.0,
        turn=1,
        rand=sequence_rand(0.5, 0.0),
        config=COMBAT,
    )

    (outcome,) = result.unit_outcomes
    assert outcome.condition_before == 100
    assert outcome.condition_after == 95
