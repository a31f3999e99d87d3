from __future__ import annotations

from dataclasses import replace

from sector_sim.domain.types import Modifier, Region, ResourceType, Severity, TradeLink
from sector_sim.systems.market_phase import MARKET_MODIFIER_SOURCE, resolve_market_phase

from tests.helpers.factories import REGION_A, REGION_B, RULES, make_colony, make_state, table_flow_provider

FOOD = ResourceType.FOOD
CONSUMER_GOODS = ResourceType.CONSUMER_GOODS
TC = ResourceType.TRANSPORT_CAPACITY


def _market_mods(colony):
    return [m for m in colony.modifiers if m.source_type == MARKET_MODIFIER_SOURCE]


def test_shortage_malus_and_export_bonus_are_attached() -> None:
    state = make_state(colonies=[make_colony("exp", dynamism=1), make_colony("imp", dynamism=5)])
    provider = table_flow_provider(
        {"exp": {FOOD: (3, 0)}, "imp": {FOOD: (0, 5), CONSUMER_GOODS: (0, 1), TC: (0, 2)}}
    )

    result = resolve_market_phase(state, provider, RULES)

    imp_mods = {m.source_id: m for m in _market_mods(result.state.colonies["imp"])}
    assert imp_mods["shortage_Food"].target == "qualityOfLife"
    assert imp_mods["shortage_Food"].value == -2
    assert imp_mods["shortage_ConsumerGoods"].value == -1
    assert imp_mods["shortage_TransportCapacity"].target == "accessibility"
    assert imp_mods["shortage_TransportCapacity"].value == -1

    (bonus,) = _market_mods(result.state.colonies["exp"])
    assert bonus.target == "dynamism"
    assert bonus.value == 1
    assert bonus.operation == "add"
    assert bonus.id == "mod_exp_export_Food_t1"


def test_market_modifiers_do_not_accumulate_across_turns() -> None:
    colonies = [make_colony("imp")]
    provider = table_flow_provider({"imp": {FOOD: (0, 5)}})
    state = make_state(colonies=colonies)

    first = resolve_market_phase(state, provider, RULES).state
    second = resolve_market_phase(replace(first, turn=2), provider, RULES).state

    mods = _market_mods(second.colonies["imp"])
    assert len(mods) == 1
    assert mods[0].id == "mod_imp_shortage_Food_t2"


def test_non_market_modifiers_survive_the_phase() -> None:
    keep = Modifier(
        id="mod_imp_policy",
        target="qualityOfLife",
        operation="add",
        value=1,
        source_type="policy",
        source_id="pol_1",
        source_name="Rationing",
    )
    state = make_state(colonies=[make_colony("imp", modifiers=(keep,))])

    result = resolve_market_phase(state, table_flow_provider({}), RULES)

    assert result.state.colonies["imp"].modifiers == (keep,)


def test_shortages_resolved_by_trade_get_no_malus() -> None:
    state = make_state(
        colonies=[make_colony("exp"), make_colony("imp", region_id=REGION_B)],
        trade_links=[TradeLink("link_1", REGION_A, REGION_B)],
    )
    provider = table_flow_provider({"exp": {FOOD: (10, 0)}, "imp": {FOOD: (0, 4)}})

    result = resolve_market_phase(state, provider, RULES)

    assert result.shortages == []
    assert result.notifications == []
    assert _market_mods(result.state.colonies["imp"]) == []
    assert result.colony_flows["imp"][FOOD].imported == 4


def test_trade_flows_recorded_on_both_region_markets() -> None:
    state = make_state(
        colonies=[make_colony("exp"), make_colony("imp", region_id=REGION_B)],
        trade_links=[TradeLink("link_1", REGION_A, REGION_B)],
    )
    provider = table_flow_provider({"exp": {FOOD: (4, 0)}, "imp": {FOOD: (0, 6)}})

    result = resolve_market_phase(state, provider, RULES)

    (flow,) = result.trade_flows
    assert result.state.region_markets[REGION_A].outbound_flows == [flow]
    assert result.state.region_markets[REGION_A].inbound_flows == []
    assert result.state.region_markets[REGION_B].inbound_flows == [flow]
    (shortage,) = result.shortages
    assert shortage.colony_id == "imp"
    assert shortage.deficit_amount == 4


def test_regions_without_colonies_still_get_market_state() -> None:
    state = make_state(colonies=[make_colony("solo")])

    result = resolve_market_phase(state, table_flow_provider({"solo": {FOOD: (2, 1)}}), RULES)

    assert set(result.state.region_markets) == {REGION_A, REGION_B}
    empty = result.state.region_markets[REGION_B]
    assert all(v == 0 for v in empty.total_production.values())
    assert empty.inbound_flows == []
    assert result.state.region_markets[REGION_A].net_surplus[FOOD] == 1


def test_one_notification_per_colony_with_food_critical() -> None:
    state = make_state(colonies=[make_colony("hungry"), make_colony("bored")])
    provider = table_flow_provider(
        {"hungry": {FOOD: (0, 3), CONSUMER_GOODS: (0, 2)}, "bored": {CONSUMER_GOODS: (0, 2)}}
    )

    result = resolve_market_phase(state, provider, RULES)

    by_colony = {n.related_ids[0]: n for n in result.notifications}
    assert len(result.notifications) == 2
    assert by_colony["hungry"].severity == Severity.CRITICAL
    assert by_colony["hungry"].title == "Resource Shortage: Colony hungry"
    assert "Food" in by_colony["hungry"].description
    assert "ConsumerGoods" in by_colony["hungry"].description
    assert by_colony["bored"].severity == Severity.WARNING
    assert all(n.category == "colony" for n in result.notifications)


def test_unknown_region_link_is_skipped(caplog) -> None:
    state = make_state(
        colonies=[make_colony("exp")],
        trade_links=[TradeLink("link_x", REGION_A, "reg_missing")],
    )

    with caplog.at_level("WARNING"):
        result = resolve_market_phase(state, table_flow_provider({"exp": {FOOD: (10, 0)}}), RULES)

    assert result.trade_flows == []
    assert "link_x" in caplog.text


def test_self_link_is_skipped() -> None:
    state = make_state(
        colonies=[make_colony("exp"), make_colony("imp")],
        trade_links=[TradeLink("loop", REGION_A, REGION_A)],
    )
    provider = table_flow_provider({"exp": {FOOD: (2, 0)}, "imp": {FOOD: (0, 5)}})

    result = resolve_market_phase(state, provider, RULES)

    assert result.trade_flows == []
    assert result.colony_flows["imp"][FOOD].imported == 2


def test_phase_does_not_mutate_input_state() -> None:
    state = make_state(colonies=[make_colony("imp")])

    resolve_market_phase(state, table_flow_provider({"imp": {FOOD: (0, 5)}}), RULES)

    assert state.colonies["imp"].modifiers == ()
    assert state.region_markets == {}


def _three_region_state(links):
    return make_state(
        regions=[Region("ra", "Ra"), Region("rb", "Rb"), Region("rc", "Rc")],
        colonies=[
            make_colony("col_a", region_id="ra"),
            make_colony("col_b", region_id="rb"),
            make_colony("col_c", region_id="rc"),
        ],
        trade_links=links,
    )


def test_links_are_applied_in_order_against_remaining_deficits() -> None:
    provider = table_flow_provider(
        {"col_a": {FOOD: (10, 0)}, "col_b": {FOOD: (0, 4)}, "col_c": {FOOD: (10, 0)}}
    )
    ab = TradeLink("link_ab", "ra", "rb")
    cb = TradeLink("link_cb", "rc", "rb")

    a_first = resolve_market_phase(_three_region_state([ab, cb]), provider, RULES)
    c_first = resolve_market_phase(_three_region_state([cb, ab]), provider, RULES)

    assert [(f.from_region_id, f.received) for f in a_first.trade_flows] == [("ra", 4)]
    assert [(f.from_region_id, f.received) for f in c_first.trade_flows] == [("rc", 4)]
    for result in (a_first, c_first):
        assert result.colony_flows["col_b"][FOOD].imported == 4
        assert result.shortages == []
    assert a_first.state.region_markets["rc"].outbound_flows == []
    assert c_first.state.region_markets["ra"].outbound_flows == []
