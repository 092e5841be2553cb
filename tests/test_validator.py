"""
Tests for order validation.
"""

import pytest

from diplomacy_engine.core.game_state import DislodgedUnit, PhaseType
from diplomacy_engine.core.orders import (
    Hold, Move, SupportHold, SupportMove, Convoy, Retreat, Build, Disband
)
from diplomacy_engine.core.rules import BuildRule, Rules
from diplomacy_engine.core.validator import validate_orders


def reasons(result):
    return {r.order.part: r.reason for r in result.rejected}


def test_adjacent_move_accepted(make_state, rules):
    state = make_state({"LON_C": "ENGLAND"})
    result = validate_orders(state, rules, [Move("ENGLAND", "LON_C", "NTH_C")])
    assert result.accepted["LON_C"] == Move("ENGLAND", "LON_C", "NTH_C")
    assert result.rejected == []


def test_non_adjacent_move_rejected(make_state, rules):
    state = make_state({"LON_C": "ENGLAND"})
    result = validate_orders(state, rules, [Move("ENGLAND", "LON_C", "HEL_C")])
    assert "LON_C" not in result.accepted
    assert "not adjacent" in reasons(result)["LON_C"]


def test_foreign_unit_rejected(make_state, rules):
    state = make_state({"LON_C": "ENGLAND"})
    result = validate_orders(state, rules, [Move("FRANCE", "LON_C", "NTH_C")])
    assert "belongs to ENGLAND" in reasons(result)["LON_C"]


def test_empty_part_rejected(make_state, rules):
    state = make_state({"LON_C": "ENGLAND"})
    result = validate_orders(state, rules, [Hold("ENGLAND", "EDI_C")])
    assert "No unit" in reasons(result)["EDI_C"]


def test_convoyed_move_normalized(make_state, rules):
    state = make_state({"YOR_L": "ENGLAND", "NTH_C": "ENGLAND"})
    result = validate_orders(state, rules, [
        Move("ENGLAND", "YOR_L", "BEL_L"),
        Convoy("ENGLAND", "NTH_C", "BEL_L", "YOR_L"),
    ])
    assert result.accepted["YOR_L"] == Move("ENGLAND", "YOR_L", "BEL_L", via_convoy=True)
    assert "NTH_C" in result.accepted


def test_move_without_convoy_route_rejected(make_state, rules):
    state = make_state({"YOR_L": "ENGLAND"})
    result = validate_orders(state, rules, [Move("ENGLAND", "YOR_L", "BEL_L", via_convoy=True)])
    assert "No convoy route" in reasons(result)["YOR_L"]


def test_convoy_by_coastal_fleet_rejected(make_state, rules):
    state = make_state({"LON_C": "ENGLAND", "WAL_L": "ENGLAND"})
    result = validate_orders(state, rules, [Convoy("ENGLAND", "LON_C", "YOR_L", "WAL_L")])
    assert "at sea" in reasons(result)["LON_C"]


def test_support_must_reach_target(make_state, rules):
    state = make_state({"PAR_L": "FRANCE", "MUN_L": "GERMANY", "BEL_L": "FRANCE"})
    result = validate_orders(state, rules, [
        SupportMove("FRANCE", "PAR_L", "BUR_L", "BEL_L"),
        SupportHold("FRANCE", "BEL_L", "MUN_L"),
    ])
    assert "PAR_L" in result.accepted
    assert "cannot reach" in reasons(result)["BEL_L"]


def test_support_of_empty_part_rejected(make_state, rules):
    state = make_state({"PAR_L": "FRANCE"})
    result = validate_orders(state, rules, [SupportMove("FRANCE", "PAR_L", "BUR_L", "MUN_L")])
    assert "No unit on MUN_L" in reasons(result)["PAR_L"]


def test_later_order_replaces_earlier(make_state, rules):
    state = make_state({"LON_C": "ENGLAND"})
    result = validate_orders(state, rules, [Hold("ENGLAND", "LON_C"), Move("ENGLAND", "LON_C", "ENG_C")])
    assert result.accepted["LON_C"] == Move("ENGLAND", "LON_C", "ENG_C")
    assert result.rejected[0].reason == "Replaced by a later order"


def test_wrong_phase_order_rejected(make_state, rules):
    state = make_state({"LON_C": "ENGLAND"})
    result = validate_orders(state, rules, [Build("ENGLAND", "EDI_C")])
    assert "not allowed in a move phase" in reasons(result)["EDI_C"]


def test_retreat_validation(make_state, rules):
    state = make_state(
        {"MUN_L": "GERMANY", "RUH_L": "GERMANY"}, owners={"PAR": "FRANCE"}, phase_type=PhaseType.RETREAT
    )
    state.dislodged = [DislodgedUnit("FRANCE", "BUR_L", "MUN_L", frozenset({"MUN_L"}))]

    result = validate_orders(state, rules, [Retreat("FRANCE", "BUR_L", "PAR_L")])
    assert result.accepted["BUR_L"] == Retreat("FRANCE", "BUR_L", "PAR_L")

    result = validate_orders(state, rules, [Retreat("FRANCE", "BUR_L", "MUN_L")])
    assert "Cannot retreat" in reasons(result)["BUR_L"]

    result = validate_orders(state, rules, [Disband("GERMANY", "BUR_L")])
    assert "belongs to FRANCE" in reasons(result)["BUR_L"]


def test_build_limits(make_state):
    rules = Rules(build_rule=BuildRule.ALL_CENTERS)
    state = make_state(
        {"LON_C": "ENGLAND"},
        owners={"LON": "ENGLAND", "EDI": "ENGLAND", "BEL": "ENGLAND"},
        phase_count=4, phase_type=PhaseType.BUILD
    )
    result = validate_orders(state, rules, [
        Build("ENGLAND", "EDI_C"),
        Build("ENGLAND", "EDI_L"),
        Build("ENGLAND", "BEL_L"),
        Build("ENGLAND", "LVP_L"),
    ])
    assert set(result.accepted) == {"EDI_C", "BEL_L"}
    assert "Already building in EDI" in reasons(result)["EDI_L"]
    assert "not an eligible build site" in reasons(result)["LVP_L"]


def test_init_centers_rule_limits_build_sites(make_state):
    rules = Rules(build_rule=BuildRule.INIT_CENTERS)
    state = make_state(
        {"LON_C": "ENGLAND"},
        owners={"LON": "ENGLAND", "EDI": "ENGLAND", "BEL": "ENGLAND"},
        phase_count=4, phase_type=PhaseType.BUILD
    )
    result = validate_orders(state, rules, [Build("ENGLAND", "BEL_L"), Build("ENGLAND", "EDI_L")])
    assert set(result.accepted) == {"EDI_L"}


def test_disband_only_when_required(make_state, rules):
    state = make_state(
        {"LON_C": "ENGLAND", "EDI_C": "ENGLAND"},
        owners={"LON": "ENGLAND"},
        phase_count=4, phase_type=PhaseType.BUILD
    )
    result = validate_orders(state, rules, [Disband("ENGLAND", "LON_C"), Disband("ENGLAND", "EDI_C")])
    assert set(result.accepted) == {"LON_C"}
    assert reasons(result)["EDI_C"] == "No disbands required"



@pytest.mark.parametrize("order, reason", [
    (SupportHold("FRANCE", "PAR_L", "MUN_L"), "PAR_L cannot reach MUN_L"),
    (SupportHold("ENGLAND", "LON_C", "LON_C"), "A unit cannot support itself"),
    (SupportMove("FRANCE", "PAR_L", "PAR_L", "MUN_L"), "Cannot support a move into the supporter's own territory"),
    (Convoy("ENGLAND", "NTH_C", "BEL_L", "EDI_L"), "No unit on EDI_L to convoy"),
    (Convoy("ENGLAND", "NTH_C", "HEL_C", "YOR_L"), "Only armies can be convoyed between land parts"),
    (Convoy("ENGLAND", "NTH_C", "BEL_L", "LON_C"), "Only armies can be convoyed between land parts"),
    (Move("ENGLAND", "LON_C", "LON_L"), "Cannot move within the same territory"),
    (Move("ENGLAND", "LON_C", "XXX_C"), "Unknown destination XXX_C"),
    (Move("ENGLAND", "LON_C", "BEL_C", via_convoy=True), "Only armies can be convoyed to land"),
])
def test_move_phase_rejections(make_state, rules, order, reason):
    state = make_state({
        "LON_C": "ENGLAND", "NTH_C": "ENGLAND", "YOR_L": "ENGLAND",
        "PAR_L": "FRANCE", "MUN_L": "GERMANY",
    })
    result = validate_orders(state, rules, [order])
    assert result.accepted == {}
    assert reasons(result) == {order.part: reason}


@pytest.mark.parametrize("order, reason", [
    (Retreat("GERMANY", "BUR_L", "PAR_L"), "Dislodged unit on BUR_L belongs to FRANCE"),
    (Retreat("FRANCE", "PIC_L", "PAR_L"), "No dislodged unit on PIC_L"),
])
def test_retreat_rejections(make_state, rules, order, reason):
    state = make_state({"MUN_L": "GERMANY"}, phase_type=PhaseType.RETREAT)
    state.dislodged = [DislodgedUnit("FRANCE", "BUR_L", "MUN_L", frozenset({"MUN_L"}))]
    result = validate_orders(state, rules, [order])
    assert reasons(result) == {order.part: reason}


def test_builds_beyond_allowance_rejected(make_state):
    rules = Rules(build_rule=BuildRule.ALL_CENTERS)
    state = make_state(
        {"YOR_L": "ENGLAND"},
        owners={"LON": "ENGLAND", "EDI": "ENGLAND", "LVP": "ENGLAND"},
        phase_count=4, phase_type=PhaseType.BUILD
    )
    result = validate_orders(state, rules, [
        Build("ENGLAND", "LON_C"),
        Build("ENGLAND", "EDI_C"),
        Build("ENGLAND", "LVP_L"),
    ])
    assert set(result.accepted) == {"LON_C", "EDI_C"}
    assert reasons(result) == {"LVP_L": "No builds remaining"}
