"""
Tests for phase transitions, center capture and victory.
"""

from diplomacy_engine.core.game_state import DislodgedUnit, PhaseType
from diplomacy_engine.core.rules import Rules
from diplomacy_engine.gamemaster.phase_manager import PhaseManager


def test_next_phase_sequence(make_state):
    rules = Rules(build_time=4)
    state = make_state({}, phase_count=3)
    assert PhaseManager.determine_next_phase(state, rules, False) == (4, PhaseType.BUILD)
    assert PhaseManager.determine_next_phase(state, rules, True) == (3, PhaseType.RETREAT)

    state.phase_type = PhaseType.RETREAT
    assert PhaseManager.determine_next_phase(state, rules, False) == (4, PhaseType.BUILD)

    state = make_state({}, phase_count=4, phase_type=PhaseType.BUILD)
    assert PhaseManager.determine_next_phase(state, rules, False) == (5, PhaseType.MOVE)


def test_advance_phase_resets_ready_and_dislodged(make_state, rules):
    state = make_state({"LON_C": "ENGLAND"}, phase_type=PhaseType.RETREAT)
    state.players["ENGLAND"].ready = True
    state.dislodged = [DislodgedUnit("ENGLAND", "NTH_C", "HEL_C")]

    PhaseManager.advance_phase(state, rules, False)

    assert state.phase_name() == "Phase 2 move"
    assert state.dislodged == []
    assert not state.players["ENGLAND"].ready


def test_adjustments(make_state):
    state = make_state(
        {"LON_C": "ENGLAND", "PAR_L": "FRANCE", "BRE_C": "FRANCE", "MUN_L": "GERMANY"},
        owners={"LON": "ENGLAND", "EDI": "ENGLAND", "PAR": "FRANCE", "MUN": "GERMANY"},
    )
    assert PhaseManager.calculate_adjustments(state) == {"ENGLAND": 1, "FRANCE": -1}


def test_center_capture(make_state):
    state = make_state({"BEL_L": "FRANCE", "LON_C": "GERMANY"}, owners={"LON": "ENGLAND", "PAR": "FRANCE"})
    changes = PhaseManager.update_center_ownership(state)
    assert sorted(changes) == [("BEL", None, "FRANCE"), ("LON", "ENGLAND", "GERMANY")]
    assert state.owners == {"BEL": "FRANCE", "LON": "GERMANY", "PAR": "FRANCE"}


def test_victory_threshold(make_state):
    state = make_state({"LON_C": "ENGLAND"}, owners={"LON": "ENGLAND", "EDI": "ENGLAND", "LVP": "ENGLAND"})
    assert PhaseManager.check_victory(state, Rules(win_condition=3)) == "ENGLAND"
    assert PhaseManager.check_victory(state, Rules(win_condition=4)) is None
