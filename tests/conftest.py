"""
Shared fixtures: the sample North Sea map and helpers to place units on it.
"""

import os

import pytest

from diplomacy_engine.core.map import load_map
from diplomacy_engine.core.rules import Rules
from diplomacy_engine.core.game_state import GameState, Player, PhaseType

DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'data')


@pytest.fixture
def game_map():
    return load_map(os.path.join(DATA_DIR, 'map.json'))


@pytest.fixture
def rules():
    return Rules(win_condition=6, build_time=4)


@pytest.fixture
def make_state(game_map):
    """
    Build a state from {part: player}; every player named gets its
    initial home centers from the map.
    """
    def _make(units, owners=None, phase_count=1, phase_type=PhaseType.MOVE):
        state = GameState(game_map, phase_count, phase_type)
        names = set(units.values()) | set((owners or {}).values())
        for name in sorted(names):
            homes = frozenset(
                t.name for t in game_map.territories if t.is_center and t.init_player == name
            )
            state.add_player(Player(name, homes))
        for part, player in units.items():
            state.add_unit(part, player)
        for territory, player in (owners or {}).items():
            state.set_owner(territory, player)
        return state
    return _make
