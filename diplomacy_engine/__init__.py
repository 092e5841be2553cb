"""
Diplomacy Rules Engine
Order validation, adjudication and phase sequencing for Diplomacy-style games.
"""

from diplomacy_engine.core.map import Map, Part, PartKind, Territory, MapError, load_map
from diplomacy_engine.core.rules import Rules, RulesError, BuildRule, DrawType, load_rules
from diplomacy_engine.core.game_state import GameState, Player, DislodgedUnit, PhaseType, create_starting_state
from diplomacy_engine.core.game import Game, GameOverError, PhaseReport
from diplomacy_engine.core.orders import (
    Order, Hold, Move, SupportHold, SupportMove, Convoy,
    Retreat, Build, Disband, OrderParser, OrderParseError
)
from diplomacy_engine.core.validator import OrderValidator, Rejection, validate_orders
from diplomacy_engine.core.resolver import (
    resolve_movement_phase, resolve_retreat_phase, resolve_build_phase
)
from diplomacy_engine.io.yaml_orders import YAMLOrderLoader

__version__ = "1.0.0"
__all__ = [
    'Map', 'Part', 'PartKind', 'Territory', 'MapError', 'load_map',
    'Rules', 'RulesError', 'BuildRule', 'DrawType', 'load_rules',
    'GameState', 'Player', 'DislodgedUnit', 'PhaseType', 'create_starting_state',
    'Game', 'GameOverError', 'PhaseReport',
    'Order', 'Hold', 'Move', 'SupportHold', 'SupportMove', 'Convoy',
    'Retreat', 'Build', 'Disband', 'OrderParser', 'OrderParseError',
    'OrderValidator', 'Rejection', 'validate_orders',
    'resolve_movement_phase', 'resolve_retreat_phase', 'resolve_build_phase',
    'YAMLOrderLoader'
]
