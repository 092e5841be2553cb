"""
Game master components: phase sequencing, draw votes, press and the phase log.
"""

from diplomacy_engine.gamemaster.phase_manager import PhaseManager
from diplomacy_engine.gamemaster.draw_votes import DrawVoteTracker
from diplomacy_engine.gamemaster.press_system import PressSystem, PressMessage, PUBLIC
from diplomacy_engine.gamemaster.phase_log import PhaseLog

__all__ = [
    'PhaseManager',
    'DrawVoteTracker',
    'PressSystem',
    'PressMessage',
    'PUBLIC',
    'PhaseLog',
]
