"""
Draw vote tracking and draw result splitting.
"""

from typing import Dict, List, Optional
from diplomacy_engine.core.game_state import GameState
from diplomacy_engine.core.rules import DrawType, Rules
import logging

logger = logging.getLogger(__name__)


class DrawVoteTracker:
    """
    Tracks each player's standing draw vote.

    A draw is declared only when every eligible player votes for it; a single
    vote against (or a missing vote) blocks it. Eliminated players (no units and
    no centers) are not eligible unless `include_eliminated` is set.
    """

    def __init__(self, rules: Rules, include_eliminated: bool = False):
        self.rules = rules
        self.include_eliminated = include_eliminated
        self.votes: Dict[str, bool] = {}

    def vote(self, player: str, value: bool) -> None:
        """Record or withdraw a draw vote. Votes stand until changed."""
        previous = self.votes.get(player, False)
        self.votes[player] = bool(value)
        if previous != bool(value):
            logger.info(f"{player} {'votes for' if value else 'withdraws from'} a draw")

    def eligible_players(self, state: GameState) -> List[str]:
        if self.include_eliminated:
            return list(state.players)
        return state.active_players()

    def check_votes(self, state: GameState) -> bool:
        """True when every eligible player votes for a draw."""
        eligible = self.eligible_players(state)
        if not eligible:
            return False
        return all(self.votes.get(player, False) for player in eligible)

    def split(self, state: GameState, draw_type: Optional[DrawType] = None) -> Dict[str, float]:
        """
        Share of the draw for each surviving player.

        DSS splits equally among survivors; SoS splits in proportion to
        supply center count.
        """
        draw_type = draw_type or self.rules.draw_type
        survivors = state.active_players()
        if not survivors:
            return {}

        if draw_type == DrawType.SOS:
            total = sum(state.center_count(p) for p in survivors)
            if total > 0:
                return {p: state.center_count(p) / total for p in survivors}

        share = 1.0 / len(survivors)
        return {p: share for p in survivors}

    def visible_votes(self) -> Dict[str, bool]:
        """Votes as other players may see them; empty when votes are hidden."""
        if not self.rules.vote_shown:
            return {}
        return dict(self.votes)

    def summary(self, state: GameState) -> str:
        eligible = self.eligible_players(state)
        in_favour = sum(1 for p in eligible if self.votes.get(p, False))
        return f"Draw votes: {in_favour}/{len(eligible)}"
