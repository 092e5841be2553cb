"""
Phase manager for handling game phase transitions and logic.
"""

from typing import Dict, List, Optional, Tuple
from diplomacy_engine.core.game_state import GameState, PhaseType
from diplomacy_engine.core.rules import Rules
import logging

logger = logging.getLogger(__name__)


class PhaseManager:
    """Manages phase transitions and game flow logic."""

    @staticmethod
    def determine_next_phase(state: GameState, rules: Rules, has_dislodged_units: bool) -> Tuple[int, PhaseType]:
        """
        Determine the next phase based on current state.

        The phase counter advances on move and build phases; a retreat phase
        keeps the number of the move phase it follows.

        Args:
            state: Current game state
            rules: Game rules (build cadence)
            has_dislodged_units: Whether there are dislodged units needing retreat

        Returns:
            (phase count, phase type) of the next phase
        """
        if state.phase_type == PhaseType.MOVE and has_dislodged_units:
            return state.phase_count, PhaseType.RETREAT

        if state.phase_type == PhaseType.BUILD:
            return state.phase_count + 1, PhaseType.MOVE

        next_count = state.phase_count + 1
        if rules.is_build_phase(next_count):
            return next_count, PhaseType.BUILD
        return next_count, PhaseType.MOVE

    @staticmethod
    def advance_phase(state: GameState, rules: Rules, has_dislodged_units: bool) -> None:
        """
        Advance the game state to the next phase.

        Args:
            state: Game state to advance
            rules: Game rules
            has_dislodged_units: Whether there are dislodged units
        """
        next_count, next_type = PhaseManager.determine_next_phase(state, rules, has_dislodged_units)
        logger.info(f"Advancing from {state.phase_name()} to Phase {next_count} {next_type.value}")

        state.phase_count = next_count
        state.phase_type = next_type

        # Dislodged units only live through their retreat phase
        if next_type != PhaseType.RETREAT:
            state.dislodged.clear()

        for player in state.players.values():
            player.ready = False

    @staticmethod
    def calculate_adjustments(state: GameState) -> Dict[str, int]:
        """
        Calculate build/disband adjustments for each player.

        Returns:
            Dictionary mapping player name to adjustment count
            Positive = builds allowed, Negative = disbands needed; zero entries omitted
        """
        adjustments = {}

        for player in state.players:
            sc_count = state.center_count(player)
            unit_count = state.unit_count(player)
            adjustment = sc_count - unit_count

            if adjustment != 0:
                adjustments[player] = adjustment
                logger.info(f"{player}: {sc_count} SCs, {unit_count} units, adjustment: {adjustment:+d}")

        return adjustments

    @staticmethod
    def update_center_ownership(state: GameState) -> List[Tuple[str, Optional[str], str]]:
        """
        Update supply center ownership based on unit positions.
        Every unit standing on a supply center takes it; empty centers keep their owner.

        Returns:
            List of (territory, old owner, new owner) changes
        """
        logger.info("Updating supply center ownership")

        changes = []

        for territory in state.game_map.centers():
            part = state.occupant_of(territory.name)
            if part is None:
                continue

            new_owner = state.unit_at(part)
            current_owner = state.owners.get(territory.name)
            if current_owner != new_owner:
                changes.append((territory.name, current_owner, new_owner))
                state.set_owner(territory.name, new_owner)

        if changes:
            logger.info("Supply center ownership changes:")
            for name, old_owner, new_owner in changes:
                logger.info(f"  {name}: {old_owner or 'Neutral'} -> {new_owner}")
        else:
            logger.info("No supply center ownership changes")

        return changes

    @staticmethod
    def check_victory(state: GameState, rules: Rules) -> Optional[str]:
        """
        Check if any player has reached the win condition.

        Returns:
            The winning player, or None if no winner yet
        """
        for player in state.players:
            sc_count = state.center_count(player)
            if sc_count >= rules.win_condition:
                logger.info(f"VICTORY: {player} has {sc_count} supply centers!")
                return player

        return None
