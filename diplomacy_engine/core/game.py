"""
Game manager for the Diplomacy rules engine.
Orchestrates the order buffer, the ready barrier and phase progression.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from diplomacy_engine.core.map import Map
from diplomacy_engine.core.rules import Rules
from diplomacy_engine.core.game_state import GameState, PhaseType, create_starting_state
from diplomacy_engine.core.orders import Order, Build, Disband, OrderParser, OrderSet
from diplomacy_engine.core.validator import OrderValidator, Rejection
from diplomacy_engine.core.resolver import (
    MovementResolver, RetreatResolver, BuildResolver,
    MoveResult, RetreatResult, BuildResult
)
from diplomacy_engine.gamemaster.phase_manager import PhaseManager
from diplomacy_engine.gamemaster.draw_votes import DrawVoteTracker
from diplomacy_engine.gamemaster.press_system import PressSystem, PressMessage
from diplomacy_engine.gamemaster.phase_log import PhaseLog

logger = logging.getLogger(__name__)


class GameOverError(RuntimeError):
    """Raised when advancing a game that has already ended."""
    pass


@dataclass
class PhaseReport:
    """What happened when a phase was resolved."""
    phase: str
    next_phase: str
    rejected: List[Rejection] = field(default_factory=list)
    timed_out: bool = False
    move_result: Optional[MoveResult] = None
    retreat_result: Optional[RetreatResult] = None
    build_result: Optional[BuildResult] = None
    center_changes: List[Tuple[str, Optional[str], str]] = field(default_factory=list)
    winner: Optional[str] = None
    draw: Optional[Dict[str, float]] = None


class Game:
    """
    Main game controller.

    Owns the single authoritative GameState. Orders are buffered until every
    player who has something to decide is ready (or a timeout forces the
    phase), then resolved into a new state that replaces the old one.
    """

    def __init__(
        self,
        game_map: Map,
        rules: Rules,
        state: Optional[GameState] = None,
        include_eliminated: bool = False
    ):
        self.game_map = game_map
        self.rules = rules
        self.state = state if state is not None else create_starting_state(game_map)

        self.orders = OrderSet()
        self.draw_votes = DrawVoteTracker(rules, include_eliminated=include_eliminated)
        for name, player in self.state.players.items():
            if player.vote:
                self.draw_votes.vote(name, True)
        self.press = PressSystem(lambda: self.state.players.keys())
        self.phase_log = PhaseLog()

        self.winner: Optional[str] = None
        self.draw: Optional[Dict[str, float]] = None

        self._condition = threading.Condition()

    @property
    def is_over(self) -> bool:
        return self.winner is not None or self.draw is not None

    def phase_name(self) -> str:
        return self.state.phase_name()

    # Order buffer

    def submit_order(self, order: Order) -> Optional[Order]:
        """
        Buffer an order for the current phase.
        Resubmitting for the same part replaces the earlier order, which is returned.
        """
        with self._condition:
            previous = self.orders.add_order(order)
            if previous is not None:
                logger.debug(f"{order.player} replaced {previous.to_string()} with {order.to_string()}")
            return previous

    def withdraw_orders(self, player: str) -> None:
        """Drop every order a player has buffered this phase."""
        with self._condition:
            if player not in self.state.players:
                raise KeyError(f"Unknown player: {player}")
            self.orders.remove_player(player)

    def get_pending_orders(self) -> List[Order]:
        with self._condition:
            return self.orders.get_all_orders()

    # Votes and press

    def vote_draw(self, player: str, value: bool) -> None:
        """Cast or withdraw a draw vote; it stands across phases until changed."""
        with self._condition:
            if player not in self.state.players:
                raise KeyError(f"Unknown player: {player}")
            self.draw_votes.vote(player, value)
            self.state.players[player].vote = bool(value)

    def send_press(self, sender: str, recipient: str, text: str) -> Optional[PressMessage]:
        return self.press.send_message(sender, recipient, text, self.phase_name())

    # Ready barrier

    def players_to_act(self) -> List[str]:
        """Players whose decisions the current phase waits for."""
        state = self.state
        if state.phase_type == PhaseType.MOVE:
            return state.active_players()
        if state.phase_type == PhaseType.RETREAT:
            owners = {d.player for d in state.dislodged}
            return [p for p in state.players if p in owners]
        adjustments = PhaseManager.calculate_adjustments(state)
        return [p for p in state.players if p in adjustments]

    def _all_ready(self) -> bool:
        return all(self.state.players[p].ready for p in self.players_to_act())

    def set_ready(self, player: str, ready: bool = True) -> None:
        with self._condition:
            if player not in self.state.players:
                raise KeyError(f"Unknown player: {player}")
            self.state.players[player].ready = ready
            self._condition.notify_all()

    def wait_for_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every player to act is ready.

        Returns:
            True if everyone became ready, False if the timeout elapsed first
        """
        with self._condition:
            return self._condition.wait_for(self._all_ready, timeout)

    # Phase resolution

    def advance(self, timeout: Optional[float] = None) -> PhaseReport:
        """
        Resolve the current phase once the ready barrier opens.

        With a timeout, unready players are forced: their units fall back to
        default orders (hold, disband, or the automatic disband choice).
        """
        if self.is_over:
            raise GameOverError("The game is over")

        with self._condition:
            everyone_ready = self._condition.wait_for(self._all_ready, timeout)
            if not everyone_ready:
                waiting = [p for p in self.players_to_act() if not self.state.players[p].ready]
                logger.warning(f"Ready timeout in {self.phase_name()}, forcing defaults for: {waiting}")
                for player in waiting:
                    self.orders.remove_player(player)

            report = self._resolve_phase()
            report.timed_out = not everyone_ready
            return report

    def _resolve_phase(self) -> PhaseReport:
        state = self.state
        phase_name = state.phase_name()
        logger.info(f"Resolving {phase_name}")

        validation = OrderValidator(state, self.rules).validate(self.orders.get_all_orders())
        report = PhaseReport(phase=phase_name, next_phase=phase_name, rejected=validation.rejected)

        if state.phase_type == PhaseType.MOVE:
            resolver = MovementResolver(state, validation.accepted)
            result = resolver.resolve()
            report.move_result = result
            new_state = result.new_state
            has_dislodged = bool(result.dislodged)
            logged_orders = list(resolver.orders.values())

        elif state.phase_type == PhaseType.RETREAT:
            result = RetreatResolver(state, validation.accepted).resolve()
            report.retreat_result = result
            new_state = result.new_state
            has_dislodged = False
            logged_orders = [
                validation.accepted.get(d.part) or Disband(d.player, d.part)
                for d in state.dislodged
            ]

        elif state.phase_type == PhaseType.BUILD:
            result = BuildResolver(state, self.rules, validation.accepted).resolve()
            report.build_result = result
            new_state = result.new_state
            has_dislodged = False
            logged_orders = [Build(new_state.unit_at(p), p) for p in result.built]
            logged_orders += [Disband(state.unit_at(p), p) for p in result.disbanded]

        else:
            raise TypeError(f"Unknown phase type: {state.phase_type}")

        self.phase_log.record(phase_name, logged_orders)

        PhaseManager.advance_phase(new_state, self.rules, has_dislodged)

        if new_state.phase_type == PhaseType.BUILD:
            # The turn closes: units standing on centers take them
            report.center_changes = PhaseManager.update_center_ownership(new_state)
            report.winner = PhaseManager.check_victory(new_state, self.rules)

        if report.winner is None and self.draw_votes.check_votes(new_state):
            report.draw = self.draw_votes.split(new_state)
            logger.info(f"Draw declared: {report.draw}")

        # Replace the authoritative state at the phase boundary
        self.state = new_state
        self.orders.clear()
        self.winner = report.winner
        self.draw = report.draw
        report.next_phase = new_state.phase_name()

        return report

    # Output

    def phase_banner(self) -> List[str]:
        """Phase banner plus the adjustments or retreat options players must act on."""
        lines = [self.phase_name()]
        if self.state.phase_type == PhaseType.BUILD:
            for player, adjustment in PhaseManager.calculate_adjustments(self.state).items():
                kind = "build" if adjustment > 0 else "disband"
                lines.append(f"{player} {kind} {abs(adjustment)}")
        elif self.state.phase_type == PhaseType.RETREAT:
            for dislodged in self.state.dislodged:
                options = ", ".join(dislodged.retreat_options(self.state))
                lines.append(f"{dislodged.player} retreat {dislodged.part} ({options})")
        return lines

    def get_game_summary(self) -> Dict[str, object]:
        """Get a summary of the current game state."""
        summary = {
            "phase": self.phase_name(),
            "players": {}
        }
        for name in self.state.players:
            summary["players"][name] = {
                "supply_centers": self.state.center_count(name),
                "units": self.state.unit_count(name)
            }
        if self.winner:
            summary["winner"] = self.winner
        if self.draw:
            summary["draw"] = self.draw
        return summary

    def save_game(self, filepath: str) -> None:
        """Save the current game state and the buffered orders to a file."""
        data = self.state.to_dict()
        data["pending_orders"] = {
            player: [o.to_string() for o in orders]
            for player, orders in self.orders.by_player().items()
        }
        with open(filepath, 'w') as f:
            json.dump(data, f, indent=2)

    @staticmethod
    def load_game(filepath: str, game_map: Map, rules: Rules) -> 'Game':
        """Load a game, with its buffered orders, from a state file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        game = Game(game_map, rules, GameState.from_dict(data, game_map))
        for player, lines in data.get("pending_orders", {}).items():
            for line in lines:
                game.submit_order(OrderParser.parse_order(player, line))
        return game
