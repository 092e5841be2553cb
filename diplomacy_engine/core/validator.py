"""
Order validation for the Diplomacy rules engine.
Rejects structurally illegal orders individually, before adjudication runs.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Set

from diplomacy_engine.core.game_state import GameState, PhaseType
from diplomacy_engine.core.orders import (
    Order, Hold, Move, SupportHold, SupportMove, Convoy,
    Retreat, Build, Disband,
    MOVE_PHASE_ORDERS, RETREAT_PHASE_ORDERS, BUILD_PHASE_ORDERS
)
from diplomacy_engine.core.rules import BuildRule, Rules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rejection:
    """An order that was refused, with the reason reported to its player."""
    order: Order
    reason: str

    def __str__(self) -> str:
        return f"{self.order.player} {self.order.to_string()}: {self.reason}"


@dataclass
class ValidationResult:
    """Accepted orders keyed by part, plus the rejections."""
    accepted: Dict[str, Order] = field(default_factory=dict)
    rejected: List[Rejection] = field(default_factory=list)


class OrderValidator:
    """Validates a phase's submitted orders against the current state."""

    def __init__(self, state: GameState, rules: Rules):
        self.state = state
        self.rules = rules
        self.game_map = state.game_map

    def validate(self, orders: Iterable[Order]) -> ValidationResult:
        """Validate orders for the current phase. Later orders for a part replace earlier ones."""
        latest: Dict[str, Order] = {}
        result = ValidationResult()
        for order in orders:
            previous = latest.get(order.part)
            if previous is not None:
                result.rejected.append(Rejection(previous, "Replaced by a later order"))
            latest[order.part] = order

        if self.state.phase_type == PhaseType.MOVE:
            self._validate_move_phase(list(latest.values()), result)
        elif self.state.phase_type == PhaseType.RETREAT:
            self._validate_retreat_phase(list(latest.values()), result)
        elif self.state.phase_type == PhaseType.BUILD:
            self._validate_build_phase(list(latest.values()), result)
        else:
            raise TypeError(f"Unknown phase type: {self.state.phase_type}")

        for rejection in result.rejected:
            logger.warning(f"Rejected order {rejection}")

        return result

    # Move phase

    def _validate_move_phase(self, orders: List[Order], result: ValidationResult) -> None:
        # Convoys first: move legality depends on the convoy orders that stand
        pending_moves = []
        for order in orders:
            if not isinstance(order, MOVE_PHASE_ORDERS):
                result.rejected.append(Rejection(order, self._wrong_phase(order)))
                continue
            reason = self._check_unit(order)
            if reason is None and isinstance(order, Move):
                pending_moves.append(order)
                continue
            if reason is None:
                reason = self._check_move_phase_order(order)
            if reason is None:
                result.accepted[order.part] = order
            else:
                result.rejected.append(Rejection(order, reason))

        convoys = [o for o in result.accepted.values() if isinstance(o, Convoy)]
        for order in pending_moves:
            normalized, reason = self._check_move(order, convoys)
            if reason is None:
                result.accepted[order.part] = normalized
            else:
                result.rejected.append(Rejection(order, reason))

    def _check_unit(self, order: Order) -> Optional[str]:
        if self.game_map.part(order.part) is None:
            return f"Unknown part {order.part}"
        owner = self.state.unit_at(order.part)
        if owner is None:
            return f"No unit on {order.part}"
        if owner != order.player:
            return f"Unit on {order.part} belongs to {owner}"
        return None

    def _check_move_phase_order(self, order: Order) -> Optional[str]:
        if isinstance(order, Hold):
            return None
        if isinstance(order, SupportHold):
            return self._check_support_hold(order)
        if isinstance(order, SupportMove):
            return self._check_support_move(order)
        if isinstance(order, Convoy):
            return self._check_convoy(order)
        raise TypeError(f"Unexpected move phase order: {order!r}")

    def _check_move(self, order: Move, convoys: List[Convoy]):
        """Return the (possibly convoy-normalized) move and a rejection reason."""
        dest = self.game_map.part(order.dest)
        if dest is None:
            return order, f"Unknown destination {order.dest}"

        origin_territory = self.game_map.territory_of(order.part).name
        dest_territory = self.game_map.territory_of(order.dest).name
        if origin_territory == dest_territory:
            return order, "Cannot move within the same territory"

        adjacent = self.game_map.is_adjacent(order.part, order.dest)
        if adjacent and not order.via_convoy:
            return order, None

        if not (self.game_map.is_land(order.part) and dest.is_land()):
            if order.via_convoy:
                return order, "Only armies can be convoyed to land"
            return order, f"{order.dest} is not adjacent to {order.part}"

        fleets = [
            c.part for c in convoys
            if c.source == order.part and c.target == order.dest
        ]
        if self.game_map.has_convoy_path(order.part, order.dest, fleets):
            return replace(order, via_convoy=True), None

        return order, f"No convoy route from {order.part} to {order.dest}"

    def _check_support_hold(self, order: SupportHold) -> Optional[str]:
        if self.game_map.part(order.target) is None:
            return f"Unknown part {order.target}"
        if order.target == order.part:
            return "A unit cannot support itself"
        if self.state.unit_at(order.target) is None:
            return f"No unit on {order.target} to support"
        if not self.game_map.reaches(order.part, self.game_map.territory_of(order.target).name):
            return f"{order.part} cannot reach {order.target}"
        return None

    def _check_support_move(self, order: SupportMove) -> Optional[str]:
        if self.game_map.part(order.target) is None:
            return f"Unknown part {order.target}"
        if self.game_map.part(order.source) is None:
            return f"Unknown part {order.source}"
        if order.source == order.part:
            return "A unit cannot support its own move"
        if self.state.unit_at(order.source) is None:
            return f"No unit on {order.source} to support"
        target_territory = self.game_map.territory_of(order.target).name
        if target_territory == self.game_map.territory_of(order.part).name:
            return "Cannot support a move into the supporter's own territory"
        if not self.game_map.reaches(order.part, target_territory):
            return f"{order.part} cannot reach {order.target}"
        return None

    def _check_convoy(self, order: Convoy) -> Optional[str]:
        if not self.game_map.is_sea(order.part):
            return "Only fleets at sea can convoy"
        if self.game_map.part(order.source) is None:
            return f"Unknown part {order.source}"
        if self.game_map.part(order.target) is None:
            return f"Unknown part {order.target}"
        if self.state.unit_at(order.source) is None:
            return f"No unit on {order.source} to convoy"
        if not self.game_map.is_land(order.source) or not self.game_map.is_land(order.target):
            return "Only armies can be convoyed between land parts"
        return None

    # Retreat phase

    def _validate_retreat_phase(self, orders: List[Order], result: ValidationResult) -> None:
        dislodged = {d.part: d for d in self.state.dislodged}
        for order in orders:
            if not isinstance(order, RETREAT_PHASE_ORDERS):
                result.rejected.append(Rejection(order, self._wrong_phase(order)))
                continue

            unit = dislodged.get(order.part)
            if unit is None:
                result.rejected.append(Rejection(order, f"No dislodged unit on {order.part}"))
                continue
            if unit.player != order.player:
                result.rejected.append(Rejection(order, f"Dislodged unit on {order.part} belongs to {unit.player}"))
                continue

            if isinstance(order, Retreat):
                options = unit.retreat_options(self.state)
                if order.dest not in options:
                    result.rejected.append(Rejection(
                        order, f"Cannot retreat to {order.dest}; options: {', '.join(options) or 'none'}"
                    ))
                    continue

            result.accepted[order.part] = order

    # Build phase

    def eligible_build_parts(self, player: str) -> Set[str]:
        """Unoccupied parts of centers the player may build on."""
        centers = set(self.state.centers_of(player))
        if self.rules.build_rule == BuildRule.INIT_CENTERS:
            centers &= set(self.state.players[player].home_centers)

        parts = set()
        for territory in centers:
            if self.state.occupant_of(territory) is None:
                parts.update(self.game_map.territory(territory).parts)
        return parts

    def _validate_build_phase(self, orders: List[Order], result: ValidationResult) -> None:
        builds_left: Dict[str, int] = {}
        disbands_left: Dict[str, int] = {}
        for name in self.state.players:
            delta = self.state.center_count(name) - self.state.unit_count(name)
            builds_left[name] = max(delta, 0)
            disbands_left[name] = max(-delta, 0)

        built_territories = set()
        for order in orders:
            if not isinstance(order, BUILD_PHASE_ORDERS):
                result.rejected.append(Rejection(order, self._wrong_phase(order)))
                continue
            if order.player not in self.state.players:
                result.rejected.append(Rejection(order, f"Unknown player {order.player}"))
                continue

            if isinstance(order, Build):
                if order.part not in self.eligible_build_parts(order.player):
                    result.rejected.append(Rejection(order, f"{order.part} is not an eligible build site"))
                    continue
                territory = self.game_map.territory_of(order.part).name
                if territory in built_territories:
                    result.rejected.append(Rejection(order, f"Already building in {territory}"))
                    continue
                if builds_left[order.player] <= 0:
                    result.rejected.append(Rejection(order, "No builds remaining"))
                    continue
                builds_left[order.player] -= 1
                built_territories.add(territory)
                result.accepted[order.part] = order

            elif isinstance(order, Disband):
                reason = self._check_unit(order)
                if reason is None and disbands_left[order.player] <= 0:
                    reason = "No disbands required"
                if reason is not None:
                    result.rejected.append(Rejection(order, reason))
                    continue
                disbands_left[order.player] -= 1
                result.accepted[order.part] = order

    def _wrong_phase(self, order: Order) -> str:
        return f"{type(order).__name__} orders are not allowed in a {self.state.phase_type.value} phase"


def validate_orders(state: GameState, rules: Rules, orders: Iterable[Order]) -> ValidationResult:
    """Convenience function to validate a phase's orders."""
    return OrderValidator(state, rules).validate(orders)
