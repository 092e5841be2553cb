"""
Resolution engine for the Diplomacy rules engine.
Handles order adjudication and conflict resolution for move, retreat and build phases.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set

from diplomacy_engine.core.game_state import GameState, DislodgedUnit
from diplomacy_engine.core.orders import (
    Order, Hold, Move, SupportHold, SupportMove, Convoy,
    Retreat, Build, Disband
)
from diplomacy_engine.core.rules import BuildRule, Rules

logger = logging.getLogger(__name__)


class ResolutionState(Enum):
    UNRESOLVED = 0
    GUESSING = 1
    RESOLVED = 2


@dataclass
class MoveResult:
    """Result of resolving a move phase."""
    new_state: GameState
    dislodged: List[DislodgedUnit]
    standoffs: Set[str]  # territories left empty by a bounce
    results: Dict[str, str]  # part -> result description
    moved: Dict[str, str] = field(default_factory=dict)  # origin part -> destination part
    cut_supports: Set[str] = field(default_factory=set)  # parts whose support was cut
    invalid_supports: Set[str] = field(default_factory=set)  # parts whose support matched no action
    failed_convoys: Set[str] = field(default_factory=set)  # parts of armies whose convoy failed
    paradoxes: Set[str] = field(default_factory=set)  # parts of armies failed by the paradox rule


@dataclass
class RetreatResult:
    """Result of resolving a retreat phase."""
    new_state: GameState
    retreated: Dict[str, str]  # origin part -> destination part
    disbanded: List[DislodgedUnit]


@dataclass
class BuildResult:
    """Result of resolving a build phase."""
    new_state: GameState
    built: List[str]
    disbanded: List[str]
    waived: Dict[str, int] = field(default_factory=dict)  # player -> unused builds


class MoveAdjudication:
    """
    One adjudication pass over the move orders with a fixed set of convoyed
    moves assumed to arrive.

    Support cutting is decided from order intents, so support strengths are
    fixed numbers before any move is resolved. The only remaining dependencies
    are between moves (does the unit ahead vacate?), which are resolved with the
    guess-and-check algorithm; a dependency cycle that admits both outcomes is
    circular movement and every move in it succeeds.
    """

    def __init__(self, resolver: 'MovementResolver', arriving_convoys: FrozenSet[str]):
        self.resolver = resolver
        self.active: Dict[str, Move] = {
            part: move for part, move in resolver.moves.items()
            if not move.via_convoy or part in arriving_convoys
        }

        self.moves_to_territory: Dict[str, List[str]] = {}
        for part, move in self.active.items():
            self.moves_to_territory.setdefault(resolver.territory(move.dest), []).append(part)

        self.cut_supports: Set[str] = set()
        self.invalid_supports: Set[str] = set()
        self.attack_supports: Dict[str, List[str]] = {}  # moving part -> supporting parts
        self.hold_supports: Dict[str, List[str]] = {}  # holding part -> supporting parts
        self._collect_supports()

        self.status: Dict[str, ResolutionState] = {}
        self.resolution: Dict[str, bool] = {}
        self._dependencies: List[str] = []

    def _collect_supports(self) -> None:
        resolver = self.resolver
        for part, order in resolver.orders.items():
            if isinstance(order, SupportHold):
                if isinstance(resolver.orders.get(order.target), Move):
                    self.invalid_supports.add(part)
                    continue
                beneficiary = resolver.owner(order.target)
                against = None
                bucket = self.hold_supports.setdefault(order.target, [])
            elif isinstance(order, SupportMove):
                move = self.active.get(order.source)
                if move is None or resolver.territory(move.dest) != resolver.territory(order.target):
                    self.invalid_supports.add(part)
                    continue
                beneficiary = resolver.owner(order.source)
                against = resolver.territory(order.target)
                bucket = self.attack_supports.setdefault(order.source, [])
            else:
                continue

            if self._is_cut(part, beneficiary, against):
                self.cut_supports.add(part)
                continue
            bucket.append(part)

    def _is_cut(self, part: str, beneficiary: Optional[str], against: Optional[str]) -> bool:
        """
        A support is cut by any move into the supporter's territory from a player
        other than the beneficiary, unless that move comes from the territory the
        supported move is aimed at.
        """
        resolver = self.resolver
        for attacker in self.moves_to_territory.get(resolver.territory(part), []):
            if resolver.owner(attacker) == beneficiary:
                continue
            if against is not None and resolver.territory(attacker) == against:
                continue
            return True
        return False

    def run(self) -> Set[str]:
        """Resolve every active move; return the parts whose move succeeds."""
        for part in self.active:
            self._resolve(part)
        return {part for part in self.active if self.resolution[part]}

    def is_head_on(self, part: str, other: str) -> bool:
        """Two moves swapping territories without convoy."""
        resolver = self.resolver
        move = self.active.get(part)
        other_move = self.active.get(other)
        if move is None or other_move is None:
            return False
        if move.via_convoy or other_move.via_convoy:
            return False
        return (
            resolver.territory(move.dest) == resolver.territory(other)
            and resolver.territory(other_move.dest) == resolver.territory(part)
        )

    def _attack_strength(self, part: str, defender_owner: Optional[str] = None) -> int:
        supports = self.attack_supports.get(part, [])
        if defender_owner is None:
            return 1 + len(supports)
        # A player's support never helps dislodge its own unit
        return 1 + sum(1 for s in supports if self.resolver.owner(s) != defender_owner)

    def _hold_strength(self, part: str) -> int:
        if part in self.resolver.moves:
            # Ordered to move but stayed: support to hold does not apply
            return 1
        return 1 + len(self.hold_supports.get(part, []))

    def _adjudicate(self, part: str) -> bool:
        resolver = self.resolver
        move = self.active[part]
        dest_territory = resolver.territory(move.dest)
        mover = resolver.owner(part)

        defender = resolver.state.occupant_of(dest_territory)
        head_on = defender is not None and self.is_head_on(part, defender)
        defender_leaves = (
            defender is not None
            and not head_on
            and defender in self.active
            and self._resolve(defender)
        )

        if defender is not None and not defender_leaves:
            defender_owner = resolver.owner(defender)
            if defender_owner == mover:
                return False
            attack = self._attack_strength(part, defender_owner)
            if head_on:
                defend = self._attack_strength(defender)
            else:
                defend = self._hold_strength(defender)
            if attack <= defend:
                return False
        else:
            attack = self._attack_strength(part)

        for other in self.moves_to_territory[dest_territory]:
            if other == part:
                continue
            # A unit beaten in a head-to-head battle does not hold anyone back
            if defender is not None and self.is_head_on(other, defender) and self._resolve(defender):
                continue
            if attack <= self._attack_strength(other):
                return False

        return True

    def _resolve(self, part: str) -> bool:
        state = self.status.get(part, ResolutionState.UNRESOLVED)
        if state == ResolutionState.RESOLVED:
            return self.resolution[part]

        if state == ResolutionState.GUESSING:
            if part not in self._dependencies:
                self._dependencies.append(part)
            return self.resolution[part]

        old_dependency_count = len(self._dependencies)

        # Guess that this fails
        self.resolution[part] = False
        self.status[part] = ResolutionState.GUESSING
        first_result = self._adjudicate(part)

        if old_dependency_count == len(self._dependencies):
            # No guesses were involved
            if self.status[part] != ResolutionState.RESOLVED:
                self.resolution[part] = first_result
                self.status[part] = ResolutionState.RESOLVED
            return first_result

        if self._dependencies[old_dependency_count] != part:
            # Depends on a guess further up the stack, but not our own
            self._dependencies.append(part)
            self.resolution[part] = first_result
            return first_result

        # Depends on our own guess; try the other guess
        for other in self._dependencies[old_dependency_count:]:
            self.status[other] = ResolutionState.UNRESOLVED
        del self._dependencies[old_dependency_count:]

        self.resolution[part] = True
        self.status[part] = ResolutionState.GUESSING
        second_result = self._adjudicate(part)

        if first_result == second_result:
            for other in self._dependencies[old_dependency_count:]:
                self.status[other] = ResolutionState.UNRESOLVED
            del self._dependencies[old_dependency_count:]
            self.resolution[part] = first_result
            self.status[part] = ResolutionState.RESOLVED
            return first_result

        self._circular_movement(old_dependency_count)
        return self._resolve(part)

    def _circular_movement(self, old_dependency_count: int) -> None:
        cycle = self._dependencies[old_dependency_count:]
        del self._dependencies[old_dependency_count:]
        logger.debug(f"Circular movement: {cycle}")
        for part in cycle:
            self.resolution[part] = True
            self.status[part] = ResolutionState.RESOLVED


@dataclass
class _Outcome:
    adjudication: MoveAdjudication
    succeeded: Set[str]
    dislodged: Dict[str, str]  # dislodged part -> attacker part


class MovementResolver:
    """Resolves move phase orders."""

    def __init__(self, game_state: GameState, orders: Dict[str, Order]):
        self.state = game_state
        self.game_map = game_state.game_map

        # Every unit gets exactly one order; missing or foreign orders become holds
        self.orders: Dict[str, Order] = {}
        for part, player in game_state.units.items():
            order = orders.get(part)
            if order is None or order.player != player:
                order = Hold(player, part)
            self.orders[part] = order

        self.moves: Dict[str, Move] = {
            part: order for part, order in self.orders.items() if isinstance(order, Move)
        }

        # Fleets convoying each convoyed army
        self.convoy_fleets: Dict[str, List[str]] = {}
        for part, move in self.moves.items():
            if move.via_convoy:
                self.convoy_fleets[part] = [
                    fleet for fleet, order in self.orders.items()
                    if isinstance(order, Convoy) and order.source == part and order.target == move.dest
                ]

    def owner(self, part: str) -> Optional[str]:
        return self.state.unit_at(part)

    def territory(self, part: str) -> str:
        return self.game_map.territory_of(part).name

    def resolve(self) -> MoveResult:
        """
        Resolve all move orders.

        Convoyed moves are first all assumed to arrive. After each pass, the
        set of arriving convoys is recomputed from which convoying fleets were
        dislodged, until the set stops changing. A convoyed move whose outcome
        depends on its own assumption (the convoy paradox) fails by policy, and
        resolution restarts without it.
        """
        candidates = {
            part for part, fleets in self.convoy_fleets.items()
            if self.game_map.has_convoy_path(part, self.moves[part].dest, fleets)
        }
        paradoxes: Set[str] = set()

        while True:
            arriving, outcome = self._convoy_fixed_point(candidates - paradoxes, paradoxes)
            if outcome is None:
                continue

            self_fulfilling = [
                part for part in sorted(arriving)
                if part not in self._arriving_after(arriving - {part})
            ]
            if not self_fulfilling:
                break
            logger.warning(f"Convoy paradox, failing convoyed moves from: {self_fulfilling}")
            paradoxes.update(self_fulfilling)

        return self._apply_moves(outcome, arriving, paradoxes)

    def _adjudicate(self, arriving: Set[str]) -> _Outcome:
        adjudication = MoveAdjudication(self, frozenset(arriving))
        succeeded = adjudication.run()

        dislodged = {}
        for part in succeeded:
            dest_territory = self.territory(adjudication.active[part].dest)
            defender = self.state.occupant_of(dest_territory)
            if defender is not None and defender not in succeeded:
                dislodged[defender] = part

        return _Outcome(adjudication, succeeded, dislodged)

    def _arriving_after(self, assumed: Set[str]) -> Set[str]:
        return self._surviving_convoys(self._adjudicate(assumed))

    def _surviving_convoys(self, outcome: _Outcome) -> Set[str]:
        """Convoyed moves whose chain still stands once dislodged fleets are removed."""
        surviving = set()
        for part, fleets in self.convoy_fleets.items():
            standing = [f for f in fleets if f not in outcome.dislodged]
            if self.game_map.has_convoy_path(part, self.moves[part].dest, standing):
                surviving.add(part)
        return surviving

    def _convoy_fixed_point(self, candidates: Set[str], paradoxes: Set[str]):
        """
        Iterate the arriving-convoy assumption to a fixed point.
        On a cycle, the moves that flip within the cycle are added to
        `paradoxes` and (candidates, None) is returned so the caller restarts.
        """
        arriving = set(candidates)
        seen: List[Set[str]] = [set(arriving)]
        while True:
            outcome = self._adjudicate(arriving)
            next_arriving = self._surviving_convoys(outcome) & candidates
            if next_arriving == arriving:
                return arriving, outcome

            if next_arriving in seen:
                cycle = seen[seen.index(next_arriving):]
                flipping = set.union(*cycle) - set.intersection(*cycle)
                logger.warning(f"Convoy paradox, no stable outcome for: {sorted(flipping)}")
                paradoxes.update(flipping)
                return arriving, None

            seen.append(set(next_arriving))
            arriving = next_arriving

    def _apply_moves(self, outcome: _Outcome, arriving: Set[str], paradoxes: Set[str]) -> MoveResult:
        """Apply successful moves and create the new game state."""
        adjudication = outcome.adjudication
        succeeded = outcome.succeeded
        new_state = self.state.clone()

        moved = {part: adjudication.active[part].dest for part in sorted(succeeded)}
        for part in moved:
            new_state.remove_unit(part)
        for part in outcome.dislodged:
            new_state.remove_unit(part)
        for part, dest in moved.items():
            new_state.add_unit(dest, self.owner(part))

        standoffs = set()
        for part in adjudication.active:
            if part in succeeded:
                continue
            dest_territory = self.territory(adjudication.active[part].dest)
            if new_state.occupant_of(dest_territory) is not None:
                continue
            defender = self.state.occupant_of(dest_territory)
            if defender is not None and adjudication.is_head_on(part, defender):
                continue
            standoffs.add(dest_territory)

        standoff_parts = set()
        for territory in standoffs:
            standoff_parts.update(self.game_map.territory(territory).parts)

        dislodged = []
        for part, attacker in sorted(outcome.dislodged.items()):
            dislodged.append(DislodgedUnit(
                player=self.owner(part),
                part=part,
                attacker_origin=attacker,
                forbidden=frozenset(standoff_parts | {attacker})
            ))
        new_state.dislodged = dislodged

        failed_convoys = {p for p in self.convoy_fleets if p not in arriving}
        results = {}
        for part, order in self.orders.items():
            if part in outcome.dislodged:
                results[part] = f"Dislodged by {outcome.dislodged[part]}"
            elif part in moved:
                results[part] = f"Moved to {moved[part]}"
            elif part in paradoxes:
                results[part] = "Convoy paradox, move fails"
            elif part in failed_convoys:
                results[part] = "Convoy failed"
            elif isinstance(order, Move):
                results[part] = f"Bounced from {order.dest}"
            elif part in adjudication.cut_supports:
                results[part] = "Support cut"
            elif part in adjudication.invalid_supports:
                results[part] = "Support void"
            else:
                results[part] = "Held position"

        logger.info(
            f"Moves resolved: {len(moved)} moved, {len(dislodged)} dislodged, "
            f"standoffs: {sorted(standoffs)}"
        )

        return MoveResult(
            new_state=new_state,
            dislodged=dislodged,
            standoffs=standoffs,
            results=results,
            moved=moved,
            cut_supports=set(adjudication.cut_supports),
            invalid_supports=set(adjudication.invalid_supports),
            failed_convoys=failed_convoys,
            paradoxes=set(paradoxes)
        )


class RetreatResolver:
    """Resolves retreat phase orders."""

    def __init__(self, game_state: GameState, retreat_orders: Dict[str, Order]):
        self.game_state = game_state
        self.retreat_orders = retreat_orders

    def resolve(self) -> RetreatResult:
        """
        Resolve retreat orders.
        Units with no order, a disband order or an invalid retreat are disbanded;
        two or more retreats into one territory are all disbanded.
        """
        new_state = self.game_state.clone()
        game_map = self.game_state.game_map

        # Track retreat destinations to detect conflicts
        retreat_destinations: Dict[str, List] = {}
        disbanded: List[DislodgedUnit] = []

        for dislodged in self.game_state.dislodged:
            order = self.retreat_orders.get(dislodged.part)
            if (
                isinstance(order, Retreat)
                and order.player == dislodged.player
                and order.dest in dislodged.retreat_options(self.game_state)
            ):
                territory = game_map.territory_of(order.dest).name
                retreat_destinations.setdefault(territory, []).append((dislodged, order.dest))
            else:
                disbanded.append(dislodged)

        retreated = {}
        for territory, entries in retreat_destinations.items():
            if len(entries) == 1:
                dislodged, dest = entries[0]
                new_state.add_unit(dest, dislodged.player)
                retreated[dislodged.part] = dest
            else:
                logger.info(f"Retreats collide in {territory}, disbanding {len(entries)} units")
                disbanded.extend(d for d, _ in entries)

        new_state.dislodged = []

        return RetreatResult(new_state=new_state, retreated=retreated, disbanded=disbanded)


class BuildResolver:
    """Resolves build phase adjustments."""

    def __init__(self, game_state: GameState, rules: Rules, orders: Dict[str, Order]):
        self.game_state = game_state
        self.rules = rules
        self.orders = orders

    def _eligible(self, state: GameState, player: str, part: str) -> bool:
        game_map = state.game_map
        if game_map.part(part) is None:
            return False
        territory = game_map.territory_of(part).name
        if state.owners.get(territory) != player:
            return False
        if self.rules.build_rule == BuildRule.INIT_CENTERS:
            if territory not in state.players[player].home_centers:
                return False
        return state.occupant_of(territory) is None

    def default_disbands(self, state: GameState, player: str, count: int, exclude: Set[str]) -> List[str]:
        """
        Pick units to disband when too few disbands were ordered.
        Units farthest from the player's own centers go first; ties by part name.
        """
        game_map = state.game_map
        sources = []
        for territory in state.centers_of(player):
            sources.extend(game_map.territory(territory).parts)
        distances = game_map.distances_from(sources)
        unreachable = len(game_map.parts) + 1

        candidates = [p for p in state.units_of(player) if p not in exclude]
        candidates.sort(key=lambda p: (-distances.get(p, unreachable), p))
        return candidates[:count]

    def resolve(self) -> BuildResult:
        """Resolve build and disband adjustments for every player."""
        new_state = self.game_state.clone()
        built: List[str] = []
        disbanded: List[str] = []
        waived: Dict[str, int] = {}

        for player in self.game_state.players:
            delta = new_state.center_count(player) - new_state.unit_count(player)
            player_orders = [o for o in self.orders.values() if o.player == player]

            if delta > 0:
                builds_applied = 0
                for order in player_orders:
                    if builds_applied >= delta:
                        break
                    if isinstance(order, Build) and self._eligible(new_state, player, order.part):
                        new_state.add_unit(order.part, player)
                        built.append(order.part)
                        builds_applied += 1
                if builds_applied < delta:
                    waived[player] = delta - builds_applied

            elif delta < 0:
                needed = -delta
                chosen = []
                for order in player_orders:
                    if len(chosen) >= needed:
                        break
                    if isinstance(order, Disband) and new_state.unit_at(order.part) == player:
                        if order.part not in chosen:
                            chosen.append(order.part)
                if len(chosen) < needed:
                    extra = self.default_disbands(new_state, player, needed - len(chosen), set(chosen))
                    logger.info(f"{player} ordered too few disbands, removing {extra}")
                    chosen.extend(extra)
                for part in chosen:
                    new_state.remove_unit(part)
                disbanded.extend(chosen)

        return BuildResult(new_state=new_state, built=built, disbanded=disbanded, waived=waived)


def resolve_movement_phase(game_state: GameState, orders: Dict[str, Order]) -> MoveResult:
    """Convenience function to resolve a move phase."""
    resolver = MovementResolver(game_state, orders)
    return resolver.resolve()


def resolve_retreat_phase(game_state: GameState, retreat_orders: Dict[str, Order]) -> RetreatResult:
    """Convenience function to resolve a retreat phase."""
    resolver = RetreatResolver(game_state, retreat_orders)
    return resolver.resolve()


def resolve_build_phase(game_state: GameState, rules: Rules, orders: Dict[str, Order]) -> BuildResult:
    """Convenience function to resolve a build phase."""
    resolver = BuildResolver(game_state, rules, orders)
    return resolver.resolve()
