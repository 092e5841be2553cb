"""
Order system for the Diplomacy rules engine.
Defines the closed set of order kinds and the fixed order grammar.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Union


class OrderParseError(ValueError):
    """Raised when an order string does not match the order grammar."""
    pass


@dataclass(frozen=True)
class BaseOrder(ABC):
    """Fields shared by every order: issuing player and the part it is attached to."""
    player: str
    part: str

    @abstractmethod
    def to_string(self) -> str:
        """Convert order to its log grammar representation."""
        pass

    def __repr__(self) -> str:
        return f"{self.player}: {self.to_string()}"


@dataclass(frozen=True, repr=False)
class Hold(BaseOrder):
    """Unit stays where it is."""

    def to_string(self) -> str:
        return f"{self.part} H"


@dataclass(frozen=True, repr=False)
class Move(BaseOrder):
    """Unit moves to another part, directly or via convoy."""
    dest: str
    via_convoy: bool = False

    def to_string(self) -> str:
        code = "V" if self.via_convoy else "M"
        return f"{self.part} {code} {self.dest}"


@dataclass(frozen=True, repr=False)
class SupportHold(BaseOrder):
    """Unit supports the unit on `target` in staying put."""
    target: str

    def to_string(self) -> str:
        return f"{self.part} S {self.target}"


@dataclass(frozen=True, repr=False)
class SupportMove(BaseOrder):
    """Unit supports the unit on `source` moving to `target`."""
    target: str
    source: str

    def to_string(self) -> str:
        return f"{self.part} S {self.target} from {self.source}"


@dataclass(frozen=True, repr=False)
class Convoy(BaseOrder):
    """Fleet carries the army on `source` towards `target`."""
    target: str
    source: str

    def to_string(self) -> str:
        return f"{self.part} C {self.target} from {self.source}"


@dataclass(frozen=True, repr=False)
class Retreat(BaseOrder):
    """Dislodged unit retreats to `dest`."""
    dest: str

    def to_string(self) -> str:
        return f"{self.part} R {self.dest}"


@dataclass(frozen=True, repr=False)
class Build(BaseOrder):
    """New unit on an eligible center part."""

    def to_string(self) -> str:
        return f"{self.part} B"


@dataclass(frozen=True, repr=False)
class Disband(BaseOrder):
    """Remove a unit (retreat or build phase)."""

    def to_string(self) -> str:
        return f"{self.part} D"


Order = Union[Hold, Move, SupportHold, SupportMove, Convoy, Retreat, Build, Disband]

MOVE_PHASE_ORDERS = (Hold, Move, SupportHold, SupportMove, Convoy)
RETREAT_PHASE_ORDERS = (Retreat, Disband)
BUILD_PHASE_ORDERS = (Build, Disband)


class OrderParser:
    """Parse order strings in the fixed grammar into Order objects."""

    @staticmethod
    def parse_order(player: str, order_str: str) -> Order:
        """
        Parse an order string for a player.

        Format examples:
        - "LON_C H" or "H LON_C" - hold
        - "LON_C M NTH_C" - move
        - "LON_L V BEL_L" - move via convoy
        - "WAL_L S LON_L" - support hold
        - "WAL_L S YOR_L from LON_L" - support move
        - "NTH_C C BEL_L from LON_L" - convoy
        - "BRE_C R GAS_C" - retreat
        - "LON_C B" or "B LON_C" - build
        - "LON_C D" or "D LON_C" - disband
        """
        parts = order_str.strip().split()
        if not parts:
            raise OrderParseError("Empty order")

        # Prefix forms: "H <part>", "B <part>", "D <part>"
        if len(parts) == 2 and parts[0].upper() in ("H", "B", "D"):
            parts = [parts[1], parts[0]]

        part = parts[0]
        if len(parts) < 2:
            raise OrderParseError(f"Missing order code in '{order_str}'")

        code = parts[1].upper()

        if code in ("H", "B", "D"):
            if len(parts) != 2:
                raise OrderParseError(f"Unexpected tokens in '{order_str}'")
            if code == "H":
                return Hold(player, part)
            if code == "B":
                return Build(player, part)
            return Disband(player, part)

        if code in ("M", "V", "R"):
            if len(parts) != 3:
                raise OrderParseError(f"Expected '<part> {code} <dest>', got '{order_str}'")
            if code == "R":
                return Retreat(player, part, parts[2])
            return Move(player, part, parts[2], via_convoy=(code == "V"))

        if code == "S":
            if len(parts) == 3:
                return SupportHold(player, part, parts[2])
            if len(parts) == 5 and parts[3].lower() == "from":
                return SupportMove(player, part, parts[2], parts[4])
            raise OrderParseError(f"Expected '<part> S <target> [from <from>]', got '{order_str}'")

        if code == "C":
            if len(parts) == 5 and parts[3].lower() == "from":
                return Convoy(player, part, parts[2], parts[4])
            raise OrderParseError(f"Expected '<part> C <to> from <from>', got '{order_str}'")

        raise OrderParseError(f"Unknown order code '{parts[1]}' in '{order_str}'")


class OrderSet:
    """Orders for a single phase, at most one per part; resubmission overwrites."""

    def __init__(self):
        self.orders = {}  # part -> Order

    def add_order(self, order: Order) -> Optional[Order]:
        """Add an order, returning the one it replaced."""
        previous = self.orders.get(order.part)
        self.orders[order.part] = order
        return previous

    def get_order(self, part: str) -> Optional[Order]:
        return self.orders.get(part)

    def remove_player(self, player: str) -> None:
        """Withdraw every order submitted by a player."""
        self.orders = {p: o for p, o in self.orders.items() if o.player != player}

    def get_all_orders(self) -> List[Order]:
        return list(self.orders.values())

    def by_player(self) -> dict:
        result = {}
        for order in self.orders.values():
            result.setdefault(order.player, []).append(order)
        return result

    def __len__(self) -> int:
        return len(self.orders)

    def clear(self) -> None:
        self.orders.clear()
