"""
Phase log: the orders each player used in every resolved phase.
"""

import json
from typing import Dict, Iterable, List
from diplomacy_engine.core.orders import Order
import logging

logger = logging.getLogger(__name__)


class PhaseLog:
    """
    Ordered record of resolved phases.

    Serialized as {"Phase <n> <kind>": {player: ["<part> M <dest>", ...]}}.
    """

    def __init__(self):
        self.phases: Dict[str, Dict[str, List[str]]] = {}

    def record(self, phase_name: str, orders: Iterable[Order]) -> None:
        """Record the orders used to resolve a phase, grouped by player."""
        entry: Dict[str, List[str]] = {}
        for order in orders:
            entry.setdefault(order.player, []).append(order.to_string())
        self.phases[phase_name] = entry
        logger.debug(f"Logged {phase_name}: {sum(len(v) for v in entry.values())} orders")

    def orders_for(self, phase_name: str) -> Dict[str, List[str]]:
        return self.phases.get(phase_name, {})

    def to_dict(self) -> dict:
        return {name: {p: list(o) for p, o in entry.items()} for name, entry in self.phases.items()}

    def save(self, filepath: str) -> None:
        """Save the log to a JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @staticmethod
    def from_dict(data: dict) -> 'PhaseLog':
        log = PhaseLog()
        for name, entry in data.items():
            log.phases[name] = {p: list(o) for p, o in entry.items()}
        return log

    @staticmethod
    def load(filepath: str) -> 'PhaseLog':
        """Load a log from a JSON file."""
        with open(filepath, 'r') as f:
            return PhaseLog.from_dict(json.load(f))
