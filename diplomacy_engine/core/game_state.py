"""
Game state module for the Diplomacy rules engine.
Represents players, unit placement, center ownership and phase progression.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from diplomacy_engine.core.map import Map


class PhaseType(Enum):
    """Kind of game phase."""
    MOVE = "move"
    RETREAT = "retreat"
    BUILD = "build"


@dataclass
class Player:
    """A player in the game. Units and centers are derived from the GameState."""
    name: str
    home_centers: FrozenSet[str] = field(default_factory=frozenset)  # territory names
    vote: bool = False
    ready: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "home_centers": sorted(self.home_centers),
            "vote": self.vote,
            "ready": self.ready
        }

    @staticmethod
    def from_dict(data: dict) -> 'Player':
        return Player(
            name=data["name"],
            home_centers=frozenset(data.get("home_centers", [])),
            vote=bool(data.get("vote", False)),
            ready=bool(data.get("ready", False))
        )


@dataclass
class DislodgedUnit:
    """A unit that lost its part and must retreat or disband."""
    player: str
    part: str  # part it was dislodged from
    attacker_origin: str  # part the dislodging unit came from
    forbidden: FrozenSet[str] = field(default_factory=frozenset)  # parts it may not retreat to

    def retreat_options(self, state: 'GameState') -> List[str]:
        """
        Parts this unit may retreat to.
        Cannot retreat to:
        - A part of a forbidden territory (attacker origin, standoffs)
        - A part of an occupied territory
        """
        game_map = state.game_map
        blocked = {game_map.territory_of(p).name for p in self.forbidden if game_map.part(p)}
        options = []
        for neighbor in game_map.neighbors(self.part):
            territory = game_map.territory_of(neighbor).name
            if territory in blocked:
                continue
            if state.occupant_of(territory) is not None:
                continue
            options.append(neighbor)
        return sorted(options)

    def to_dict(self) -> dict:
        return {
            "player": self.player,
            "part": self.part,
            "attacker_origin": self.attacker_origin,
            "forbidden": sorted(self.forbidden)
        }

    @staticmethod
    def from_dict(data: dict) -> 'DislodgedUnit':
        return DislodgedUnit(
            player=data["player"],
            part=data["part"],
            attacker_origin=data["attacker_origin"],
            forbidden=frozenset(data.get("forbidden", []))
        )


class GameState:
    """Represents the complete state of the game at a phase boundary."""

    def __init__(
        self,
        game_map: Map,
        phase_count: int = 1,
        phase_type: PhaseType = PhaseType.MOVE
    ):
        self.game_map = game_map
        self.phase_count = phase_count
        self.phase_type = phase_type
        self.players: Dict[str, Player] = {}
        self.units: Dict[str, str] = {}  # part name -> player name
        self.owners: Dict[str, str] = {}  # territory name -> player name
        self.dislodged: List[DislodgedUnit] = []

    def add_player(self, player: Player) -> None:
        self.players[player.name] = player

    def add_unit(self, part: str, player: str) -> None:
        """Place a unit; a territory holds at most one unit."""
        if self.game_map.part(part) is None:
            raise KeyError(f"Unknown part: {part}")
        territory = self.game_map.territory_of(part).name
        occupant = self.occupant_of(territory)
        if occupant is not None:
            raise ValueError(f"{territory} is already occupied at {occupant}")
        self.units[part] = player

    def remove_unit(self, part: str) -> Optional[str]:
        """Remove a unit, returning its owner."""
        return self.units.pop(part, None)

    def unit_at(self, part: str) -> Optional[str]:
        """Owner of the unit on a part, if any."""
        return self.units.get(part)

    def occupant_of(self, territory: str) -> Optional[str]:
        """Part occupied within a territory, if any."""
        for part in self.game_map.territory(territory).parts:
            if part in self.units:
                return part
        return None

    def units_of(self, player: str) -> List[str]:
        """Parts occupied by a player's units."""
        return sorted(p for p, owner in self.units.items() if owner == player)

    def centers_of(self, player: str) -> List[str]:
        """Supply center territories controlled by a player."""
        return sorted(t for t, owner in self.owners.items() if owner == player)

    def unit_count(self, player: str) -> int:
        return len(self.units_of(player))

    def center_count(self, player: str) -> int:
        return len(self.centers_of(player))

    def set_owner(self, territory: str, player: Optional[str]) -> None:
        """Set the owner of a supply center."""
        if player is None:
            self.owners.pop(territory, None)
        else:
            self.owners[territory] = player

    def is_eliminated(self, player: str) -> bool:
        return self.unit_count(player) == 0 and self.center_count(player) == 0

    def active_players(self) -> List[str]:
        """Players that still hold a unit or a center."""
        return [name for name in self.players if not self.is_eliminated(name)]

    def phase_name(self) -> str:
        return f"Phase {self.phase_count} {self.phase_type.value}"

    def clone(self) -> 'GameState':
        """Create a deep copy of this game state."""
        new_state = GameState(self.game_map, self.phase_count, self.phase_type)
        new_state.players = {
            name: Player(p.name, p.home_centers, p.vote, p.ready)
            for name, p in self.players.items()
        }
        new_state.units = dict(self.units)
        new_state.owners = dict(self.owners)
        new_state.dislodged = [
            DislodgedUnit(d.player, d.part, d.attacker_origin, d.forbidden)
            for d in self.dislodged
        ]
        return new_state

    def to_dict(self) -> dict:
        """Convert game state to dictionary for serialization."""
        return {
            "phase_count": self.phase_count,
            "phase_type": self.phase_type.value,
            "players": [p.to_dict() for p in self.players.values()],
            "units": dict(sorted(self.units.items())),
            "owners": dict(sorted(self.owners.items())),
            "dislodged": [d.to_dict() for d in self.dislodged]
        }

    def to_json(self, filepath: str) -> None:
        """Save game state to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @staticmethod
    def from_dict(data: dict, game_map: Map) -> 'GameState':
        """Create game state from dictionary."""
        state = GameState(
            game_map=game_map,
            phase_count=data["phase_count"],
            phase_type=PhaseType(data["phase_type"])
        )
        for player_data in data.get("players", []):
            state.add_player(Player.from_dict(player_data))
        for part, player in data.get("units", {}).items():
            state.add_unit(part, player)
        state.owners = dict(data.get("owners", {}))
        state.dislodged = [DislodgedUnit.from_dict(d) for d in data.get("dislodged", [])]
        return state

    @staticmethod
    def from_json(filepath: str, game_map: Map) -> 'GameState':
        """Load game state from JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return GameState.from_dict(data, game_map)


def create_starting_state(game_map: Map) -> GameState:
    """
    Create the opening state from the map's initPlayer/initPart entries.

    Every territory with an initPlayer that is a supply center starts owned by
    that player and counts as one of its home centers.
    """
    state = GameState(game_map, phase_count=1, phase_type=PhaseType.MOVE)

    home_centers: Dict[str, set] = {}
    for territory in game_map.territories:
        if territory.init_player is None:
            continue
        home_centers.setdefault(territory.init_player, set())
        if territory.is_center:
            home_centers[territory.init_player].add(territory.name)

    for name, centers in home_centers.items():
        state.add_player(Player(name, frozenset(centers)))

    for territory in game_map.territories:
        if territory.init_player is None:
            continue
        if territory.init_part is not None:
            state.add_unit(territory.init_part, territory.init_player)
        if territory.is_center:
            state.set_owner(territory.name, territory.init_player)

    return state
