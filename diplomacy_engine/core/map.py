"""
Map module for the Diplomacy rules engine.
Defines territories, their sub-parts, and the part adjacency graph loaded from a map description.
"""

import json
from collections import deque
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple


META_KEYS = ("center", "initPlayer", "initPart")

LAND_SUFFIXES = ("_L",)
COAST_SUFFIXES = ("_C", "_NC", "_SC", "_EC", "_WC")


class MapError(ValueError):
    """Raised when a map description is missing, malformed or inconsistent."""
    pass


class PartKind(Enum):
    """Kind of territory sub-part."""
    LAND = "land"
    COAST = "coast"


def part_kind_from_name(name: str) -> Optional[PartKind]:
    """Derive the part kind from its suffix (`_L` land, `_C`/`_NC`/`_SC`/... coast)."""
    if name.endswith(LAND_SUFFIXES):
        return PartKind.LAND
    if name.endswith(COAST_SUFFIXES):
        return PartKind.COAST
    return None


@dataclass(frozen=True)
class Part:
    """A sub-part of a territory that a single unit may occupy."""
    name: str
    kind: PartKind
    territory: int  # index into Map.territories
    neighbors: FrozenSet[str]

    def is_land(self) -> bool:
        return self.kind == PartKind.LAND

    def is_coast(self) -> bool:
        return self.kind == PartKind.COAST

    def __repr__(self) -> str:
        return f"Part({self.name})"


@dataclass(frozen=True)
class Territory:
    """A named area of the board, optionally a supply center."""
    name: str
    index: int
    parts: Tuple[str, ...]
    is_center: bool = False
    init_player: Optional[str] = None
    init_part: Optional[str] = None

    def __repr__(self) -> str:
        return f"Territory({self.name})"


class Map:
    """
    The board: territories, their parts, and part-to-part adjacency.

    Immutable once built. Parts refer to their territory by index and
    territories list their parts by name.
    """

    def __init__(self, territories: Iterable[Territory], parts: Iterable[Part], raw: Optional[dict] = None):
        self._territories: Tuple[Territory, ...] = tuple(territories)
        self._parts: Mapping[str, Part] = MappingProxyType({p.name: p for p in parts})
        self._by_name: Mapping[str, Territory] = MappingProxyType(
            {t.name: t for t in self._territories}
        )
        self._raw = raw

    @property
    def territories(self) -> Tuple[Territory, ...]:
        return self._territories

    @property
    def parts(self) -> Mapping[str, Part]:
        return self._parts

    def part(self, name: str) -> Optional[Part]:
        """Get a part by name."""
        return self._parts.get(name)

    def territory(self, name: str) -> Optional[Territory]:
        """Get a territory by name."""
        return self._by_name.get(name)

    def territory_of(self, part_name: str) -> Territory:
        """Territory that owns the given part."""
        return self._territories[self._parts[part_name].territory]

    def parts_of(self, territory_name: str) -> List[Part]:
        territory = self._by_name[territory_name]
        return [self._parts[name] for name in territory.parts]

    def neighbors(self, part_name: str) -> FrozenSet[str]:
        """Parts directly reachable from the given part."""
        part = self._parts.get(part_name)
        if part is None:
            return frozenset()
        return part.neighbors

    def is_adjacent(self, from_part: str, to_part: str) -> bool:
        return to_part in self.neighbors(from_part)

    def is_coast(self, part_name: str) -> bool:
        part = self._parts.get(part_name)
        return part is not None and part.is_coast()

    def is_land(self, part_name: str) -> bool:
        part = self._parts.get(part_name)
        return part is not None and part.is_land()

    def is_sea(self, part_name: str) -> bool:
        """A sea part is a coast part of a territory that has no land part."""
        if not self.is_coast(part_name):
            return False
        return all(p.is_coast() for p in self.parts_of(self.territory_of(part_name).name))

    def reaches(self, part_name: str, territory_name: str) -> bool:
        """Check whether a unit on `part_name` can move into some part of the territory."""
        return any(
            self._parts[n].territory == self._by_name[territory_name].index
            for n in self.neighbors(part_name)
        )

    def has_convoy_path(self, source: str, dest: str, fleet_parts: Iterable[str]) -> bool:
        """
        Check if convoying fleets form a connected chain from the source part's
        territory to the destination part's territory.
        BFS through sea parts holding convoying fleets; at least one fleet is required.
        """
        fleets = {p for p in fleet_parts if self.is_sea(p)}
        if not fleets or source not in self._parts or dest not in self._parts:
            return False

        source_territory = self.territory_of(source).name
        dest_territory = self.territory_of(dest).name

        queue = deque()
        visited = set()
        for part in self.parts_of(source_territory):
            for neighbor in part.neighbors:
                if neighbor in fleets and neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(neighbor)

        while queue:
            current = queue.popleft()
            if self.reaches(current, dest_territory):
                return True
            for neighbor in self.neighbors(current):
                if neighbor in fleets and neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(neighbor)

        return False

    def centers(self) -> List[Territory]:
        """All supply center territories."""
        return [t for t in self._territories if t.is_center]

    def distances_from(self, sources: Iterable[str]) -> Dict[str, int]:
        """BFS distance (in moves) from any of the source parts to every reachable part."""
        distances: Dict[str, int] = {}
        queue = deque()
        for source in sources:
            if source in self._parts and source not in distances:
                distances[source] = 0
                queue.append(source)

        while queue:
            current = queue.popleft()
            for neighbor in self.neighbors(current):
                if neighbor not in distances:
                    distances[neighbor] = distances[current] + 1
                    queue.append(neighbor)

        return distances

    def to_dict(self) -> dict:
        """Convert the map back into its description format."""
        if self._raw is not None:
            return json.loads(json.dumps(self._raw))

        data = {}
        for territory in self._territories:
            entry = {}
            for name in territory.parts:
                entry[name] = sorted(self._parts[name].neighbors)
            entry["center"] = 1 if territory.is_center else 0
            entry["initPlayer"] = territory.init_player
            entry["initPart"] = territory.init_part
            data[territory.name] = entry
        return data

    @staticmethod
    def from_dict(data: dict) -> 'Map':
        """
        Build a map from its description.

        Each territory entry maps part names to neighbor lists, plus `center`,
        `initPlayer` and `initPart`. A neighbor may name a part directly or a
        territory; a territory resolves to its parts of the same kind, narrowed
        to the coasts that list the source back when there are several.
        """
        if not isinstance(data, dict) or not data:
            raise MapError("Map description must be a non-empty object")

        territories: List[Territory] = []
        declared: Dict[str, Tuple[int, PartKind, List[str]]] = {}

        for index, (territory_name, entry) in enumerate(data.items()):
            if not isinstance(entry, dict):
                raise MapError(f"Territory '{territory_name}' must be an object")

            part_names = []
            for key, value in entry.items():
                if key in META_KEYS:
                    continue
                kind = part_kind_from_name(key)
                if kind is None:
                    raise MapError(f"Part '{key}' of '{territory_name}' has no _L/_C suffix")
                if key in declared:
                    raise MapError(f"Part '{key}' is declared twice")
                if not isinstance(value, list):
                    raise MapError(f"Neighbors of '{key}' must be a list")
                declared[key] = (index, kind, [str(n) for n in value])
                part_names.append(key)

            if not part_names:
                raise MapError(f"Territory '{territory_name}' has no parts")

            init_player = _none_if_null(entry.get("initPlayer"))
            init_part = _none_if_null(entry.get("initPart"))
            if init_part is not None and init_part not in part_names:
                raise MapError(f"initPart '{init_part}' is not a part of '{territory_name}'")

            try:
                is_center = int(entry.get("center", 0)) == 1
            except (TypeError, ValueError):
                raise MapError(f"Invalid center flag for '{territory_name}'")

            territories.append(Territory(
                name=territory_name,
                index=index,
                parts=tuple(part_names),
                is_center=is_center,
                init_player=init_player,
                init_part=init_part
            ))

        by_name = {t.name: t for t in territories}
        parts = []
        for part_name, (index, kind, raw_neighbors) in declared.items():
            neighbors = set()
            for neighbor in raw_neighbors:
                neighbors.update(
                    _resolve_neighbor(part_name, territories[index].name, kind, neighbor, declared, by_name)
                )
            neighbors.discard(part_name)
            parts.append(Part(part_name, kind, index, frozenset(neighbors)))

        return Map(territories, parts, raw=data)


def _none_if_null(value) -> Optional[str]:
    if value is None or value in ("None", "null", ""):
        return None
    return str(value)


def _resolve_neighbor(
    part_name: str,
    territory_name: str,
    kind: PartKind,
    neighbor: str,
    declared: Dict[str, Tuple[int, PartKind, List[str]]],
    by_name: Dict[str, Territory]
) -> List[str]:
    if neighbor in declared:
        return [neighbor]

    target = by_name.get(neighbor)
    if target is None:
        raise MapError(f"Unknown neighbor '{neighbor}' of part '{part_name}'")

    same_kind = [p for p in target.parts if declared[p][1] == kind]
    if len(same_kind) <= 1:
        return same_kind

    # Multi-coast territory: keep the coasts that name us back
    reciprocal = [
        p for p in same_kind
        if territory_name in declared[p][2] or part_name in declared[p][2]
    ]
    return reciprocal or same_kind


def load_map(filepath: str) -> Map:
    """Load a map description from a JSON file."""
    try:
        with open(filepath, 'r') as f:
            data = json.load(f)
    except OSError as e:
        raise MapError(f"Cannot open map file {filepath}: {e}")
    except json.JSONDecodeError as e:
        raise MapError(f"Cannot parse map file {filepath}: {e}")
    return Map.from_dict(data)
