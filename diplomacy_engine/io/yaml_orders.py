"""
YAML order file loader for the Diplomacy rules engine.
Supports structured YAML format with auto-correction of part names and actions.
"""

import yaml
from dataclasses import replace
from typing import Dict, List, Optional
from diplomacy_engine.core.game_state import GameState
from diplomacy_engine.core.orders import (
    Order, Hold, Move, SupportHold, SupportMove, Convoy,
    Retreat, Build, Disband, OrderParser, OrderParseError
)


class OrderValidationError(Exception):
    """Raised when an order entry cannot be understood."""
    pass


class YAMLOrderLoader:
    """
    Loads orders from YAML files.

    Example file:

        phase: Phase 1 move
        orders:
          - player: ENGLAND
            order: LON_C M NTH_C
          - player: FRANCE
            part: PAR_L
            action: move
            destination: BUR_L
        retreats:
          - player: FRANCE
            part: BRE_C
            destination: GAS_C
        builds:
          - player: ENGLAND
            part: LON_C
        disbands:
          - player: GERMANY
            part: KIE_C
    """

    def __init__(self, game_state: GameState):
        self.game_state = game_state
        self.warnings = []
        self.corrections = []

    def load_from_file(self, filepath: str) -> Dict:
        """Load YAML order file."""
        with open(filepath, 'r') as f:
            data = yaml.safe_load(f)
        return data or {}

    def load_orders(self, filepath: str) -> List[Order]:
        """Load every order section of a file, in file order."""
        return self.orders_from_data(self.load_from_file(filepath))

    def orders_from_data(self, data: Dict) -> List[Order]:
        """Every order in already-loaded YAML data, checked against the current phase."""
        phase = data.get('phase')
        if phase and phase != self.game_state.phase_name():
            self.warnings.append(f"File is for '{phase}', current phase is '{self.game_state.phase_name()}'")
        return (
            self.parse_orders(data)
            + self.parse_retreats(data)
            + self.parse_builds(data)
            + self.parse_disbands(data)
        )

    def parse_orders(self, yaml_data: Dict) -> List[Order]:
        """Parse move phase orders from YAML data."""
        orders = []

        for order_data in yaml_data.get('orders') or []:
            try:
                order = self._parse_single_order(order_data)
                if order:
                    orders.append(order)
            except (OrderValidationError, OrderParseError, AttributeError) as e:
                self.warnings.append(f"Failed to parse order {order_data}: {e}")

        return orders

    def _parse_single_order(self, order_data: Dict) -> Optional[Order]:
        """Parse a single order from YAML data."""
        player = self._normalize_player(order_data.get('player', ''))
        if not player:
            raise OrderValidationError("Missing player")

        # Compact form in the log grammar
        if 'order' in order_data:
            return self._normalize_parts(OrderParser.parse_order(player, str(order_data['order'])))

        part = self._normalize_part(order_data.get('part', ''))
        if not part:
            raise OrderValidationError("Missing or unknown part")

        action = self._normalize_action(order_data.get('action', 'hold'))

        if action == 'hold':
            return Hold(player, part)

        elif action == 'move':
            dest = self._normalize_part(order_data.get('destination', ''))
            if not dest:
                raise OrderValidationError("Missing destination for move order")
            via_convoy = bool(order_data.get('via_convoy', False))
            return Move(player, part, dest, via_convoy)

        elif action == 'support':
            # Accept both 'supports' and 'supporting' field names
            supported = self._normalize_part(order_data.get('supports', '') or order_data.get('supporting', ''))
            if not supported:
                self.warnings.append(f"Supported part not found: {order_data}")
                return None

            destination = order_data.get('destination')
            if destination:
                dest = self._normalize_part(destination)
                if not dest:
                    raise OrderValidationError(f"Unknown destination {destination}")
                return SupportMove(player, part, dest, supported)
            return SupportHold(player, part, supported)

        elif action == 'convoy':
            convoyed = self._normalize_part(
                order_data.get('convoys', '') or order_data.get('convoying', '') or order_data.get('convoy', '')
            )
            if not convoyed:
                self.warnings.append(f"Convoyed part not found: {order_data}")
                return None

            dest = self._normalize_part(order_data.get('destination', ''))
            if not dest:
                raise OrderValidationError("Missing destination for convoy order")
            return Convoy(player, part, dest, convoyed)

        else:
            self.warnings.append(f"Unknown action: {action}")
            return None

    def parse_retreats(self, yaml_data: Dict) -> List[Order]:
        """Parse retreat orders from YAML data."""
        retreats = []

        for retreat_data in yaml_data.get('retreats') or []:
            try:
                player = self._normalize_player(retreat_data.get('player', ''))
                part = self._normalize_part(retreat_data.get('part', ''))
                if not player or not part:
                    self.warnings.append(f"Incomplete retreat entry: {retreat_data}")
                    continue

                action = self._normalize_action(retreat_data.get('action', 'retreat'))
                if action == 'disband':
                    retreats.append(Disband(player, part))
                else:
                    dest = self._normalize_part(retreat_data.get('destination', ''))
                    if dest:
                        retreats.append(Retreat(player, part, dest))
                    else:
                        self.warnings.append(f"Unknown retreat destination: {retreat_data}")
            except AttributeError as e:
                self.warnings.append(f"Failed to parse retreat {retreat_data}: {e}")

        return retreats

    def parse_builds(self, yaml_data: Dict) -> List[Order]:
        """Parse build orders from YAML data."""
        return [Build(player, part) for player, part in self._player_parts(yaml_data, 'builds')]

    def parse_disbands(self, yaml_data: Dict) -> List[Order]:
        """Parse build phase disband orders from YAML data."""
        return [Disband(player, part) for player, part in self._player_parts(yaml_data, 'disbands')]

    def _player_parts(self, yaml_data: Dict, section: str):
        entries = []
        for entry in yaml_data.get(section) or []:
            try:
                player = self._normalize_player(entry.get('player', ''))
                part = self._normalize_part(entry.get('part', '') or entry.get('location', ''))
            except AttributeError as e:
                self.warnings.append(f"Failed to parse {section} entry {entry}: {e}")
                continue
            if player and part:
                entries.append((player, part))
            else:
                self.warnings.append(f"Incomplete {section} entry: {entry}")
        return entries

    def _normalize_player(self, name: str) -> Optional[str]:
        """Match a player name case-insensitively."""
        name = str(name).strip()
        if not name:
            return None
        if name in self.game_state.players:
            return name
        for player in self.game_state.players:
            if player.lower() == name.lower():
                self.corrections.append(f"Corrected player '{name}' to '{player}'")
                return player
        self.warnings.append(f"Unknown player: {name}")
        return name

    def _normalize_part(self, part: str) -> Optional[str]:
        """Match a part name case-insensitively."""
        part = str(part).strip()
        if not part:
            return None
        game_map = self.game_state.game_map
        if game_map.part(part) is not None:
            return part
        upper = part.upper()
        if game_map.part(upper) is not None:
            self.corrections.append(f"Corrected '{part}' to '{upper}'")
            return upper
        return None

    def _normalize_parts(self, order: Order) -> Order:
        """Apply part-name correction to every part field of a parsed order."""
        fields = {}
        for name in ('part', 'dest', 'target', 'source'):
            value = getattr(order, name, None)
            if value is not None:
                fields[name] = self._normalize_part(value) or value
        return replace(order, **fields)

    def _normalize_action(self, action: str) -> str:
        """Normalize action name with aliases."""
        action = str(action).lower().strip()

        # Action aliases
        aliases = {
            'm': 'move',
            'h': 'hold',
            's': 'support',
            'c': 'convoy',
            'r': 'retreat',
            'd': 'disband',
            'b': 'build'
        }

        if action in aliases:
            normalized = aliases[action]
            self.corrections.append(f"Expanded action '{action}' to '{normalized}'")
            return normalized

        return action

    def get_warnings(self) -> List[str]:
        """Get all warnings from parsing."""
        return self.warnings

    def get_corrections(self) -> List[str]:
        """Get all auto-corrections made."""
        return self.corrections


class OrderWriter:
    """Converts Order objects to the YAML order file format."""

    @staticmethod
    def orders_to_yaml_dict(orders: List[Order], phase_name: str) -> dict:
        """Group orders into the sections YAMLOrderLoader reads."""
        sections: Dict[str, list] = {}
        for order in orders:
            if isinstance(order, Build):
                sections.setdefault('builds', []).append({'player': order.player, 'part': order.part})
            elif isinstance(order, Retreat):
                sections.setdefault('retreats', []).append(
                    {'player': order.player, 'part': order.part, 'destination': order.dest}
                )
            elif isinstance(order, Disband):
                sections.setdefault('disbands', []).append({'player': order.player, 'part': order.part})
            else:
                sections.setdefault('orders', []).append({'player': order.player, 'order': order.to_string()})
        return {'phase': phase_name, **sections}

    @staticmethod
    def write(orders: List[Order], phase_name: str, filepath: str) -> None:
        with open(filepath, 'w') as f:
            yaml.dump(OrderWriter.orders_to_yaml_dict(orders, phase_name), f, sort_keys=False)
