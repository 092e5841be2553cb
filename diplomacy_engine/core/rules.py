"""
Rules configuration for the Diplomacy rules engine.
Loaded once from the rules description; invalid values are fatal at load time.
"""

import json
from dataclasses import dataclass
from enum import Enum


class RulesError(ValueError):
    """Raised when the rules description is missing or holds an unknown value."""
    pass


class BuildRule(Enum):
    """Where a player may build new units."""
    INIT_CENTERS = "initCenters"
    ALL_CENTERS = "allCenters"


class DrawType(Enum):
    """How centers are split when a draw is declared."""
    DSS = "DSS"  # equal split among survivors
    SOS = "SoS"  # proportional to center count


@dataclass(frozen=True)
class Rules:
    """Game rules: win threshold, build policy, build cadence and draw policy."""
    win_condition: int = 18
    build_rule: BuildRule = BuildRule.INIT_CENTERS
    build_time: int = 4
    vote_shown: bool = True
    draw_type: DrawType = DrawType.DSS

    def is_build_phase(self, phase_count: int) -> bool:
        """Build phases fall on every `build_time`-th phase."""
        return phase_count % self.build_time == 0

    def to_dict(self) -> dict:
        return {
            "winCondition": self.win_condition,
            "buildRule": self.build_rule.value,
            "buildTime": self.build_time,
            "voteShown": 1 if self.vote_shown else 0,
            "drawType": self.draw_type.value
        }

    @staticmethod
    def from_dict(data: dict) -> 'Rules':
        """Create rules from their description, rejecting unknown values."""
        if not isinstance(data, dict):
            raise RulesError("Rules description must be an object")

        try:
            win_condition = int(data.get("winCondition", 18))
            build_time = int(data.get("buildTime", 4))
            vote_shown = int(data.get("voteShown", 1)) == 1
        except (TypeError, ValueError) as e:
            raise RulesError(f"Invalid numeric rule: {e}")

        if win_condition < 1:
            raise RulesError(f"winCondition must be positive, got {win_condition}")
        # A cadence of 1 would make every phase a build phase
        if build_time < 2:
            raise RulesError(f"buildTime must be at least 2, got {build_time}")

        try:
            build_rule = BuildRule(data.get("buildRule", BuildRule.INIT_CENTERS.value))
        except ValueError:
            raise RulesError(f"Unknown buildRule: {data.get('buildRule')}")

        try:
            draw_type = DrawType(data.get("drawType", DrawType.DSS.value))
        except ValueError:
            raise RulesError(f"Unknown drawType: {data.get('drawType')}")

        return Rules(
            win_condition=win_condition,
            build_rule=build_rule,
            build_time=build_time,
            vote_shown=vote_shown,
            draw_type=draw_type
        )


def load_rules(filepath: str) -> Rules:
    """Load rules from a JSON file."""
    try:
        with open(filepath, 'r') as f:
            data = json.load(f)
    except OSError as e:
        raise RulesError(f"Cannot open rules file {filepath}: {e}")
    except json.JSONDecodeError as e:
        raise RulesError(f"Cannot parse rules file {filepath}: {e}")
    return Rules.from_dict(data)
