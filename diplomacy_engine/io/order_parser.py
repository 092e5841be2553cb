"""
Line-oriented command grammar.

Each line is one command, e.g.:
    --order FRANCE LON_C M NTH_C
    --order FRANCE H PAR_L
    --draw FRANCE 1
    --draw 1              (with a session player)
    --press FRANCE ENGLAND Shall we talk?
    --press FRANCE
    --ready FRANCE
    --withdraw FRANCE
    --advance
"""

from dataclasses import dataclass
from typing import List, Optional

from diplomacy_engine.core.orders import Order, OrderParser, OrderParseError

QUERY_COMMANDS = ("map", "rules", "phase", "votes", "advance", "status", "history")


@dataclass
class Command:
    """A parsed command line."""
    kind: str
    player: Optional[str] = None
    order: Optional[Order] = None
    vote: Optional[bool] = None
    recipient: Optional[str] = None
    message: Optional[str] = None
    path: Optional[str] = None


class CommandParser:
    """Parses command lines into Command objects."""

    @staticmethod
    def parse_line(line: str, player: Optional[str] = None) -> Optional[Command]:
        """
        Parse one command line.

        Args:
            line: The command line
            player: Session player, used by the short form of --draw

        Returns:
            The command, or None for blank lines and comments

        Raises:
            OrderParseError: if the line does not match the grammar
        """
        tokens = line.strip().split()
        if not tokens or tokens[0].startswith("#"):
            return None

        flag = tokens[0]
        if not flag.startswith("--"):
            raise OrderParseError(f"Commands start with '--', got '{flag}'")
        kind = flag[2:].lower()
        args = tokens[1:]

        if kind == "order":
            if len(args) < 2:
                raise OrderParseError("Expected '--order <player> <order>'")
            order = OrderParser.parse_order(args[0], " ".join(args[1:]))
            return Command(kind, player=args[0], order=order)

        if kind == "draw":
            if len(args) == 1 and args[0] in ("0", "1"):
                if player is None:
                    raise OrderParseError("'--draw 1|0' needs a session player (--player)")
                return Command(kind, player=player, vote=args[0] == "1")
            if len(args) != 2 or args[1] not in ("0", "1"):
                raise OrderParseError("Expected '--draw [<player>] 1|0'")
            return Command(kind, player=args[0], vote=args[1] == "1")

        if kind == "ready":
            if len(args) != 1:
                raise OrderParseError("Expected '--ready <player>'")
            return Command(kind, player=args[0])

        if kind == "withdraw":
            if len(args) != 1:
                raise OrderParseError("Expected '--withdraw <player>'")
            return Command(kind, player=args[0])

        if kind == "press":
            if len(args) == 1:
                # Show messages visible to a player or the public board
                return Command("show_press", player=args[0])
            if len(args) < 3:
                raise OrderParseError("Expected '--press <from> <to|public> <message>'")
            return Command(kind, player=args[0], recipient=args[1], message=" ".join(args[2:]))

        if kind == "orders-file":
            if len(args) != 1:
                raise OrderParseError("Expected '--orders-file <path>'")
            return Command("orders_file", path=args[0])

        if kind in QUERY_COMMANDS:
            if args:
                raise OrderParseError(f"'--{kind}' takes no arguments")
            return Command(kind)

        raise OrderParseError(f"Unknown command '{flag}'")

    @staticmethod
    def parse_lines(lines: List[str], player: Optional[str] = None) -> List[Command]:
        commands = []
        for line in lines:
            command = CommandParser.parse_line(line, player)
            if command is not None:
                commands.append(command)
        return commands
