"""
Command-line entry point for the Diplomacy rules engine.

Reads one command per line from stdin, or a single command from the
arguments, e.g.:

    diplomacy --state game.json --order ENGLAND LON_C M NTH_C
    diplomacy --state game.json --ready ENGLAND
    diplomacy --state game.json --advance
    diplomacy --state game.json --player FRANCE --draw 1
"""

import argparse
import json
import logging
import os
import sys
from typing import Callable, List, Optional

import yaml
from dotenv import load_dotenv

from diplomacy_engine.core.map import MapError, load_map
from diplomacy_engine.core.rules import RulesError, load_rules
from diplomacy_engine.core.game import Game, GameOverError, PhaseReport
from diplomacy_engine.core.orders import OrderParseError
from diplomacy_engine.gamemaster.phase_log import PhaseLog
from diplomacy_engine.io.order_parser import Command, CommandParser
from diplomacy_engine.io.yaml_orders import YAMLOrderLoader

logger = logging.getLogger(__name__)


def configure_logging(level: str, log_file: Optional[str]) -> None:
    """File + stream logging. Game output owns stdout, so logs go to stderr."""
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


class CommandRunner:
    """Executes parsed commands against a game and returns output lines."""

    def __init__(self, game: Game, timeout: float = 0.0, log_path: Optional[str] = None):
        self.game = game
        self.timeout = timeout
        self.log_path = log_path

    def execute(self, command: Command) -> List[str]:
        handler: Optional[Callable[[Command], List[str]]] = getattr(self, f"_do_{command.kind}", None)
        if handler is None:
            raise TypeError(f"Unknown command kind: {command.kind}")
        return handler(command)

    def _do_order(self, command: Command) -> List[str]:
        self.game.submit_order(command.order)
        return []

    def _do_draw(self, command: Command) -> List[str]:
        self.game.vote_draw(command.player, command.vote)
        return []

    def _do_ready(self, command: Command) -> List[str]:
        self.game.set_ready(command.player)
        return []

    def _do_withdraw(self, command: Command) -> List[str]:
        self.game.withdraw_orders(command.player)
        return []

    def _do_press(self, command: Command) -> List[str]:
        message = self.game.send_press(command.player, command.recipient, command.message)
        if message is None:
            return [f"error: cannot send press from {command.player} to {command.recipient}"]
        return []

    def _do_show_press(self, command: Command) -> List[str]:
        return self.game.press.format_messages(command.player)

    def _do_map(self, command: Command) -> List[str]:
        return [json.dumps(self.game.game_map.to_dict(), indent=2)]

    def _do_rules(self, command: Command) -> List[str]:
        return [json.dumps(self.game.rules.to_dict(), indent=2)]

    def _do_phase(self, command: Command) -> List[str]:
        return self.game.phase_banner()

    def _do_status(self, command: Command) -> List[str]:
        return [json.dumps(self.game.state.to_dict(), indent=2)]

    def _do_history(self, command: Command) -> List[str]:
        return [json.dumps(self.game.phase_log.to_dict(), indent=2)]

    def _do_votes(self, command: Command) -> List[str]:
        tracker = self.game.draw_votes
        lines = [tracker.summary(self.game.state)]
        for player, vote in tracker.visible_votes().items():
            lines.append(f"{player} {1 if vote else 0}")
        return lines

    def _do_orders_file(self, command: Command) -> List[str]:
        loader = YAMLOrderLoader(self.game.state)
        orders = loader.load_orders(command.path)
        for warning in loader.get_warnings():
            logger.warning(warning)
        for correction in loader.get_corrections():
            logger.info(correction)
        for order in orders:
            self.game.submit_order(order)
        return [f"Loaded {len(orders)} orders from {command.path}"]

    def _do_advance(self, command: Command) -> List[str]:
        report = self.game.advance(timeout=self.timeout)
        if self.log_path:
            self.game.phase_log.save(self.log_path)
        return format_report(report) + self.game.phase_banner()


def format_report(report: PhaseReport) -> List[str]:
    """Lines describing a resolved phase."""
    lines = [f"rejected: {rejection}" for rejection in report.rejected]

    if report.move_result:
        for part, outcome in sorted(report.move_result.results.items()):
            lines.append(f"{part}: {outcome}")
    if report.retreat_result:
        for origin, dest in report.retreat_result.retreated.items():
            lines.append(f"{origin}: Retreated to {dest}")
        for dislodged in report.retreat_result.disbanded:
            lines.append(f"{dislodged.part}: Disbanded")
    if report.build_result:
        for part in report.build_result.built:
            lines.append(f"{part}: Built")
        for part in report.build_result.disbanded:
            lines.append(f"{part}: Disbanded")

    for territory, _, new_owner in report.center_changes:
        lines.append(f"{territory} captured by {new_owner}")
    if report.winner:
        lines.append(f"{report.winner} wins")
    if report.draw:
        shares = ", ".join(f"{p} {share:.3f}" for p, share in report.draw.items())
        lines.append(f"Draw: {shares}")
    return lines


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Diplomacy rules engine',
        allow_abbrev=False,
        epilog='Any other arguments are run as a single command line, e.g. --order ENGLAND LON_C M NTH_C'
    )
    parser.add_argument('--map-file', default=os.getenv('DIPLOMACY_MAP', 'data/map.json'),
                        help='Map description JSON')
    parser.add_argument('--rules-file', default=os.getenv('DIPLOMACY_RULES', 'data/rules.json'),
                        help='Rules description JSON')
    parser.add_argument('--state', default=os.getenv('DIPLOMACY_STATE'),
                        help='Game state JSON to load at start and save at exit')
    parser.add_argument('--log', default=os.getenv('DIPLOMACY_LOG', 'log.json'),
                        help='Phase log JSON')
    parser.add_argument('--log-file', default=os.getenv('DIPLOMACY_LOG_FILE'),
                        help='Diagnostic log file')
    parser.add_argument('--log-level', default=os.getenv('DIPLOMACY_LOG_LEVEL', 'WARNING'),
                        help='Diagnostic log level')
    parser.add_argument('--timeout', type=float, default=float(os.getenv('DIPLOMACY_PHASE_TIMEOUT', '0')),
                        help='Seconds --advance waits for ready players before forcing the phase')
    parser.add_argument('--player', default=os.getenv('DIPLOMACY_PLAYER'),
                        help='Session player; lets --draw take just 1|0')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()

    parser = build_parser()
    args, command_tokens = parser.parse_known_args(argv)
    configure_logging(args.log_level, args.log_file)

    try:
        game_map = load_map(args.map_file)
        rules = load_rules(args.rules_file)
    except (MapError, RulesError) as e:
        logger.error(f"Startup failed: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.state and os.path.exists(args.state):
        try:
            game = Game.load_game(args.state, game_map, rules)
        except (OSError, ValueError, KeyError) as e:
            print(f"error: cannot load state {args.state}: {e}", file=sys.stderr)
            return 2
    else:
        game = Game(game_map, rules)

    if args.log and os.path.exists(args.log):
        game.phase_log = PhaseLog.load(args.log)

    runner = CommandRunner(game, timeout=args.timeout, log_path=args.log)

    if command_tokens:
        lines = [" ".join(command_tokens)]
    else:
        for line in game.phase_banner():
            print(line)
        lines = sys.stdin

    for line in lines:
        try:
            command = CommandParser.parse_line(line, args.player)
            if command is None:
                continue
            output = runner.execute(command)
        except (OrderParseError, KeyError, GameOverError, OSError, yaml.YAMLError) as e:
            print(f"error: {e}")
            continue

        for out in output:
            print(out)

    if args.state:
        game.save_game(args.state)

    return 0


if __name__ == "__main__":
    sys.exit(main())
