#!/usr/bin/env python3
"""
Simulate Diplomacy games from YAML order files.
Resolves each phase, saves states and the phase log, and writes a summary report.
"""

import os
import sys
from datetime import datetime

import yaml

from diplomacy_engine.core.game import Game
from diplomacy_engine.core.game_state import GameState
from diplomacy_engine.core.map import load_map
from diplomacy_engine.core.rules import load_rules
from diplomacy_engine.io.yaml_orders import YAMLOrderLoader


class GameSimulator:
    """
    Simulates a game from YAML order files.

    The game folder holds game_info.yaml:

        name: Tutorial
        description: Opening moves
        map: map.json
        rules: rules.json
        initial_state: states/start.json   # optional
        order_files:
          - orders/phase_1_move.yaml
    """

    def __init__(self, game_folder: str):
        self.game_folder = game_folder
        self.game_info = None
        self.game = None
        self.phase_results = []

    def load_game_info(self):
        """Load game_info.yaml from game folder."""
        info_path = os.path.join(self.game_folder, 'game_info.yaml')

        if not os.path.exists(info_path):
            raise FileNotFoundError(f"game_info.yaml not found in {self.game_folder}")

        with open(info_path, 'r') as f:
            self.game_info = yaml.safe_load(f) or {}

        print(f"Loaded game: {self.game_info.get('name', 'Unnamed Game')}")
        print(f"   Description: {self.game_info.get('description', 'No description')}")

    def _path(self, relative: str) -> str:
        return os.path.join(self.game_folder, relative)

    def initialize_game(self):
        """Initialize or load the starting game state."""
        game_map = load_map(self._path(self.game_info.get('map', 'map.json')))
        rules = load_rules(self._path(self.game_info.get('rules', 'rules.json')))

        state = None
        initial_state_path = self.game_info.get('initial_state')
        if initial_state_path:
            full_path = self._path(initial_state_path)
            if os.path.exists(full_path):
                state = GameState.from_json(full_path, game_map)
                print(f"Loaded initial state from {initial_state_path}")
            else:
                print("Initial state file not found, starting fresh game")

        self.game = Game(game_map, rules, state)
        print(f"Starting at {self.game.phase_name()}")

    def simulate_phase(self, order_file: str):
        """Submit one YAML order file and resolve the current phase."""
        print(f"\n{'='*60}")
        print(f"Processing: {order_file}")
        print(f"{'='*60}")

        loader = YAMLOrderLoader(self.game.state)
        yaml_data = loader.load_from_file(self._path(order_file))
        orders = loader.orders_from_data(yaml_data)

        if loader.get_corrections():
            print(f"  Auto-corrections made: {len(loader.get_corrections())}")
            for correction in loader.get_corrections():
                print(f"     - {correction}")

        if loader.get_warnings():
            print(f"  Warnings: {len(loader.get_warnings())}")
            for warning in loader.get_warnings():
                print(f"     - {warning}")

        for order in orders:
            self.game.submit_order(order)
        # An order file speaks for every player with a decision to make
        for player in self.game.players_to_act():
            self.game.set_ready(player)
        print(f"  Submitted {len(orders)} orders for {self.game.phase_name()}")

        report = self.game.advance(timeout=0)

        for rejection in report.rejected:
            print(f"     x {rejection}")

        dislodgements = 0
        if report.move_result:
            result = report.move_result
            dislodgements = len(result.dislodged)
            print(f"     - Successful moves: {len(result.moved)}")
            print(f"     - Standoffs: {', '.join(sorted(result.standoffs)) or 'none'}")
            print(f"     - Dislodgements: {dislodgements}")
        for territory, old_owner, new_owner in report.center_changes:
            print(f"     - {territory}: {old_owner or 'Neutral'} -> {new_owner}")

        output_state = yaml_data.get('output_state')
        if output_state:
            state_path = self._path(output_state)
            os.makedirs(os.path.dirname(state_path) or '.', exist_ok=True)
            self.game.save_game(state_path)
            print(f"  Saved state to {output_state}")

        self.phase_results.append({
            'phase': report.phase,
            'orders_count': len(orders),
            'rejected': len(report.rejected),
            'dislodgements': dislodgements
        })

        if report.winner:
            print(f"\n  VICTORY! {report.winner} has won the game!")
        if report.draw:
            print(f"\n  DRAW declared: {report.draw}")

        print(f"  Next: {report.next_phase}")

    def generate_summary_report(self):
        """Generate a summary report for the entire game simulation."""
        report_path = self._path('SIMULATION_REPORT.md')
        state = self.game.state

        with open(report_path, 'w') as f:
            f.write("# Game Simulation Report\n\n")
            f.write(f"**Game:** {self.game_info.get('name', 'Unnamed')}\n")
            f.write(f"**Description:** {self.game_info.get('description', 'No description')}\n")
            f.write(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n")
            f.write("---\n\n")

            f.write("## Phases Simulated\n\n")
            for i, phase in enumerate(self.phase_results, 1):
                f.write(f"### {i}. {phase['phase']}\n\n")
                f.write(f"- Orders processed: {phase['orders_count']}\n")
                f.write(f"- Orders rejected: {phase['rejected']}\n")
                f.write(f"- Dislodgements: {phase['dislodgements']}\n\n")

            f.write("---\n\n")
            f.write("## Final State\n\n")
            f.write(f"- Phase: {state.phase_name()}\n")
            f.write(f"- Total units: {len(state.units)}\n\n")

            f.write("### Supply Center Count\n\n")
            for player in state.players:
                f.write(f"- **{player}**: {state.center_count(player)} SCs, {state.unit_count(player)} units\n")

            if self.game.winner:
                f.write("\n---\n\n")
                f.write("## GAME RESULT\n\n")
                f.write(f"**WINNER: {self.game.winner}**\n")
            elif self.game.draw:
                f.write("\n---\n\n")
                f.write("## GAME RESULT\n\n")
                for player, share in self.game.draw.items():
                    f.write(f"- {player}: {share:.3f}\n")

        print("\nSummary report saved to SIMULATION_REPORT.md")

    def run(self):
        """Run the complete game simulation."""
        print("\n" + "="*60)
        print("DIPLOMACY GAME SIMULATOR")
        print("="*60)

        self.load_game_info()
        self.initialize_game()

        order_files = self.game_info.get('order_files', [])
        if not order_files:
            print("\nNo order files specified in game_info.yaml")
            return

        for order_file in order_files:
            if self.game.is_over:
                print(f"\nGame over, skipping {order_file}")
                continue
            self.simulate_phase(order_file)

        self.game.phase_log.save(self._path('log.json'))
        self.generate_summary_report()

        print("\n" + "="*60)
        print("SIMULATION COMPLETE!")
        print("="*60)


def main():
    """Main entry point."""
    if len(sys.argv) < 2:
        print("Usage: python -m diplomacy_engine.simulate_yaml <game_folder>")
        sys.exit(1)

    game_folder = sys.argv[1]

    if not os.path.exists(game_folder):
        print(f"Error: Game folder not found: {game_folder}")
        sys.exit(1)

    simulator = GameSimulator(game_folder)
    simulator.run()


if __name__ == "__main__":
    main()
