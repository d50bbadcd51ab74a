# Entry point for previewing a double elimination bracket from a player list

import argparse
import os
import sys

import yaml

from bracket_core.formulas import losers_round_name, winners_round_name
from bracket_core.generator import build
from bracket_core.models import Participant


def load_players(file_path):
    """Read player names from a YAML list, seeded in file order."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        names = yaml.safe_load(file) or []
    if not isinstance(names, list):
        raise ValueError(f"{file_path} must contain a list of player names")
    return [Participant(id=f"p{i}", name=str(name), seed=i) for i, name in enumerate(names, start=1)]


def describe(graph, match):
    names = [graph.participants[p].name if p else '?' for p in (match.slot_a, match.slot_b)]
    line = f"  {match.id}: {names[0]} vs {names[1]}"
    if match.winner:
        line += f" -> {graph.participants[match.winner].name} advances"
    targets = []
    if match.on_win:
        targets.append(f"win: {match.on_win.match_id}")
    if match.on_loss:
        targets.append(f"loss: {match.on_loss.match_id}")
    if targets:
        line += f"  [{', '.join(targets)}]"
    return line


def main():
    script_dir = os.path.dirname(__file__)
    base_dir = os.path.dirname(script_dir)

    parser = argparse.ArgumentParser(description="Preview a double elimination bracket")
    parser.add_argument('players', nargs='?', default=os.path.join(base_dir, 'data', 'players.yaml'),
                        help="YAML file with a list of player names")
    args = parser.parse_args()

    players = load_players(args.players)
    if len(players) < 2:
        print(f"Need at least 2 players. Check {args.players}")
        return 1

    graph = build(players)

    print(f"\n--- Bracket of {graph.size} ({graph.size - len(players)} byes) ---")
    for round_num, round_matches in enumerate(graph.winners, start=1):
        print(f"\n{winners_round_name(round_num, graph.size)}")
        for match in round_matches:
            print(describe(graph, match))
    for round_num, round_matches in enumerate(graph.losers, start=1):
        print(f"\n{losers_round_name(round_num, len(graph.losers))}")
        for match in round_matches:
            print(describe(graph, match))
    print("\nGrand Final")
    print(describe(graph, graph.grand_finals))
    print("\nBracket Reset (only if the losers bracket champion wins the Grand Final)")
    print(describe(graph, graph.grand_finals_reset))
    return 0


if __name__ == "__main__":
    sys.exit(main())
