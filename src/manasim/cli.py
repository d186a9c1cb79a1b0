#!/usr/bin/env python3
"""
Run a deck mana simulation from the command line.

The deck file is a JSON list of card records (Scryfall card objects,
each with an optional "quantity"), or an object with a "cards" list.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv

from .classifier import CardClassifier
from .errors import ConfigurationError
from .logging_config import setup_logging
from .results import Results
from .simulation import run_simulation
from .types import COLORS, MULLIGAN_RULES, MULLIGAN_STRATEGIES, SimulationConfig

logger = logging.getLogger("manasim.cli")


def load_deck(path: str) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("cards", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of card records")
    return data


def load_overrides(path: str) -> Dict[str, Dict[str, Any]]:
    """Per-card overrides from a YAML (or JSON) mapping of name -> settings."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping of card name to settings")
    return data


def print_table(results: Results, max_turn: int):
    """
    Print per-turn averages and key-card playability.

    Args:
        results: Finalized results
        max_turn: Number of turns simulated
    """
    print(f"\n{'=' * 70}")
    print(f"RESULTS ({results.hands_kept:,} hands kept, {results.mulligans:,} mulligans)")
    print(f"{'=' * 70}\n")

    header = "Turn     |"
    for turn in range(1, max_turn + 1):
        header += f" {turn:^6} |"
    print(header)
    print("-" * len(header))

    rows = [
        ("Lands", results.lands_per_turn),
        ("Untapped", results.untapped_lands_per_turn),
        ("Mana", results.total_mana_per_turn),
        ("Life", results.life_loss_per_turn),
    ]
    rows += [(color, results.colors_per_turn[color]) for color in COLORS]
    for label, series in rows:
        row = f"{label:<8} |"
        for value in series[:max_turn]:
            row += f" {value:^6.2f} |"
        print(row)

    if results.key_card_playability:
        print(f"\n{'Key card playability (%)':<30}")
        print("-" * len(header))
        for name, series in results.key_card_playability.items():
            burst = results.key_card_playability_burst[name]
            row = f"{name[:8]:<8} |"
            for value in series[:max_turn]:
                row += f" {value:^6.1f} |"
            print(row)
            if results.has_burst_cards and burst != series:
                row = f"{'+burst':<8} |"
                for value in burst[:max_turn]:
                    row += f" {value:^6.1f} |"
                print(row)
            print(f"  on curve: {results.key_card_on_curve[name]:.1f}% (cmc {results.key_card_cmc[name]})")

    if results.flood_rate is not None:
        print(f"\nFlood rate: {results.flood_rate:.1f}%")
    if results.screw_rate is not None:
        print(f"Screw rate: {results.screw_rate:.1f}%")
    print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Monte Carlo deck mana simulation")
    parser.add_argument("deck", help="JSON file of card records")
    parser.add_argument("--overrides", help="YAML file of per-card classification overrides")
    parser.add_argument("--iterations", type=int, help="Number of trials (default 10000)")
    parser.add_argument("--turns", type=int, help="Turns per trial (default 7)")
    parser.add_argument("--hand-size", type=int, help="Opening hand size (default 7)")
    parser.add_argument(
        "--key-card",
        action="append",
        default=[],
        help="Track castability of this card (repeatable)",
    )
    parser.add_argument("--commander", action="store_true", help="Multiplayer commander rules")
    parser.add_argument("--mulligans", action="store_true", help="Enable mulligans")
    parser.add_argument("--mulligan-rule", choices=MULLIGAN_RULES, default="london")
    parser.add_argument("--mulligan-strategy", choices=MULLIGAN_STRATEGIES, default="balanced")
    parser.add_argument("--no-draw-spells", action="store_true", help="Leave draw spells out of the deck")
    parser.add_argument("--no-cost-reducers", action="store_true", help="Leave cost reducers out of the deck")
    parser.add_argument("--seed", type=int, help="Base random seed for reproducible runs")
    parser.add_argument("--workers", type=int, help="Worker processes (default 1)")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--log-level", help="Log level (default MANASIM_LOG_LEVEL or INFO)")
    return parser


def main(argv=None):
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    try:
        config = SimulationConfig.from_env(
            iterations=args.iterations,
            turns=args.turns,
            hand_size=args.hand_size,
            seed=args.seed,
            workers=args.workers,
            commander_mode=args.commander,
            enable_mulligans=args.mulligans,
            mulligan_rule=args.mulligan_rule,
            mulligan_strategy=args.mulligan_strategy,
            selected_key_cards=frozenset(args.key_card),
            include_draw_spells=not args.no_draw_spells,
            include_cost_reducers=not args.no_cost_reducers,
        )
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    overrides = load_overrides(args.overrides) if args.overrides else None
    classifier = CardClassifier(overrides=overrides)
    entries = classifier.classify_deck(load_deck(args.deck))
    logger.info(f"Classified {len(entries)} entries from {Path(args.deck).name}")

    results = run_simulation(entries, config)

    if args.json:
        print(json.dumps(results.summary(), indent=2))
    else:
        print_table(results, config.turns)
    return 0


if __name__ == "__main__":
    sys.exit(main())
