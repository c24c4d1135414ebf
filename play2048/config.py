"""
config.py

Command-line configuration: argparse options for the game, the solver and
logging, validated once at startup and returned as a plain dict.
"""

import argparse
from typing import Any, Dict, List, Optional

from .errors import ConfigError
from .evaluators import EVALUATORS
from .solver import SolverConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="play2048",
        description="2048 in the terminal with an expectiminimax move advisor",
    )

    # Game settings
    parser.add_argument("--proba-4", type=float, default=0.1,
                        help="Probability that a spawned tile is a 4")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for tile spawning")

    # Solver settings
    parser.add_argument("--min-branch-proba", type=float, default=0.001,
                        help="Chance branches less likely than this are pruned")
    parser.add_argument("--depth", type=int, default=3, help="Expectiminimax search depth")
    parser.add_argument("--distinct-tiles-threshold", type=int, default=None,
                        help="Search one level deeper per distinct tile above this count")
    parser.add_argument("--max-nodes", type=int, default=None,
                        help="Node budget per search (static evaluation past it)")
    parser.add_argument("--cache-size", type=int, default=None,
                        help="Maximum entries per transposition cache")
    parser.add_argument("--evaluator", type=str, default="heuristic", choices=EVALUATORS,
                        help="Static board evaluator used at the search cutoff")

    # Other settings
    parser.add_argument("--log-level", type=str, default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_ai = sub.add_parser("ai", help="Let the solver play one game")
    p_ai.add_argument("--quiet", action="store_true", help="Only print the final result")
    p_ai.add_argument("--max-moves", type=int, default=None, help="Stop after this many moves")

    sub.add_parser("human", help="Play with the keyboard, ask the solver for hints")

    p_bench = sub.add_parser("bench", help="Play many games and report statistics")
    p_bench.add_argument("--games", type=int, default=10, help="Number of games")
    p_bench.add_argument("--max-moves", type=int, default=None, help="Move cap per game")
    return parser


def solver_config_from_args(args: argparse.Namespace) -> SolverConfig:
    """Build and validate the solver configuration.

    Raises:
        ConfigError: if a value is out of range
    """
    return SolverConfig(
        min_branch_probability=args.min_branch_proba,
        proba_4=args.proba_4,
        max_depth=args.depth,
        distinct_tiles_threshold=args.distinct_tiles_threshold,
        max_nodes=args.max_nodes,
        cache_size=args.cache_size,
    ).validate()


def parse_args(argv: Optional[List[str]] = None) -> Dict[str, Any]:
    """Parse and validate the command line. Invalid values exit with status 2."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        solver_config = solver_config_from_args(args)
        games = getattr(args, "games", 1)
        if games <= 0:
            raise ConfigError(f"games must be positive, got {games}")
        max_moves = getattr(args, "max_moves", None)
        if max_moves is not None and max_moves <= 0:
            raise ConfigError(f"max_moves must be positive, got {max_moves}")
    except ConfigError as e:
        parser.error(str(e))

    config = {
        "command": args.cmd,
        "solver": solver_config,
        "evaluator": args.evaluator,
        "proba_4": args.proba_4,
        "seed": args.seed,
        "log_level": args.log_level,
        "games": games,
        "max_moves": max_moves,
        "quiet": getattr(args, "quiet", False),
    }
    return config
