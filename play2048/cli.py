#!/usr/bin/env python3
"""
cli.py

Command-line front end.

  AI game            ->   python -m play2048 ai [--quiet]
  Human game + hints ->   python -m play2048 human
  Benchmark          ->   python -m play2048 --depth 2 bench --games 20

Global options (probabilities, depth, seed...) go before the sub-command.
"""

import logging
import random
import statistics
from collections import Counter
from typing import List, Optional

from tabulate import tabulate
from tqdm import tqdm

from .board import Direction, MoveOutcome
from .config import parse_args
from .errors import NoLegalMovesError
from .evaluators import get_evaluator
from .game import Game, GameRecord, play_game
from .solver import Solver

logger = logging.getLogger(__name__)

ARROWS = {Direction.UP: "↑", Direction.DOWN: "↓", Direction.LEFT: "←", Direction.RIGHT: "→"}
KEYS = {"w": Direction.UP, "s": Direction.DOWN, "a": Direction.LEFT, "d": Direction.RIGHT}


# --------------------------------------------------------------------------- #
# sub-commands
# --------------------------------------------------------------------------- #
def run_ai(solver: Solver, rng: random.Random, proba_4: float, quiet: bool,
           max_moves: Optional[int] = None, seed: Optional[int] = None) -> GameRecord:
    """Play one game with the solver, printing every move unless quiet."""

    def show(game: Game, direction: Direction, outcome: MoveOutcome) -> None:
        print(f"\nMove {ARROWS[direction]}  (+{outcome.score})  total={game.score}")
        print(game.board.render_ascii())

    record = play_game(solver, rng, proba_4, max_moves=max_moves,
                       on_move=None if quiet else show, seed=seed)
    print(f"\nGame over. score = {record.score}  max tile = {record.max_tile}  moves = {record.moves}")
    return record


def run_human(solver: Solver, rng: random.Random, proba_4: float) -> int:
    """Keyboard game: w/a/s/d to move, h for a hint, q to quit."""
    game = Game(proba_4=proba_4, rng=rng)
    while not game.is_over():
        print(f"\nScore: {game.score}")
        print(game.board.render_ascii())
        key = input("Move (w/a/s/d), h for a hint, q to quit: ").strip().lower()

        if key == "q":
            print("Quitting game.")
            return game.score
        if key == "h":
            try:
                direction = solver.best_move(game.board)
            except NoLegalMovesError:
                break
            print(f"Hint: {direction.name} {ARROWS[direction]}")
            continue

        direction = KEYS.get(key)
        if direction is None:
            print("Invalid input. Use w, a, s, d, h or q.")
            continue
        if game.play(direction) is None:
            print("Move did not change the board. Try a different direction.")

    print("\n--- Final Board State ---")
    print(game.board.render_ascii())
    print(f"No more moves possible. Final score: {game.score}")
    return game.score


def tile_table(records: List[GameRecord]) -> List[List[str]]:
    """Rows of (tile, count, %, reached at least, %) for the max tiles of ``records``."""
    games = len(records)
    results = Counter(r.max_tile for r in records)
    top = max(results) if results else 0
    rows = []
    for i in range(1, 16):
        tile_value = 1 << i
        if tile_value > top and i > 11:
            break
        count = results[tile_value]
        at_least = sum(n for tile, n in results.items() if tile >= tile_value)
        rows.append([
            f"{tile_value}",
            f"{count}/{games}",
            f"{count / games * 100:.1f}%",
            f"{at_least}/{games}",
            f"{at_least / games * 100:.1f}%",
        ])
    return rows


def run_bench(solver: Solver, rng: random.Random, proba_4: float, games: int,
              max_moves: Optional[int] = None) -> List[GameRecord]:
    """Play ``games`` silent games and print score and max-tile statistics."""
    records = []
    for _ in tqdm(range(games), desc="Games"):
        seed = rng.randrange(2**32)
        records.append(play_game(solver, random.Random(seed), proba_4, max_moves=max_moves, seed=seed))

    scores = [r.score for r in records]
    best = max(records, key=lambda r: r.score)
    print(f"\nResults for {games} games at depth {solver.config.max_depth}:")
    print(f"mean={statistics.mean(scores):.1f}  min={min(scores)}  max={max(scores)}  "
          f"best_seed={best.seed}")
    print(f"Average moves: {statistics.mean(r.moves for r in records):.1f}")
    print(tabulate(tile_table(records),
                   headers=["Max tile", "Count", "%", "At least", "%"],
                   tablefmt="simple"))
    return records


# --------------------------------------------------------------------------- #
# entry point
# --------------------------------------------------------------------------- #
def main(argv: Optional[List[str]] = None) -> int:
    config = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, config["log_level"]),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(f"Starting {config['command']} with {config['solver']}")

    solver = Solver(config["solver"], get_evaluator(config["evaluator"]))
    rng = random.Random(config["seed"])

    if config["command"] == "ai":
        run_ai(solver, rng, config["proba_4"], config["quiet"],
               max_moves=config["max_moves"], seed=config["seed"])
    elif config["command"] == "human":
        run_human(solver, rng, config["proba_4"])
    elif config["command"] == "bench":
        run_bench(solver, rng, config["proba_4"], config["games"], max_moves=config["max_moves"])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
