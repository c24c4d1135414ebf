"""
game.py

Game loop around the immutable ``Board``: holds the authoritative board and
score, and spawns tiles from an explicitly injected random source so that a
game is fully reproducible from its seed.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .board import Board, Direction, MoveOutcome
from .errors import InvalidBoardError
from .solver import Solver

logger = logging.getLogger(__name__)

DEFAULT_PROBA_4 = 0.1


def spawn_random_tile(board: Board, rng: random.Random, proba_4: float = DEFAULT_PROBA_4) -> Board:
    """Place a 2 (or a 4 with probability ``proba_4``) on a uniformly chosen empty cell."""
    empties = board.empty_cells()
    if not empties:
        raise InvalidBoardError("Cannot spawn a tile on a full board")
    position = rng.choice(empties)
    exponent = 2 if rng.random() < proba_4 else 1
    return board.spawn(position, exponent)


class Game:
    """A single 2048 game."""

    def __init__(
        self,
        board: Optional[Board] = None,
        proba_4: float = DEFAULT_PROBA_4,
        rng: Optional[random.Random] = None,
        num_initial_tiles: int = 2,
    ):
        self.proba_4 = proba_4
        self.rng = rng or random.Random()
        self.score = 0
        self.moves = 0

        if board is None:
            board = Board()
            for _ in range(num_initial_tiles):
                board = spawn_random_tile(board, self.rng, proba_4)
        self.board = board

    def play(self, direction: Direction) -> Optional[MoveOutcome]:
        """
        Apply a move then spawn a new tile.

        Returns the move outcome (board before the spawn), or None if the move
        does not change the board, in which case the game is left untouched.
        """
        outcome = self.board.apply_move(direction)
        if outcome is None:
            return None
        self.score += outcome.score
        self.moves += 1
        self.board = spawn_random_tile(outcome.board, self.rng, self.proba_4)
        return outcome

    def is_over(self) -> bool:
        return self.board.is_terminal()

    def max_tile(self) -> int:
        return self.board.max_value()


@dataclass
class GameRecord:
    score: int
    max_tile: int
    moves: int
    seed: Optional[int] = None
    directions: List[Direction] = field(default_factory=list)


def play_game(
    solver: Solver,
    rng: random.Random,
    proba_4: float = DEFAULT_PROBA_4,
    max_moves: Optional[int] = None,
    on_move: Optional[Callable[[Game, Direction, MoveOutcome], None]] = None,
    seed: Optional[int] = None,
) -> GameRecord:
    """Let ``solver`` play a whole game (or ``max_moves`` moves) and record it."""
    game = Game(proba_4=proba_4, rng=rng)
    record = GameRecord(score=0, max_tile=game.max_tile(), moves=0, seed=seed)

    while not game.is_over():
        if max_moves is not None and game.moves >= max_moves:
            break
        direction = solver.best_move(game.board)
        outcome = game.play(direction)
        if outcome is None:
            # the solver only returns legal moves
            raise RuntimeError(f"Solver chose illegal move {direction.name} on {game.board!r}")
        record.directions.append(direction)
        if on_move is not None:
            on_move(game, direction, outcome)

    record.score = game.score
    record.max_tile = game.max_tile()
    record.moves = game.moves
    logger.info(f"Game finished. Score: {record.score}, Max Tile: {record.max_tile}, Moves: {record.moves}")
    return record
