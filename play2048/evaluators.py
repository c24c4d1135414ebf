"""Static board evaluators used at the search cutoff."""

from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Tuple, Union

import numpy as np

from .board import Board, CELLS, LINE_COUNT, LINE_MASK, SIZE, count_empty, max_exponent, transpose
from .errors import ConfigError

BoardLike = Union[Board, int]

CORNERS = (0, SIZE - 1, CELLS - SIZE, CELLS - 1)
SHIFTS = (0, 16, 32, 48)


@lru_cache(maxsize=None)
def line_cells() -> np.ndarray:
    """Exponents of every 16-bit line, shape (65536, 4)."""
    lines = np.arange(LINE_COUNT, dtype=np.int64)
    return np.stack([(lines >> (4 * i)) & 0xF for i in range(SIZE)], axis=1)


@lru_cache(maxsize=None)
def _line_mergeable() -> Tuple[bool, ...]:
    cells = line_cells()
    a, b = cells[:, :-1], cells[:, 1:]
    return tuple(((a == b) & (a != 0)).any(axis=1).tolist())


def is_game_over(state: int) -> bool:
    """True when the board is full and no two neighbours are equal."""
    if count_empty(state):
        return False
    mergeable = _line_mergeable()
    t = transpose(state)
    return not any(mergeable[(state >> s) & LINE_MASK] or mergeable[(t >> s) & LINE_MASK] for s in SHIFTS)


def _monotonicity_penalty(cells: np.ndarray, power: float) -> np.ndarray:
    a = cells[:, :-1].astype(np.float64) ** power
    b = cells[:, 1:].astype(np.float64) ** power
    mono_left = np.where(a > b, a - b, 0.0).sum(axis=1)
    mono_right = np.where(a < b, b - a, 0.0).sum(axis=1)
    return np.minimum(mono_left, mono_right)


class BoardEvaluator:
    """Base class for board evaluators. The higher the score, the better the board."""

    def __init__(self, name: str):
        self.name = name

    def score(self, board: BoardLike) -> float:
        """Evaluate a board. Must be pure: same board, same score."""
        raise NotImplementedError("Board evaluator must be implemented")

    def __call__(self, board: BoardLike) -> float:
        return self.score(board)

    def __str__(self) -> str:
        return f"BoardEvaluator({self.name})"


class EmptyTileEvaluator(BoardEvaluator):
    """Proportion of empty tiles on the board, raised to ``power``."""

    def __init__(self, power: int = 1, gameover_penalty: float = 0.0):
        super().__init__("empty")
        self.power = power
        self.gameover_penalty = gameover_penalty

    def score(self, board: BoardLike) -> float:
        state = int(board)
        total = (count_empty(state) / CELLS) ** self.power
        if self.gameover_penalty and is_game_over(state):
            total += self.gameover_penalty
        return total


class LineTableEvaluator(BoardEvaluator):
    """
    Evaluator that sums a per-line value over the 4 rows and the 4 columns.

    Subclasses implement ``line_values`` on the (65536, 4) array of exponents
    of every line; it is tabulated once per instance, so a board is scored with
    8 lookups. Boards with no legal move also receive ``gameover_penalty``.
    """

    def __init__(self, name: str, gameover_penalty: float = 0.0):
        super().__init__(name)
        self.gameover_penalty = gameover_penalty
        values = np.asarray(self.line_values(line_cells()), dtype=np.float64)
        self._table = tuple(values.tolist())

    def line_values(self, cells: np.ndarray) -> np.ndarray:
        raise NotImplementedError("Line evaluator must implement line_values")

    def score(self, board: BoardLike) -> float:
        state = int(board)
        t = transpose(state)
        table = self._table
        total = 0.0
        for shift in SHIFTS:
            total += table[(state >> shift) & LINE_MASK] + table[(t >> shift) & LINE_MASK]
        if self.gameover_penalty and is_game_over(state):
            total += self.gameover_penalty
        return total


class MonotonicityEvaluator(LineTableEvaluator):
    """Penalizes lines whose exponents go up and down instead of one way."""

    def __init__(self, power: float = 2.0, gameover_penalty: float = 0.0):
        self.power = power
        super().__init__("monotonicity", gameover_penalty)

    def line_values(self, cells: np.ndarray) -> np.ndarray:
        return -_monotonicity_penalty(cells, self.power)


class AlignmentEvaluator(LineTableEvaluator):
    """Rewards equal tiles sitting next to each other, weighted by exponent ** power."""

    def __init__(self, power: float = 2.0, gameover_penalty: float = 0.0):
        self.power = power
        super().__init__("alignment", gameover_penalty)

    def line_values(self, cells: np.ndarray) -> np.ndarray:
        a, b = cells[:, :-1], cells[:, 1:]
        pairs = (a == b) & (a != 0)
        return np.where(pairs, a.astype(np.float64) ** self.power, 0.0).sum(axis=1)


class CombinedEvaluator(BoardEvaluator):
    """Weighted sum of other evaluators.

    >>> evaluator = CombinedEvaluator().add(EmptyTileEvaluator(), 2.0).add(AlignmentEvaluator())
    """

    def __init__(self):
        super().__init__("combined")
        self.parts: List[Tuple[BoardEvaluator, float]] = []

    def add(self, evaluator: BoardEvaluator, weight: float = 1.0) -> "CombinedEvaluator":
        self.parts.append((evaluator, weight))
        return self

    def score(self, board: BoardLike) -> float:
        state = int(board)
        return sum(weight * evaluator.score(state) for evaluator, weight in self.parts)


@dataclass(frozen=True)
class HeuristicWeights:
    """Tunable weights of ``HeuristicEvaluator``.

    Monotonicity and smoothness are penalties and are subtracted; the
    game-over penalty is added as is and should be negative.
    """
    empty_weight: float = 2.7
    merge_weight: float = 1.0
    monotonicity_weight: float = 0.47
    monotonicity_power: float = 4.0
    smoothness_weight: float = 0.1
    corner_weight: float = 1.0
    gameover_penalty: float = -2000.0


class HeuristicEvaluator(BoardEvaluator):
    """
    Weighted sum of empty cells, merge potential, monotonicity, smoothness and
    a max-tile-in-corner bonus.

    Everything but the corner bonus decomposes over lines, so the per-line
    terms are precomputed for all 65536 lines when the evaluator is built and
    a board is scored with 4 row and 4 column lookups. A board with no empty
    cell and no equal neighbour cannot move; it receives ``gameover_penalty``.
    """

    def __init__(self, weights: Optional[HeuristicWeights] = None):
        super().__init__("heuristic")
        self.weights = weights or HeuristicWeights()
        self._line_score, self._line_empty, self._line_merges = self._build_tables(self.weights)

    @staticmethod
    def _build_tables(w: HeuristicWeights):
        cells = line_cells()

        empty = (cells == 0).sum(axis=1)
        a, b = cells[:, :-1], cells[:, 1:]
        merges = ((a == b) & (a != 0)).sum(axis=1)
        smooth = np.where((a != 0) & (b != 0), np.abs(a - b), 0).sum(axis=1)
        mono = _monotonicity_penalty(cells, w.monotonicity_power)

        line_score = (w.empty_weight * empty
                      + w.merge_weight * merges
                      - w.smoothness_weight * smooth
                      - w.monotonicity_weight * mono)
        return tuple(line_score.tolist()), tuple(empty.tolist()), tuple(merges.tolist())

    def score(self, board: BoardLike) -> float:
        state = int(board)
        t = transpose(state)
        line_score = self._line_score
        line_merges = self._line_merges

        total = 0.0
        empty = 0
        merges = 0
        for shift in SHIFTS:
            row = (state >> shift) & LINE_MASK
            col = (t >> shift) & LINE_MASK
            total += line_score[row] + line_score[col]
            empty += self._line_empty[row]
            merges += line_merges[row] + line_merges[col]

        top = max_exponent(state)
        if top and any((state >> (4 * k)) & 0xF == top for k in CORNERS):
            total += self.weights.corner_weight * top

        if empty == 0 and merges == 0:
            total += self.weights.gameover_penalty
        return total


def combined_evaluator() -> CombinedEvaluator:
    """Monotonicity, squared emptiness and alignment, each with power 2."""
    return (CombinedEvaluator()
            .add(MonotonicityEvaluator(power=2, gameover_penalty=-300.0))
            .add(EmptyTileEvaluator(power=2))
            .add(AlignmentEvaluator(power=2)))


EVALUATORS = ("heuristic", "empty", "monotonicity", "alignment", "combined")


def get_evaluator(name: str, weights: Optional[HeuristicWeights] = None) -> BoardEvaluator:
    """Get an evaluator by name"""
    if name == "heuristic":
        return HeuristicEvaluator(weights)
    elif name == "empty":
        return EmptyTileEvaluator()
    elif name == "monotonicity":
        return MonotonicityEvaluator()
    elif name == "alignment":
        return AlignmentEvaluator()
    elif name == "combined":
        return combined_evaluator()
    raise ConfigError(f"Unknown evaluator: {name}")
