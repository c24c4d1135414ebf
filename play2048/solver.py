"""
solver.py

Expectiminimax move advisor.

The player picks a direction (max node), then the game spawns a 2 or a 4 on a
uniformly chosen empty cell (chance node). Chance branches whose probability
``value_probability / empty_cells`` is below ``min_branch_probability`` are
dropped without renormalizing, so chance scores are approximations of the true
expectation. Both node kinds are memoized per search in a
``TranspositionCache`` keyed by (board, remaining depth).

Depth decreases by one per max/chance pair, so the recursion never goes past
``2 * depth + 2`` Python frames.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional, Tuple

from .board import DIRECTIONS, ROW_TABLES, Board, Direction, RowTables, empty_indices, execute_move, set_exponent
from .cache import TranspositionCache
from .errors import ConfigError, NoLegalMovesError
from .evaluators import BoardEvaluator, HeuristicEvaluator

logger = logging.getLogger(__name__)


@dataclass
class SolverConfig:
    """Search parameters.

    Args:
        min_branch_probability: chance branches less likely than this are skipped
        proba_4: probability that a spawned tile is a 4
        max_depth: number of max/chance levels below the root
        distinct_tiles_threshold: if set, search one level deeper for every
            distinct tile value above this threshold
        max_nodes: if set, nodes past this count return the static evaluation
        cache_size: if set, cap on the entries of each transposition cache
    """
    min_branch_probability: float = 0.001
    proba_4: float = 0.1
    max_depth: int = 3
    distinct_tiles_threshold: Optional[int] = None
    max_nodes: Optional[int] = None
    cache_size: Optional[int] = None

    def validate(self) -> "SolverConfig":
        if not 0.0 <= self.proba_4 <= 1.0:
            raise ConfigError(f"proba_4 must be in [0, 1], got {self.proba_4}")
        if not 0.0 < self.min_branch_probability <= 1.0:
            raise ConfigError(
                f"min_branch_probability must be in (0, 1], got {self.min_branch_probability}"
            )
        if self.max_depth < 0:
            raise ConfigError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.distinct_tiles_threshold is not None and self.distinct_tiles_threshold < 0:
            raise ConfigError(
                f"distinct_tiles_threshold must be non-negative, got {self.distinct_tiles_threshold}"
            )
        if self.max_nodes is not None and self.max_nodes <= 0:
            raise ConfigError(f"max_nodes must be positive, got {self.max_nodes}")
        if self.cache_size is not None and self.cache_size <= 0:
            raise ConfigError(f"cache_size must be positive, got {self.cache_size}")
        return self


@dataclass
class SearchStats:
    depth: int = 0
    nodes: int = 0
    evaluations: int = 0
    pruned_branches: int = 0
    budget_cutoffs: int = 0
    max_cache_hits: int = 0
    chance_cache_hits: int = 0
    elapsed: float = 0.0


class SearchResult(NamedTuple):
    direction: Direction
    score: float
    move_scores: Dict[Direction, float]
    stats: SearchStats


class SearchContext:
    """Mutable state of one search: its two caches and its counters.

    Each ``Solver.analyze`` call builds its own context, so concurrent searches
    on a shared ``Solver`` never see each other's cache entries or node budget.
    """

    def __init__(self, config: SolverConfig, depth: int = 0):
        self.max_cache = TranspositionCache(config.cache_size)
        self.chance_cache = TranspositionCache(config.cache_size)
        self.stats = SearchStats(depth=depth)
        self.spawns: Tuple[Tuple[int, float], ...] = ((1, 1.0 - config.proba_4), (2, config.proba_4))


class Solver:
    """Expectiminimax search driver.

    The solver never mutates game state; callers apply the returned direction
    with ``Board.apply_move``.
    """

    def __init__(
        self,
        config: Optional[SolverConfig] = None,
        evaluator: Optional[BoardEvaluator] = None,
        tables: RowTables = ROW_TABLES,
    ):
        self.config = config or SolverConfig()
        self.evaluator = evaluator or HeuristicEvaluator()
        self.tables = tables

        self.last_stats: Optional[SearchStats] = None
        self.last_max_cache: Optional[TranspositionCache] = None
        self.last_chance_cache: Optional[TranspositionCache] = None

    def effective_depth(self, board: Board) -> int:
        depth = self.config.max_depth
        threshold = self.config.distinct_tiles_threshold
        if threshold is not None:
            depth += max(0, board.distinct_tiles() - threshold)
        return depth

    def new_search(self, depth: int = 0) -> SearchContext:
        return SearchContext(self.config, depth)

    def best_move(self, board: Board) -> Direction:
        """Return the direction with the best expectiminimax score.

        Raises:
            NoLegalMovesError: if the board is terminal
        """
        return self.analyze(board).direction

    def analyze(self, board: Board) -> SearchResult:
        """Run one search from ``board`` and return the move, its score and stats."""
        board = board if isinstance(board, Board) else Board(board)
        state = board.state
        depth = self.effective_depth(board)
        ctx = self.new_search(depth)

        start = time.perf_counter()
        best_direction: Optional[Direction] = None
        best_score = -math.inf
        move_scores: Dict[Direction, float] = {}
        for direction in DIRECTIONS:
            child, _ = execute_move(state, direction, self.tables)
            if child == state:
                continue
            score = self.search_chance(child, depth, ctx)
            move_scores[direction] = score
            # strict comparison keeps the first direction in canonical order on ties
            if score > best_score:
                best_direction, best_score = direction, score

        stats = ctx.stats
        stats.elapsed = time.perf_counter() - start
        stats.max_cache_hits = ctx.max_cache.hits
        stats.chance_cache_hits = ctx.chance_cache.hits
        self.last_stats = stats
        self.last_max_cache = ctx.max_cache
        self.last_chance_cache = ctx.chance_cache

        if best_direction is None:
            raise NoLegalMovesError(f"No legal move on board {board!r}")

        logger.debug(
            f"Search depth={depth} move={best_direction.name} score={best_score:.3f} "
            f"nodes={stats.nodes} evals={stats.evaluations} pruned={stats.pruned_branches} "
            f"cache_hits={stats.max_cache_hits + stats.chance_cache_hits} "
            f"elapsed={stats.elapsed * 1000:.1f}ms"
        )
        return SearchResult(best_direction, best_score, move_scores, stats)

    # ------------------------------------------------------------------ #
    #                         SEARCH NODES                               #
    # ------------------------------------------------------------------ #
    def search_max(self, state: int, depth: int, ctx: Optional[SearchContext] = None) -> float:
        """Player node: best chance score over the legal moves of ``state``.

        Without ``ctx`` the node is searched with a fresh context of its own.
        """
        if ctx is None:
            ctx = self.new_search(depth)
        cached = ctx.max_cache.get(state, depth)
        if cached is not None:
            return cached
        ctx.stats.nodes += 1
        if self._out_of_budget(ctx):
            return self._evaluate(state, ctx)

        best = -math.inf
        for direction in DIRECTIONS:
            child, _ = execute_move(state, direction, self.tables)
            if child == state:
                continue
            score = self.search_chance(child, depth, ctx)
            if score > best:
                best = score

        if best == -math.inf:
            # game over
            best = self._evaluate(state, ctx)
        ctx.max_cache.put(state, depth, best)
        return best

    def search_chance(self, state: int, depth: int, ctx: Optional[SearchContext] = None) -> float:
        """Spawn node: probability-weighted sum over the unpruned spawns."""
        if ctx is None:
            ctx = self.new_search(depth)
        cached = ctx.chance_cache.get(state, depth)
        if cached is not None:
            return cached
        ctx.stats.nodes += 1
        if self._out_of_budget(ctx):
            return self._evaluate(state, ctx)

        empties = empty_indices(state)
        if depth == 0 or not empties:
            score = self._evaluate(state, ctx)
            ctx.chance_cache.put(state, depth, score)
            return score

        min_proba = self.config.min_branch_probability
        n = len(empties)
        total = 0.0
        explored = False
        for exponent, value_proba in ctx.spawns:
            branch_proba = value_proba / n
            if branch_proba < min_proba:
                ctx.stats.pruned_branches += n
                continue
            explored = True
            for k in empties:
                total += branch_proba * self.search_max(set_exponent(state, k, exponent), depth - 1, ctx)

        if not explored:
            total = self._evaluate(state, ctx)
        ctx.chance_cache.put(state, depth, total)
        return total

    def _evaluate(self, state: int, ctx: SearchContext) -> float:
        ctx.stats.evaluations += 1
        return self.evaluator.score(state)

    def _out_of_budget(self, ctx: SearchContext) -> bool:
        """Past the node budget nodes degrade to a static evaluation and stay uncached."""
        max_nodes = self.config.max_nodes
        if max_nodes is None or ctx.stats.nodes <= max_nodes:
            return False
        ctx.stats.budget_cutoffs += 1
        return True


def best_move(
    board: Board,
    config: Optional[SolverConfig] = None,
    evaluator: Optional[BoardEvaluator] = None,
) -> Direction:
    """One-shot helper: build a solver and return its recommended direction."""
    return Solver(config, evaluator).best_move(board)
