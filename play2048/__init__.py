# 2048 engine and expectiminimax move advisor
from .board import Board, Direction, MoveOutcome, RowTables, ROW_TABLES, build_row_tables
from .cache import TranspositionCache
from .errors import Play2048Error, InvalidBoardError, InvalidSquareValueError, NoLegalMovesError, ConfigError
from .evaluators import (
    AlignmentEvaluator,
    BoardEvaluator,
    CombinedEvaluator,
    EmptyTileEvaluator,
    HeuristicEvaluator,
    HeuristicWeights,
    MonotonicityEvaluator,
    get_evaluator,
)
from .game import Game, GameRecord, play_game, spawn_random_tile
from .solver import Solver, SolverConfig, SearchContext, SearchResult, SearchStats, best_move

__all__ = [
    "Board",
    "Direction",
    "MoveOutcome",
    "RowTables",
    "ROW_TABLES",
    "build_row_tables",

    "TranspositionCache",

    "Play2048Error",
    "InvalidBoardError",
    "InvalidSquareValueError",
    "NoLegalMovesError",
    "ConfigError",

    "BoardEvaluator",
    "EmptyTileEvaluator",
    "HeuristicEvaluator",
    "HeuristicWeights",
    "MonotonicityEvaluator",
    "AlignmentEvaluator",
    "CombinedEvaluator",
    "get_evaluator",

    "Game",
    "GameRecord",
    "play_game",
    "spawn_random_tile",

    "Solver",
    "SolverConfig",
    "SearchContext",
    "SearchResult",
    "SearchStats",
    "best_move",
]
