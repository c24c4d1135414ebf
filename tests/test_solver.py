import threading

import pytest

from play2048.board import Board, Direction, execute_move
from play2048.errors import ConfigError, NoLegalMovesError
from play2048.evaluators import EmptyTileEvaluator, HeuristicEvaluator
from play2048.solver import Solver, SolverConfig, best_move

TERMINAL = Board.from_values([
    2, 4, 2, 4,
    4, 2, 4, 2,
    2, 4, 2, 4,
    4, 2, 4, 2,
])

MIDGAME = Board.from_values([
    4, 4, 0, 4,
    16, 0, 0, 2,
    0, 8, 0, 16,
    0, 8, 0, 16,
])


def greedy_move(board: Board, evaluator) -> Direction:
    best, best_score = None, None
    for d in board.legal_moves():
        score = evaluator.score(board.apply_move(d).board)
        if best_score is None or score > best_score:
            best, best_score = d, score
    return best


def test_terminal_board_raises():
    solver = Solver(SolverConfig(max_depth=1))
    with pytest.raises(NoLegalMovesError):
        solver.best_move(TERMINAL)


def test_best_move_is_legal(random_boards):
    solver = Solver(SolverConfig(max_depth=1))
    for board in random_boards[:40]:
        if board.is_terminal():
            continue
        assert solver.best_move(board) in board.legal_moves()


def test_maximal_pruning_is_one_ply_greedy(random_boards):
    evaluator = HeuristicEvaluator()
    solver = Solver(SolverConfig(min_branch_probability=1.0, max_depth=3), evaluator)
    for board in random_boards:
        if board.is_terminal():
            continue
        result = solver.analyze(board)
        assert result.direction == greedy_move(board, evaluator)
        for d, score in result.move_scores.items():
            assert score == evaluator.score(board.apply_move(d).board)


def test_depth_zero_is_one_ply_greedy(random_boards):
    evaluator = HeuristicEvaluator()
    solver = Solver(SolverConfig(max_depth=0), evaluator)
    for board in random_boards[:50]:
        if board.is_terminal():
            continue
        assert solver.best_move(board) == greedy_move(board, evaluator)


def test_ties_go_to_canonical_order():
    board = Board.from_values([[2, 2, 2, 2], [0] * 4, [0] * 4, [0] * 4])
    solver = Solver(SolverConfig(min_branch_probability=1.0), EmptyTileEvaluator())
    result = solver.analyze(board)
    assert set(result.move_scores) == {Direction.DOWN, Direction.LEFT, Direction.RIGHT}
    assert result.move_scores[Direction.LEFT] == result.move_scores[Direction.RIGHT]
    assert result.direction == Direction.LEFT


def test_move_scores_cover_legal_moves():
    solver = Solver(SolverConfig(max_depth=2))
    result = solver.analyze(MIDGAME)
    assert sorted(result.move_scores) == MIDGAME.legal_moves()
    assert result.score == max(result.move_scores.values())
    assert result.stats.nodes > 0
    assert result.stats.evaluations > 0


def test_cache_is_consistent_within_a_search():
    solver = Solver(SolverConfig(max_depth=2))
    result = solver.analyze(MIDGAME)
    child, _ = execute_move(MIDGAME.state, result.direction)

    cache = solver.last_chance_cache
    first = cache.get(child, result.stats.depth)
    second = cache.get(child, result.stats.depth)
    assert first is not None
    assert first == second == result.score
    assert result.stats.max_cache_hits + result.stats.chance_cache_hits > 0


def test_caches_are_fresh_per_search():
    solver = Solver(SolverConfig(max_depth=1))
    solver.analyze(MIDGAME)
    first_cache = solver.last_chance_cache
    solver.analyze(MIDGAME)
    assert solver.last_chance_cache is not first_cache


def test_bounded_cache_gives_same_scores():
    unbounded = Solver(SolverConfig(max_depth=2)).analyze(MIDGAME)
    bounded = Solver(SolverConfig(max_depth=2, cache_size=1)).analyze(MIDGAME)
    assert bounded.direction == unbounded.direction
    for d, score in unbounded.move_scores.items():
        assert bounded.move_scores[d] == pytest.approx(score)


def test_search_is_deterministic():
    first = Solver(SolverConfig(max_depth=2)).analyze(MIDGAME)
    second = Solver(SolverConfig(max_depth=2)).analyze(MIDGAME)
    assert first.direction == second.direction
    assert first.move_scores == second.move_scores


def test_low_probability_branches_are_pruned():
    board = Board.from_values([[2, 4, 0, 0], [0] * 4, [0] * 4, [0] * 4])
    solver = Solver(SolverConfig(min_branch_probability=0.05, max_depth=1))
    result = solver.analyze(board)
    assert result.stats.pruned_branches > 0

    solver = Solver(SolverConfig(min_branch_probability=0.001, max_depth=1))
    assert solver.analyze(board).stats.pruned_branches == 0


def test_node_budget_degrades_to_static_evaluation():
    solver = Solver(SolverConfig(max_depth=2, max_nodes=5))
    result = solver.analyze(MIDGAME)
    assert result.stats.budget_cutoffs > 0
    assert result.direction in MIDGAME.legal_moves()


def test_distinct_tiles_extend_depth():
    board = Board.from_values([[2, 4, 8, 0], [0] * 4, [0] * 4, [0] * 4])
    solver = Solver(SolverConfig(max_depth=1, distinct_tiles_threshold=1))
    assert solver.effective_depth(board) == 3
    solver = Solver(SolverConfig(max_depth=1, distinct_tiles_threshold=5))
    assert solver.effective_depth(board) == 1
    assert solver.analyze(board).stats.depth == 1


def test_best_move_helper():
    board = Board.from_values([[2, 2, 2, 2], [0] * 4, [0] * 4, [0] * 4])
    config = SolverConfig(min_branch_probability=1.0)
    assert best_move(board, config, EmptyTileEvaluator()) == Direction.LEFT


@pytest.mark.parametrize("kwargs", [
    dict(proba_4=-0.1),
    dict(proba_4=1.5),
    dict(min_branch_probability=0.0),
    dict(min_branch_probability=1.1),
    dict(max_depth=-1),
    dict(distinct_tiles_threshold=-1),
    dict(max_nodes=0),
    dict(cache_size=0),
])
def test_config_validation(kwargs):
    with pytest.raises(ConfigError):
        SolverConfig(**kwargs).validate()


def test_default_config_is_valid():
    config = SolverConfig().validate()
    assert config.proba_4 == 0.1
    assert config.min_branch_probability == 0.001


def test_terminal_max_node_is_static_evaluation():
    evaluator = HeuristicEvaluator()
    solver = Solver(SolverConfig(max_depth=2), evaluator)
    ctx = solver.new_search(2)
    score = solver.search_max(TERMINAL.state, 2, ctx)
    assert score == evaluator.score(TERMINAL)
    assert ctx.max_cache.get(TERMINAL.state, 2) == score
    assert ctx.stats.evaluations == 1


def test_spawn_into_terminal_board():
    # the only empty cell can only receive a 2, which leaves no legal move
    almost = Board.from_values([
        0, 4, 2, 4,
        4, 2, 4, 2,
        2, 4, 2, 4,
        4, 2, 4, 2,
    ])
    evaluator = HeuristicEvaluator()
    solver = Solver(SolverConfig(max_depth=1, proba_4=0.0), evaluator)
    ctx = solver.new_search(1)
    assert solver.search_chance(almost.state, 1, ctx) == evaluator.score(TERMINAL)
    assert ctx.max_cache.get(TERMINAL.state, 0) == evaluator.score(TERMINAL)


def test_concurrent_searches_on_shared_solver():
    config = SolverConfig(max_depth=2, max_nodes=3000)
    other = Board.from_values([
        2, 0, 0, 2,
        0, 4, 0, 0,
        8, 0, 16, 0,
        0, 0, 2, 32,
    ])
    boards = [MIDGAME, other] * 2
    expected = [Solver(config).analyze(board) for board in boards]

    shared = Solver(config)
    results = [None] * len(boards)
    barrier = threading.Barrier(len(boards))

    def run(i):
        barrier.wait()
        results[i] = shared.analyze(boards[i])

    threads = [threading.Thread(target=run, args=(i,)) for i in range(len(boards))]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for result, solo in zip(results, expected):
        assert result.direction == solo.direction
        assert result.move_scores == solo.move_scores
        assert result.stats.nodes == solo.stats.nodes
    assert len({id(result.stats) for result in results}) == len(results)
