import pytest

from play2048 import cli
from play2048.config import parse_args
from play2048.game import GameRecord
from play2048.solver import SolverConfig


def test_defaults():
    config = parse_args(["ai"])
    assert config["command"] == "ai"
    assert config["solver"] == SolverConfig(min_branch_probability=0.001, proba_4=0.1, max_depth=3)
    assert config["evaluator"] == "heuristic"
    assert config["seed"] is None


def test_solver_options():
    config = parse_args(["--proba-4", "0.2", "--min-branch-proba", "0.01", "--depth", "2",
                         "--distinct-tiles-threshold", "4", "--max-nodes", "1000",
                         "bench", "--games", "5"])
    solver = config["solver"]
    assert solver.proba_4 == 0.2
    assert solver.min_branch_probability == 0.01
    assert solver.max_depth == 2
    assert solver.distinct_tiles_threshold == 4
    assert solver.max_nodes == 1000
    assert config["games"] == 5


@pytest.mark.parametrize("argv", [
    ["--proba-4", "1.5", "ai"],
    ["--proba-4", "-0.1", "ai"],
    ["--min-branch-proba", "0", "ai"],
    ["--min-branch-proba", "2", "ai"],
    ["--depth", "-1", "ai"],
    ["bench", "--games", "0"],
])
def test_out_of_range_values_exit_at_startup(argv, capsys):
    with pytest.raises(SystemExit) as excinfo:
        parse_args(argv)
    assert excinfo.value.code == 2
    assert "must be" in capsys.readouterr().err


def test_ai_command(capsys):
    code = cli.main(["--seed", "1", "--depth", "0", "ai", "--quiet", "--max-moves", "5"])
    assert code == 0
    assert "Game over" in capsys.readouterr().out


def test_ai_command_prints_moves(capsys):
    cli.main(["--seed", "1", "--depth", "0", "ai", "--max-moves", "3"])
    out = capsys.readouterr().out
    assert out.count("Move ") == 3


def test_bench_command(capsys):
    code = cli.main(["--seed", "3", "--depth", "0", "bench", "--games", "2", "--max-moves", "10"])
    assert code == 0
    out = capsys.readouterr().out
    assert "Max tile" in out
    assert "best_seed=" in out


def test_human_command(monkeypatch, capsys):
    keys = iter(["h", "x", "q"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(keys))
    code = cli.main(["--seed", "5", "--depth", "1", "human"])
    assert code == 0
    out = capsys.readouterr().out
    assert "Hint:" in out
    assert "Invalid input" in out
    assert "Quitting game." in out


def test_tile_table():
    records = [GameRecord(score=100, max_tile=64, moves=10),
               GameRecord(score=300, max_tile=128, moves=20)]
    rows = cli.tile_table(records)
    by_tile = {row[0]: row for row in rows}
    assert by_tile["64"][1] == "1/2"
    assert by_tile["64"][3] == "2/2"
    assert by_tile["128"][4] == "50.0%"
    assert rows[-1][0] == "2048"


def test_evaluator_choice():
    assert parse_args(["--evaluator", "combined", "ai"])["evaluator"] == "combined"
