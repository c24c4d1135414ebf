import random

import pytest

from play2048.board import Board, CELLS


def make_random_board(rng: random.Random, max_exponent: int = 11, empty_ratio: float = 0.4) -> Board:
    """Random board with exponents in [1, max_exponent] and roughly ``empty_ratio`` empty cells."""
    return Board.from_exponents(
        0 if rng.random() < empty_ratio else rng.randint(1, max_exponent)
        for _ in range(CELLS)
    )


@pytest.fixture
def random_boards():
    rng = random.Random(2048)
    return [make_random_board(rng) for _ in range(200)]
