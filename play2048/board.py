"""
board.py

64-bit nibble board for 2048 and its transition functions.

A board is a single int: 16 cells x 4 bits, row-major, cell ``k = 4*row + col``
at bits ``4k .. 4k+3`` (top-left cell in the least-significant nibble). A
nibble holds the tile exponent, 0 being an empty cell, so values go from 2 to
2^15 = 32768.

Moves are table driven: every 16-bit line is transformed once at import time
by ``build_row_tables`` and a full-board move is then 4 table lookups.
"""

from enum import IntEnum
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .errors import InvalidBoardError, InvalidSquareValueError

SIZE = 4
CELLS = SIZE * SIZE
MAX_EXPONENT = 15
MAX_TILE = 1 << MAX_EXPONENT

LINE_MASK = 0xFFFF
FULL_MASK = 0xFFFFFFFFFFFFFFFF
LINE_COUNT = 1 << 16


class Direction(IntEnum):
    """Move directions, declared in the canonical order used for tie-breaking."""
    UP = 0
    DOWN = 1
    LEFT = 2
    RIGHT = 3


DIRECTIONS: Tuple[Direction, ...] = (Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT)


# --------------------------------------------------------------------------- #
#                             LINE HELPERS                                    #
# --------------------------------------------------------------------------- #
def unpack_line(line16: int) -> List[int]:
    """16-bit line -> [e0, e1, e2, e3] exponents (0 = empty)."""
    return [(line16 >> (4 * i)) & 0xF for i in range(SIZE)]


def pack_line(cells: Iterable[int]) -> int:
    """[e0..e3] -> 16-bit line."""
    line = 0
    for i, e in enumerate(cells):
        line |= (e & 0xF) << (4 * i)
    return line


def reverse_line(line16: int) -> int:
    """abcd (LSB->MSB)  =>  dcba."""
    return ((line16 & 0xF)      << 12 |
            (line16 & 0xF0)     << 4  |
            (line16 & 0xF00)    >> 4  |
            (line16 & 0xF000)   >> 12)


def merge_line(cells: Sequence[int]) -> Tuple[List[int], int]:
    """
    Slide and merge a line of 4 exponents toward index 0.

    Equal neighbours merge once, scanning from index 0, and a merged tile never
    merges again in the same pass. Two 2^15 tiles saturate at exponent 15; the
    score still credits the 2^16 the merge created.

    Returns (new_cells, score_gain).
    """
    tight = [e for e in cells if e]
    merged: List[int] = []
    score = 0
    i = 0
    while i < len(tight):
        if i + 1 < len(tight) and tight[i] == tight[i + 1]:
            exponent = tight[i] + 1
            score += 1 << exponent
            merged.append(min(exponent, MAX_EXPONENT))
            i += 2
        else:
            merged.append(tight[i])
            i += 1
    merged += [0] * (SIZE - len(merged))
    return merged, score


# --------------------------------------------------------------------------- #
#                             ROW TRANSFORM TABLES                            #
# --------------------------------------------------------------------------- #
class RowTables(NamedTuple):
    """Per-direction lookup tables, indexed by ``Direction`` then by line."""
    lines: Tuple[Tuple[int, ...], ...]
    scores: Tuple[Tuple[int, ...], ...]


def build_row_tables() -> RowTables:
    """Transform all 65536 lines once for the four directions."""
    to_start = [0] * LINE_COUNT
    to_end = [0] * LINE_COUNT
    scores = [0] * LINE_COUNT
    for line in range(LINE_COUNT):
        cells, score = merge_line(unpack_line(line))
        to_start[line] = pack_line(cells)
        scores[line] = score

    for line in range(LINE_COUNT):
        to_end[line] = reverse_line(to_start[reverse_line(line)])

    to_start_t = tuple(to_start)
    to_end_t = tuple(to_end)
    score_t = tuple(scores)
    score_rev_t = tuple(score_t[reverse_line(line)] for line in range(LINE_COUNT))

    # Up/Left slide toward index 0 of the line, Down/Right toward index 3.
    lines = {
        Direction.UP: to_start_t,
        Direction.DOWN: to_end_t,
        Direction.LEFT: to_start_t,
        Direction.RIGHT: to_end_t,
    }
    gains = {
        Direction.UP: score_t,
        Direction.DOWN: score_rev_t,
        Direction.LEFT: score_t,
        Direction.RIGHT: score_rev_t,
    }
    return RowTables(
        lines=tuple(lines[d] for d in DIRECTIONS),
        scores=tuple(gains[d] for d in DIRECTIONS),
    )


ROW_TABLES: RowTables = build_row_tables()


# --------------------------------------------------------------------------- #
#                             BOARD-LEVEL HELPERS                             #
# --------------------------------------------------------------------------- #
def transpose(state: int) -> int:
    """Swap rows <-> columns (Hacker's Delight section 7-1)."""
    a1 = state & 0xF0F00F0FF0F00F0F
    a2 = state & 0x0000F0F00000F0F0
    a3 = state & 0x0F0F00000F0F0000
    a = a1 | (a2 << 12) | (a3 >> 12)
    b1 = a & 0xFF00FF0000FF00FF
    b2 = a & 0x00FF00FF00000000
    b3 = a & 0x00000000FF00FF00
    return b1 | (b2 >> 24) | (b3 << 24)


def count_empty(state: int) -> int:
    """Number of zero nibbles."""
    x = state | ((state >> 1) & 0x7777777777777777)
    x |= (x >> 2)
    empties_mask = ~x & 0x1111111111111111
    return bin(empties_mask).count("1")


def empty_indices(state: int) -> List[int]:
    return [k for k in range(CELLS) if not (state >> (4 * k)) & 0xF]


def get_exponent(state: int, index: int) -> int:
    return (state >> (4 * index)) & 0xF


def set_exponent(state: int, index: int, exponent: int) -> int:
    cellmask = 0xF << (4 * index)
    return (state & ~cellmask) | (exponent << (4 * index))


def max_exponent(state: int) -> int:
    return max(get_exponent(state, k) for k in range(CELLS))


def execute_move(state: int, direction: int, tables: RowTables = ROW_TABLES) -> Tuple[int, int]:
    """Return (new_state, score_gain). new_state == state means the move is illegal."""
    vertical = direction == Direction.UP or direction == Direction.DOWN
    work = transpose(state) if vertical else state
    lines = tables.lines[direction]
    scores = tables.scores[direction]

    result = 0
    gain = 0
    for shift in (0, 16, 32, 48):
        line = (work >> shift) & LINE_MASK
        result |= lines[line] << shift
        gain += scores[line]

    if vertical:
        result = transpose(result)
    return result, gain


def value_to_exponent(value: int) -> int:
    """Tile value -> nibble exponent, 0 for an empty square."""
    if value == 0:
        return 0
    if value < 2 or value & (value - 1) or value > MAX_TILE:
        raise InvalidSquareValueError(value)
    return value.bit_length() - 1


class MoveOutcome(NamedTuple):
    board: "Board"
    score: int
    changed: bool


# --------------------------------------------------------------------------- #
#                                 BOARD                                       #
# --------------------------------------------------------------------------- #
class Board:
    """
    Immutable 4x4 board. Every transition returns a new ``Board``.

    Directions are applied with the shared ``ROW_TABLES`` unless a table set is
    passed explicitly.
    """

    __slots__ = ("_state",)

    def __init__(self, state: int = 0):
        if not 0 <= state <= FULL_MASK:
            raise InvalidBoardError(f"Board state does not fit in 64 bits: {state:#x}")
        self._state = int(state)

    # ------------------------------------------------------------------ #
    #                           CONVERSIONS                              #
    # ------------------------------------------------------------------ #
    @classmethod
    def from_values(cls, values) -> "Board":
        """
        Build a board from 16 tile values (0, 2, 4, ... 32768).

        Accepts a flat sequence, a 4x4 nested sequence or a NumPy array.
        """
        try:
            flat = np.asarray(values, dtype=np.int64).ravel()
        except (TypeError, ValueError) as e:
            raise InvalidBoardError(f"Board is not a grid of integers: {values!r}") from e
        if flat.size != CELLS:
            raise InvalidBoardError(
                f"Board does not contain exactly {CELLS} squares: {flat.tolist()}"
            )
        return cls.from_exponents(value_to_exponent(int(v)) for v in flat)

    @classmethod
    def from_exponents(cls, exponents: Iterable[int]) -> "Board":
        exponents = list(exponents)
        if len(exponents) != CELLS:
            raise InvalidBoardError(
                f"Board does not contain exactly {CELLS} squares: {exponents}"
            )
        state = 0
        for k, e in enumerate(exponents):
            if not 0 <= e <= MAX_EXPONENT:
                raise InvalidSquareValueError(e, f"Invalid exponent {e} at cell {k}")
            state |= e << (4 * k)
        return cls(state)

    @classmethod
    def from_numpy(cls, arr: np.ndarray) -> "Board":
        """4x4 NumPy grid of tile values -> board."""
        return cls.from_values(arr)

    def to_exponents(self) -> List[int]:
        return [get_exponent(self._state, k) for k in range(CELLS)]

    def to_values(self) -> List[int]:
        return [1 << e if e else 0 for e in self.to_exponents()]

    def to_numpy(self) -> np.ndarray:
        return np.array(self.to_values(), dtype=np.int64).reshape(SIZE, SIZE)

    # ------------------------------------------------------------------ #
    #                           TRANSITIONS                              #
    # ------------------------------------------------------------------ #
    def move(self, direction: Direction, tables: RowTables = ROW_TABLES) -> MoveOutcome:
        new_state, gain = execute_move(self._state, direction, tables)
        if new_state == self._state:
            return MoveOutcome(self, 0, False)
        return MoveOutcome(Board(new_state), gain, True)

    def apply_move(self, direction: Direction, tables: RowTables = ROW_TABLES) -> Optional[MoveOutcome]:
        """Apply a move; None when the board would not change (illegal move)."""
        outcome = self.move(direction, tables)
        return outcome if outcome.changed else None

    def legal_moves(self, tables: RowTables = ROW_TABLES) -> List[Direction]:
        return [d for d in DIRECTIONS
                if execute_move(self._state, d, tables)[0] != self._state]

    def is_terminal(self, tables: RowTables = ROW_TABLES) -> bool:
        """True iff no direction changes the board (game over)."""
        return not self.legal_moves(tables)

    def empty_cells(self) -> List[int]:
        """Indices (4*row + col) of the empty cells."""
        return empty_indices(self._state)

    def spawn(self, position: int, exponent: int) -> "Board":
        """Return a new board with ``exponent`` placed on the empty cell ``position``."""
        if not 0 <= position < CELLS:
            raise InvalidBoardError(f"Cell index out of range: {position}")
        if not 1 <= exponent <= MAX_EXPONENT:
            raise InvalidSquareValueError(exponent, f"Invalid exponent to spawn: {exponent}")
        if get_exponent(self._state, position):
            raise InvalidBoardError(f"Cannot spawn on occupied cell {position}")
        return Board(set_exponent(self._state, position, exponent))

    # ------------------------------------------------------------------ #
    #                           QUERIES                                  #
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> int:
        return self._state

    def max_value(self) -> int:
        e = max_exponent(self._state)
        return 1 << e if e else 0

    def distinct_tiles(self) -> int:
        return len({e for e in self.to_exponents() if e})

    def tile_sum(self) -> int:
        return sum(self.to_values())

    def render_ascii(self, cell_width: int = 6) -> str:
        """Return an ASCII art string visualizing the board."""
        sep = "+" + ("-" * cell_width + "+") * SIZE
        out_lines: List[str] = [sep]
        values = self.to_values()
        for r in range(SIZE):
            row_parts = ["|"]
            for c in range(SIZE):
                val = values[SIZE * r + c]
                cell = str(val) if val != 0 else "."
                row_parts.append(cell.center(cell_width))
                row_parts.append("|")
            out_lines.append("".join(row_parts))
            out_lines.append(sep)
        return "\n".join(out_lines)

    def __int__(self) -> int:
        return self._state

    def __eq__(self, other) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self._state == other._state

    def __hash__(self) -> int:
        return hash(self._state)

    def __repr__(self) -> str:
        return f"Board({self._state:#018x})"

    def __str__(self) -> str:
        return self.render_ascii()
