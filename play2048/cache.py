"""Transposition cache for the expectiminimax search."""

from typing import Dict, Optional, Union

from .board import Board

BoardLike = Union[Board, int]


class TranspositionCache:
    """
    Memoizes search scores keyed by (board, remaining depth).

    A cache is only valid for one search configuration and one kind of node;
    the solver builds fresh instances for each ``best_move`` call. The key is
    the board encoding with the depth packed above bit 64, so lookups hash a
    single int. With ``max_entries`` set, the oldest entry is evicted first.
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._table: Dict[int, float] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    @staticmethod
    def _key(board: BoardLike, depth: int) -> int:
        return (depth << 64) | int(board)

    def get(self, board: BoardLike, depth: int) -> Optional[float]:
        score = self._table.get(self._key(board, depth))
        if score is None:
            self.misses += 1
        else:
            self.hits += 1
        return score

    def put(self, board: BoardLike, depth: int, score: float) -> None:
        key = self._key(board, depth)
        table = self._table
        if self.max_entries is not None and key not in table and len(table) >= self.max_entries:
            # dicts keep insertion order, first key is the oldest
            del table[next(iter(table))]
            self.evictions += 1
        table[key] = score

    def clear(self) -> None:
        self._table.clear()
        self.hits = self.misses = self.evictions = 0

    def __contains__(self, item) -> bool:
        board, depth = item
        return self._key(board, depth) in self._table

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return (f"TranspositionCache(entries={len(self)}, hits={self.hits}, "
                f"misses={self.misses})")
