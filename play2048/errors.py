"""Exceptions raised by the 2048 engine and advisor."""

from typing import Any, Optional


class Play2048Error(Exception):
    """Base class for every error raised by play2048"""


class InvalidBoardError(Play2048Error, ValueError):
    """The board representation is invalid"""


class InvalidSquareValueError(InvalidBoardError):
    """A square holds a value which is not a tile of the game"""

    def __init__(self, value: Any, message: Optional[str] = None):
        self.value = value
        super().__init__(message or f"Invalid square value: {value!r}")


class NoLegalMovesError(Play2048Error):
    """The solver was asked for a move on a board where no move is possible"""


class ConfigError(Play2048Error, ValueError):
    """A configuration value is out of range"""
