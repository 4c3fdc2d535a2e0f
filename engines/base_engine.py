"""
Base class for AI opponent engines.
"""

import abc
import chess


class BaseEngine(abc.ABC):
    """Abstract base class for AI opponents."""

    def __init__(self, player_id: str):
        """
        Initialize the engine.

        Args:
            player_id: Id the engine plays under (never persisted as a profile)
        """
        self.player_id = player_id

    @abc.abstractmethod
    def select_move(self, board: chess.Board) -> chess.Move:
        """
        Select a move given the current board position.

        Args:
            board: python-chess Board object

        Returns:
            A legal chess.Move, or None if there is none
        """
        ...

    def close(self) -> None:
        """Clean up engine resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
