"""
Random move engine - plays a random legal move each turn.
"""

import random
from typing import Optional

import chess
from .base_engine import BaseEngine


class RandomEngine(BaseEngine):
    """Engine that plays uniformly random legal moves."""

    def __init__(self, player_id: str = "AI", seed: int = None):
        """
        Initialize random engine.

        Args:
            player_id: Unique identifier
            seed: Optional random seed for reproducibility
        """
        super().__init__(player_id)
        self._rng = random.Random(seed)

    def select_move(self, board: chess.Board) -> Optional[chess.Move]:
        """Select a random legal move."""
        legal_moves = list(board.legal_moves)
        if not legal_moves:
            return None
        return self._rng.choice(legal_moves)
