"""
Aggressive random engine - prefers captures and checks.
"""

from typing import Optional

import chess
from .random_engine import RandomEngine


class AggressiveEngine(RandomEngine):
    """
    Random engine with a taste for tactics.

    - Captures available: take one 70% of the time
    - Otherwise, checks available: give one 30% of the time
    - Otherwise a random legal move
    """

    CAPTURE_PROBABILITY = 0.7
    CHECK_PROBABILITY = 0.3

    def select_move(self, board: chess.Board) -> Optional[chess.Move]:
        legal_moves = list(board.legal_moves)
        if not legal_moves:
            return None

        captures = [m for m in legal_moves if board.is_capture(m)]
        checks = [m for m in legal_moves if board.gives_check(m)]

        if captures and self._rng.random() < self.CAPTURE_PROBABILITY:
            return self._rng.choice(captures)
        if checks and self._rng.random() < self.CHECK_PROBABILITY:
            return self._rng.choice(checks)
        return self._rng.choice(legal_moves)
