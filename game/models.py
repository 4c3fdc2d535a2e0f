"""
Data models for chess games.
"""

import uuid
from enum import Enum
from typing import Literal, Optional, Union

import chess
from pydantic import BaseModel, Field


class DrawReason(str, Enum):
    """Why a game ended in a draw."""
    AGREEMENT = "agreement"
    STALEMATE = "stalemate"
    INSUFFICIENT_MATERIAL = "insufficient_material"
    THREEFOLD_REPETITION = "threefold_repetition"
    FIFTY_MOVES = "fifty_moves"


class MatchResult(BaseModel):
    """Final result of a game. Set once, never changed."""
    winner_id: Optional[str] = None  # None for draws
    draw: bool = False
    reason: str                      # "checkmate", "surrender" or a DrawReason value

    def loser_id(self, white_id: str, black_id: str) -> Optional[str]:
        if self.draw or self.winner_id is None:
            return None
        return black_id if self.winner_id == white_id else white_id


class SessionState(BaseModel):
    """Serializable state of one game.

    Moves are kept as UCI and replayed onto start_fen so that repetition
    detection still works after a reload.
    """
    game_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    white_id: str
    black_id: str
    start_fen: str = chess.STARTING_FEN
    moves: list[str] = Field(default_factory=list)
    draw_offered_by: Optional[str] = None
    board_theme: str = "default"
    result: Optional[MatchResult] = None


# Move outcomes (tagged union). A move either keeps the game going
# (Continue, Check) or ends it (Checkmate, Draw).

class Continue(BaseModel):
    kind: Literal["continue"] = "continue"
    san: Optional[str] = None


class Check(BaseModel):
    kind: Literal["check"] = "check"
    san: Optional[str] = None


class Checkmate(BaseModel):
    kind: Literal["checkmate"] = "checkmate"
    winner_id: str
    loser_id: str
    san: Optional[str] = None


class Draw(BaseModel):
    kind: Literal["draw"] = "draw"
    reason: DrawReason
    san: Optional[str] = None


class Surrender(BaseModel):
    kind: Literal["surrender"] = "surrender"
    winner_id: str
    loser_id: str


MoveOutcome = Union[Continue, Check, Checkmate, Draw]
GameEvent = Union[Continue, Check, Checkmate, Draw, Surrender]


def is_final(event: GameEvent) -> bool:
    """True if the event ends the game."""
    return isinstance(event, (Checkmate, Draw, Surrender))
