# Game management
from .models import (
    Check,
    Checkmate,
    Continue,
    Draw,
    DrawReason,
    MatchResult,
    MoveOutcome,
    SessionState,
    Surrender,
)
from .session import GameSession
from .outcome import Settlement, resolve, apply_settlement
from .session_manager import SessionManager
from .deferred import DeferredActions
from .locks import KeyedLocks
from .board_renderer import BoardRenderer

__all__ = [
    "Check",
    "Checkmate",
    "Continue",
    "Draw",
    "DrawReason",
    "MatchResult",
    "MoveOutcome",
    "SessionState",
    "Surrender",
    "GameSession",
    "Settlement",
    "resolve",
    "apply_settlement",
    "SessionManager",
    "DeferredActions",
    "KeyedLocks",
    "BoardRenderer",
]
