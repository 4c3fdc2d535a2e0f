"""
Registry of casual (non-tournament) games.

Sessions are inserted when a game starts and removed when it ends; both
steps are explicit calls on the manager. Human players can only be in one
casual game at a time. The AI can play any number of games.
"""

import logging
from typing import Dict, Iterable, List, Optional

from errors import NoActiveGameError, PlayerBusyError
from .locks import KeyedLocks
from .session import GameSession

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns active casual GameSessions keyed by player id."""

    def __init__(self, ai_ids: Iterable[str] = ("AI",)):
        self.ai_ids = set(ai_ids)
        self._by_player: Dict[str, GameSession] = {}
        self.locks = KeyedLocks()

    def start(self, white_id: str, black_id: str, board_theme: str = "default") -> GameSession:
        """
        Start and register a new game.

        Raises:
            PlayerBusyError: Either human player is already in a game
        """
        for player_id in (white_id, black_id):
            if player_id in self._by_player:
                raise PlayerBusyError(f"{'You are' if player_id == white_id else 'Opponent is'} already in a game!")

        session = GameSession.start(white_id, black_id, board_theme=board_theme)
        for player_id in (white_id, black_id):
            if player_id not in self.ai_ids:
                self._by_player[player_id] = session
        logger.info(f"Started game {session.game_id}: {white_id} vs {black_id}")
        return session

    def get(self, player_id: str) -> GameSession:
        """The player's active game, or NoActiveGameError."""
        session = self._by_player.get(player_id)
        if session is None:
            raise NoActiveGameError("No active game found!")
        return session

    def find(self, player_id: str) -> Optional[GameSession]:
        return self._by_player.get(player_id)

    def is_playing(self, player_id: str) -> bool:
        return player_id in self._by_player

    def end(self, session: GameSession) -> None:
        """
        Remove a finished (or abandoned) game from the registry.

        The game lock is kept; callers usually hold it. Call release() once
        it is free.
        """
        for player_id in (session.white_id, session.black_id):
            if self._by_player.get(player_id) is session:
                del self._by_player[player_id]
        logger.info(f"Removed game {session.game_id}")

    def release(self, session: GameSession) -> None:
        """Drop the lock of a game that is no longer registered."""
        if self.find(session.white_id) is not session and self.find(session.black_id) is not session:
            self.locks.discard(session.game_id)

    def active_sessions(self) -> List[GameSession]:
        """Distinct active sessions."""
        seen = {}
        for session in self._by_player.values():
            seen[session.game_id] = session
        return list(seen.values())

    def __len__(self) -> int:
        return len(self.active_sessions())
