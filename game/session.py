"""
Game session for a single two-player chess game.

Handles:
- Move validation against the legal moves of the side to move
- Turn tracking
- Draw offers and surrender
- Game-over classification (checkmate, stalemate, insufficient material,
  threefold repetition, fifty-move rule)
"""

import logging
from typing import List, Optional

import chess

from errors import (
    GameOverError,
    IllegalMoveError,
    NoDrawOfferError,
    NotParticipantError,
    SelfAcceptDrawError,
)
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

logger = logging.getLogger(__name__)


class GameSession:
    """
    Mutable state of one match on top of a python-chess board.

    All changes are written through to the wrapped SessionState so the
    owner (a casual game registry or a tournament Match) can persist it.
    """

    def __init__(self, state: SessionState):
        """
        Wrap existing state, replaying its moves.

        Args:
            state: Session state to operate on (mutated in place)
        """
        self.state = state
        self._board = chess.Board(state.start_fen)
        for uci in state.moves:
            self._board.push_uci(uci)

    @classmethod
    def start(cls, white_id: str, black_id: str, board_theme: str = "default",
              game_id: Optional[str] = None, fen: str = chess.STARTING_FEN) -> "GameSession":
        """Start a new game from the standard position (or a given FEN)."""
        kwargs = {"game_id": game_id} if game_id else {}
        state = SessionState(
            white_id=white_id,
            black_id=black_id,
            start_fen=fen,
            board_theme=board_theme,
            **kwargs,
        )
        return cls(state)

    @property
    def game_id(self) -> str:
        return self.state.game_id

    @property
    def white_id(self) -> str:
        return self.state.white_id

    @property
    def black_id(self) -> str:
        return self.state.black_id

    @property
    def current_turn_id(self) -> str:
        """Player id of the side to move."""
        return self.white_id if self._board.turn == chess.WHITE else self.black_id

    @property
    def draw_offered_by(self) -> Optional[str]:
        return self.state.draw_offered_by

    @property
    def result(self) -> Optional[MatchResult]:
        return self.state.result

    @property
    def is_over(self) -> bool:
        return self.state.result is not None

    @property
    def fen(self) -> str:
        return self._board.fen()

    @property
    def board(self) -> chess.Board:
        """A copy of the current board (safe to hand to engines)."""
        return self._board.copy()

    def is_player(self, player_id: str) -> bool:
        return player_id in (self.white_id, self.black_id)

    def opponent_of(self, player_id: str) -> str:
        self._require_player(player_id)
        return self.black_id if player_id == self.white_id else self.white_id

    def legal_moves(self, from_square: Optional[str] = None) -> List[chess.Move]:
        """
        Legal moves for the side to move.

        Args:
            from_square: Only moves starting on this square (e.g. "e2")
        """
        moves = list(self._board.legal_moves)
        if from_square is None:
            return moves
        origin = _parse_square(from_square)
        return [m for m in moves if m.from_square == origin]

    def make_move(self, from_square: str, to_square: str,
                  promotion: Optional[str] = None) -> MoveOutcome:
        """
        Play a move for the side to move.

        Args:
            from_square: Origin square, e.g. "e2"
            to_square: Destination square, e.g. "e4"
            promotion: Promotion piece letter ("q", "r", "b", "n"); queen if omitted

        Returns:
            Continue, Check, Checkmate or Draw

        Raises:
            IllegalMoveError: No legal move matches; the session is unchanged
            GameOverError: The game has already ended
        """
        self._require_running()
        destination = _parse_square(to_square)
        candidates = [m for m in self.legal_moves(from_square) if m.to_square == destination]
        if not candidates:
            raise IllegalMoveError(f"Invalid move: {from_square} to {to_square}")

        move = _pick_promotion(candidates, promotion)
        if move is None:
            raise IllegalMoveError(f"Invalid promotion piece: {promotion}")

        mover_id = self.current_turn_id
        san = self._board.san(move)
        self._board.push(move)
        self.state.moves.append(move.uci())
        self.state.draw_offered_by = None

        return self._classify(mover_id, san)

    def _classify(self, mover_id: str, san: str) -> MoveOutcome:
        board = self._board
        if board.is_checkmate():
            loser_id = self.current_turn_id
            self._conclude(MatchResult(winner_id=mover_id, reason="checkmate"))
            return Checkmate(winner_id=mover_id, loser_id=loser_id, san=san)

        reason = None
        if board.is_stalemate():
            reason = DrawReason.STALEMATE
        elif board.is_insufficient_material():
            reason = DrawReason.INSUFFICIENT_MATERIAL
        elif board.is_repetition(3):
            reason = DrawReason.THREEFOLD_REPETITION
        elif board.is_fifty_moves():
            reason = DrawReason.FIFTY_MOVES

        if reason is not None:
            self._conclude(MatchResult(draw=True, reason=reason.value))
            return Draw(reason=reason, san=san)

        if board.is_check():
            return Check(san=san)
        return Continue(san=san)

    def offer_draw(self, by_player_id: str) -> None:
        """Record a draw offer. Repeating the offer is harmless."""
        self._require_running()
        self._require_player(by_player_id)
        self.state.draw_offered_by = by_player_id

    def accept_draw(self, by_player_id: str) -> Draw:
        """
        Accept the pending draw offer.

        Raises:
            NoDrawOfferError: Nothing to accept
            SelfAcceptDrawError: The offering player tried to accept
        """
        self._require_running()
        self._require_player(by_player_id)
        if self.state.draw_offered_by is None:
            raise NoDrawOfferError("There is no draw offer to accept!")
        if self.state.draw_offered_by == by_player_id:
            raise SelfAcceptDrawError("Cannot accept your own draw offer!")

        self.state.draw_offered_by = None
        self._conclude(MatchResult(draw=True, reason=DrawReason.AGREEMENT.value))
        return Draw(reason=DrawReason.AGREEMENT)

    def decline_draw(self, by_player_id: str) -> None:
        """Clear the pending draw offer."""
        self._require_running()
        self._require_player(by_player_id)
        if self.state.draw_offered_by is None:
            raise NoDrawOfferError("There is no draw offer to decline!")
        self.state.draw_offered_by = None

    def surrender(self, by_player_id: str) -> Surrender:
        """Resign. The other side wins whoever is to move."""
        self._require_running()
        winner_id = self.opponent_of(by_player_id)
        self.state.draw_offered_by = None
        self._conclude(MatchResult(winner_id=winner_id, reason="surrender"))
        return Surrender(winner_id=winner_id, loser_id=by_player_id)

    def _conclude(self, result: MatchResult) -> None:
        if self.state.result is not None:
            raise GameOverError("This game is already over!")
        self.state.result = result
        logger.debug(f"Game {self.game_id} finished: {result.reason}")

    def _require_running(self) -> None:
        if self.state.result is not None:
            raise GameOverError("This game is already over!")

    def _require_player(self, player_id: str) -> None:
        if not self.is_player(player_id):
            raise NotParticipantError("You are not a player in this game!")


def _parse_square(name: str) -> chess.Square:
    try:
        return chess.parse_square(name.strip().lower())
    except (ValueError, AttributeError) as e:
        raise IllegalMoveError(f"Invalid square: {name}") from e


def _pick_promotion(candidates: List[chess.Move], promotion: Optional[str]) -> Optional[chess.Move]:
    """Choose among moves that only differ by promotion piece."""
    if len(candidates) == 1 and candidates[0].promotion is None:
        return candidates[0]

    if promotion:
        try:
            piece_type = chess.Piece.from_symbol(promotion.strip().lower()).piece_type
        except ValueError:
            return None
    else:
        piece_type = chess.QUEEN

    for move in candidates:
        if move.promotion == piece_type:
            return move
    return None
