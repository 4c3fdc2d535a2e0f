"""Unit tests for GameSession."""

import chess
import pytest

from conftest import FOOLS_MATE, KNIGHT_SHUFFLE, STALEMATE_FEN, play
from errors import (
    GameOverError,
    IllegalMoveError,
    NoDrawOfferError,
    NotParticipantError,
    SelfAcceptDrawError,
)
from game import Check, Checkmate, Continue, Draw, DrawReason, GameSession, SessionState, Surrender


@pytest.fixture()
def session():
    return GameSession.start("white", "black")


class TestMoves:
    def test_white_moves_first(self, session):
        assert session.current_turn_id == "white"
        assert session.fen == chess.STARTING_FEN

    def test_legal_move_flips_turn(self, session):
        outcome = session.make_move("e2", "e4")
        assert isinstance(outcome, Continue)
        assert outcome.san == "e4"
        assert session.current_turn_id == "black"
        assert session.state.moves == ["e2e4"]

    def test_illegal_move_changes_nothing(self, session):
        before = session.fen
        with pytest.raises(IllegalMoveError):
            session.make_move("e2", "e5")
        assert session.fen == before
        assert session.state.moves == []
        assert session.current_turn_id == "white"

    def test_moving_the_other_sides_piece_is_illegal(self, session):
        with pytest.raises(IllegalMoveError):
            session.make_move("e7", "e5")

    def test_unknown_square_is_illegal(self, session):
        with pytest.raises(IllegalMoveError):
            session.make_move("z9", "e4")

    def test_check(self, session):
        outcome = play(session, "e2e4", "f7f5", "d1h5")
        assert isinstance(outcome, Check)
        assert not session.is_over

    def test_promotion_defaults_to_queen(self):
        session = GameSession.start("white", "black", fen="8/P7/8/8/8/8/7k/K7 w - - 0 1")
        session.make_move("a7", "a8")
        assert session.board.piece_at(chess.A8).piece_type == chess.QUEEN

    def test_underpromotion(self):
        session = GameSession.start("white", "black", fen="8/P7/8/8/8/8/7k/K7 w - - 0 1")
        session.make_move("a7", "a8", "n")
        assert session.board.piece_at(chess.A8).piece_type == chess.KNIGHT


class TestGameOver:
    def test_fools_mate(self, session):
        outcome = play(session, *FOOLS_MATE)
        assert isinstance(outcome, Checkmate)
        assert outcome.winner_id == "black"
        assert outcome.loser_id == "white"
        assert session.result.winner_id == "black"
        assert session.result.reason == "checkmate"

    def test_no_moves_after_checkmate(self, session):
        play(session, *FOOLS_MATE)
        with pytest.raises(GameOverError):
            session.make_move("e2", "e4")

    def test_stalemate(self):
        session = GameSession.start("white", "black", fen=STALEMATE_FEN)
        outcome = session.make_move("b1", "b6")
        assert isinstance(outcome, Draw)
        assert outcome.reason == DrawReason.STALEMATE
        assert session.result.draw

    def test_insufficient_material(self):
        session = GameSession.start("white", "black", fen="k7/8/8/8/8/8/1r6/K7 w - - 0 1")
        outcome = session.make_move("a1", "b2")
        assert isinstance(outcome, Draw)
        assert outcome.reason == DrawReason.INSUFFICIENT_MATERIAL

    def test_threefold_repetition(self, session):
        outcome = play(session, *KNIGHT_SHUFFLE)
        assert isinstance(outcome, Draw)
        assert outcome.reason == DrawReason.THREEFOLD_REPETITION

    def test_repetition_survives_reload(self, session):
        play(session, *KNIGHT_SHUFFLE[:-1])
        reloaded = GameSession(SessionState.model_validate(session.state.model_dump(mode="json")))
        outcome = reloaded.make_move("f6", "g8")
        assert isinstance(outcome, Draw)
        assert outcome.reason == DrawReason.THREEFOLD_REPETITION


class TestDrawOffers:
    def test_accept_offer(self, session):
        session.offer_draw("white")
        outcome = session.accept_draw("black")
        assert outcome.reason == DrawReason.AGREEMENT
        assert session.result.draw
        assert session.result.reason == "agreement"

    def test_offer_is_idempotent(self, session):
        session.offer_draw("white")
        session.offer_draw("white")
        assert session.draw_offered_by == "white"

    def test_cannot_accept_own_offer(self, session):
        session.offer_draw("white")
        with pytest.raises(SelfAcceptDrawError):
            session.accept_draw("white")
        assert not session.is_over

    def test_accept_without_offer(self, session):
        with pytest.raises(NoDrawOfferError):
            session.accept_draw("black")

    def test_decline_clears_offer(self, session):
        session.offer_draw("black")
        session.decline_draw("white")
        assert session.draw_offered_by is None
        with pytest.raises(NoDrawOfferError):
            session.accept_draw("white")

    def test_move_clears_offer(self, session):
        session.offer_draw("black")
        session.make_move("e2", "e4")
        assert session.draw_offered_by is None

    def test_outsider_cannot_offer(self, session):
        with pytest.raises(NotParticipantError):
            session.offer_draw("someone")


class TestSurrender:
    def test_other_side_wins_regardless_of_turn(self, session):
        outcome = session.surrender("black")
        assert isinstance(outcome, Surrender)
        assert outcome.winner_id == "white"
        assert outcome.loser_id == "black"
        assert session.result.reason == "surrender"

    def test_second_surrender_fails(self, session):
        session.surrender("white")
        with pytest.raises(GameOverError):
            session.surrender("black")

    def test_no_draw_after_surrender(self, session):
        session.surrender("white")
        with pytest.raises(GameOverError):
            session.offer_draw("black")
