"""Tests for the casual game registry."""

import pytest

from errors import NoActiveGameError, PlayerBusyError
from game import SessionManager


def test_start_registers_both_players():
    manager = SessionManager()
    session = manager.start("alice", "bob")
    assert manager.get("alice") is session
    assert manager.get("bob") is session
    assert len(manager) == 1


def test_busy_player():
    manager = SessionManager()
    manager.start("alice", "bob")
    with pytest.raises(PlayerBusyError):
        manager.start("carol", "alice")


def test_ai_can_play_many_games():
    manager = SessionManager(ai_ids=("AI",))
    manager.start("alice", "AI")
    manager.start("bob", "AI")
    assert len(manager) == 2
    assert not manager.is_playing("AI")


def test_end_removes_session():
    manager = SessionManager()
    session = manager.start("alice", "bob")
    manager.end(session)
    assert manager.find("alice") is None
    with pytest.raises(NoActiveGameError):
        manager.get("bob")
    assert manager.active_sessions() == []


@pytest.mark.asyncio
async def test_release_drops_lock_of_ended_game():
    manager = SessionManager()
    session = manager.start("alice", "bob")
    async with manager.locks.lock(session.game_id):
        manager.end(session)
        manager.release(session)
        assert session.game_id in manager.locks
    manager.release(session)
    assert len(manager.locks) == 0


@pytest.mark.asyncio
async def test_release_keeps_lock_of_running_game():
    manager = SessionManager()
    session = manager.start("alice", "bob")
    manager.locks.lock(session.game_id)
    manager.release(session)
    assert session.game_id in manager.locks
