"""Unit tests for TournamentStore."""

import json

import pytest

from errors import PersistenceError, TournamentNotFoundError
from tournament import Match, Tournament, TournamentStatus, TournamentStore


def make_tournament(tournament_id="1000", **kwargs):
    data = dict(
        tournament_id=tournament_id,
        creator_id="alice",
        total_rounds=2,
        start_time=2_000_000_000,
        participant_ids=["alice"],
    )
    data.update(kwargs)
    return Tournament(**data)


def test_missing_file_is_empty(store):
    assert len(store) == 0
    assert store.all() == []


def test_put_and_reload(store, settings):
    tournament = make_tournament(participant_ids=["alice", "bob"])
    tournament.matches = [Match.create("1000", 1, 0, "alice", "bob")]
    store.put(tournament)

    reloaded = TournamentStore(path=str(settings.tournaments_path), use_firestore=False)
    loaded = reloaded.get("1000")
    assert loaded == tournament
    assert loaded.matches[0].match_id == "1000_1_0"
    assert loaded.matches[0].game.game_id == "1000_1_0"


def test_get_returns_a_copy(store):
    store.put(make_tournament())
    copy = store.get("1000")
    copy.participant_ids.append("mallory")
    assert store.get("1000").participant_ids == ["alice"]


def test_unknown_id(store):
    with pytest.raises(TournamentNotFoundError):
        store.get("404")


def test_all_orders_by_numeric_id(store):
    for tid in ("900", "10000", "1000"):
        store.put(make_tournament(tid))
    assert [t.tournament_id for t in store.all()] == ["900", "1000", "10000"]


def test_find(store):
    store.put(make_tournament("1", status=TournamentStatus.COMPLETED))
    store.put(make_tournament("2"))
    found = store.find(lambda t: t.status == TournamentStatus.OPEN)
    assert found.tournament_id == "2"
    assert store.find(lambda t: t.status == TournamentStatus.ACTIVE) is None


def test_corrupt_file_is_not_overwritten(settings):
    path = settings.tournaments_path
    path.write_text("{not json")
    with pytest.raises(PersistenceError):
        TournamentStore(path=str(path), use_firestore=False)
    assert path.read_text() == "{not json"


def test_failed_save_rolls_back(store, monkeypatch):
    store.put(make_tournament())

    def broken_save(tournament_id):
        raise PersistenceError("disk full")

    monkeypatch.setattr(store, "_save", broken_save)
    changed = store.get("1000")
    changed.participant_ids.append("bob")
    with pytest.raises(PersistenceError):
        store.put(changed)
    assert store.get("1000").participant_ids == ["alice"]

    with pytest.raises(PersistenceError):
        store.put(make_tournament("2000"))
    assert not store.has("2000")


def test_saved_file_is_plain_json(store, settings):
    store.put(make_tournament())
    data = json.loads(settings.tournaments_path.read_text())
    assert data["1000"]["status"] == "open"
    assert data["1000"]["start_time"] == 2_000_000_000
