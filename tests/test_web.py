"""Tests for the Flask app and self-ping."""

import threading

import pytest
import requests

from settings import SelfPingSettings
from tournament import Match, Standing, Tournament, TournamentStore
from web import app as web_app


@pytest.fixture()
def client(settings):
    web_app.app.config["BOT_SETTINGS"] = settings
    web_app.invalidate_cache()
    yield web_app.app.test_client()
    web_app.app.config.pop("BOT_SETTINGS", None)
    web_app.invalidate_cache()


@pytest.fixture()
def saved_tournament(settings):
    store = TournamentStore(path=str(settings.tournaments_path), use_firestore=False)
    tournament = Tournament(
        tournament_id="1700000000000",
        creator_id="alice",
        total_rounds=1,
        start_time=1_700_000_000,
        participant_ids=["alice", "bob"],
        status="active",
        current_round=1,
        matches=[Match.create("1700000000000", 1, 0, "alice", "bob")],
        standings={"alice": Standing(points=1, wins=1), "bob": Standing(losses=1)},
    )
    store.put(tournament)
    return tournament


def test_health(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.data == b"Chess bot is running!"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_tournaments(client, saved_tournament):
    resp = client.get("/api/tournaments")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data[0]["tournament_id"] == "1700000000000"
    assert data[0]["status"] == "active"
    assert data[0]["participants"] == 2


def test_tournament_detail(client, saved_tournament):
    data = client.get("/api/tournaments/1700000000000").get_json()
    assert data["matches"][0]["match_id"] == "1700000000000_1_0"
    assert data["matches"][0]["result"] is None


def test_standings(client, saved_tournament):
    data = client.get("/api/tournaments/1700000000000/standings").get_json()
    assert [row["player_id"] for row in data["rows"]] == ["alice", "bob"]
    assert data["rows"][0]["points"] == 1


def test_bad_and_unknown_ids(client):
    assert client.get("/api/tournaments/../etc/standings").status_code in (400, 404)
    assert client.get("/api/tournaments/abc/standings").status_code == 400
    assert client.get("/api/tournaments/123/standings").status_code == 404


def test_leaderboard(client, profiles):
    profiles.add_gold("alice", 20)
    data = client.get("/api/leaderboard").get_json()
    assert data == [{"rank": 1, "player_id": "alice", "gold": 20, "wins": 0, "losses": 0}]


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


def test_ping_once(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse(200))
    assert web_app.ping_once("http://bot.example")

    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse(503))
    assert not web_app.ping_once("http://bot.example")

    def unreachable(url, timeout):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "get", unreachable)
    assert not web_app.ping_once("http://bot.example")


def test_self_ping_thread(monkeypatch):
    pinged = threading.Event()

    def fake_get(url, timeout):
        pinged.set()
        return FakeResponse(200)

    monkeypatch.setattr(requests, "get", fake_get)
    stop = threading.Event()
    thread = web_app.start_self_ping(SelfPingSettings(url="http://bot.example", interval=0.01), stop)
    assert pinged.wait(2)
    stop.set()
    thread.join(2)
    assert not thread.is_alive()


def test_self_ping_disabled_without_url():
    assert web_app.start_self_ping(SelfPingSettings(url=None)) is None
