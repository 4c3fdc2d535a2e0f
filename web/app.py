"""
Flask web application for the chess bot.

Serves a keep-alive health page plus read-only JSON views of tournaments,
standings and the gold leaderboard.
"""

import logging
import os
import re
import threading
import time
from typing import Optional

import requests
from flask import Flask, abort, jsonify

from errors import TournamentNotFoundError
from profiles import ProfileStore
from settings import BotSettings, SelfPingSettings, load_settings
from tournament import TournamentStore

app = Flask(__name__)

logger = logging.getLogger(__name__)

# Leaderboard cache
_leaderboard_cache: list = []
_leaderboard_cache_time: float = 0
_LEADERBOARD_CACHE_TTL = 60

# Tournament ids are millisecond timestamps
VALID_TOURNAMENT_ID_PATTERN = re.compile(r'^[0-9]{1,20}$')


def is_valid_tournament_id(tournament_id: str) -> bool:
    """Validate tournament_id before it reaches the store."""
    return bool(VALID_TOURNAMENT_ID_PATTERN.match(tournament_id or ""))


def get_settings() -> BotSettings:
    """Settings from app config (set by tests or the CLI), else from file and env."""
    settings = app.config.get("BOT_SETTINGS")
    if settings is None:
        settings = load_settings()
        app.config["BOT_SETTINGS"] = settings
    return settings


def get_tournament_store() -> TournamentStore:
    settings = get_settings()
    return TournamentStore(path=str(settings.tournaments_path), use_firestore=settings.use_firestore)


def invalidate_cache() -> None:
    global _leaderboard_cache, _leaderboard_cache_time
    _leaderboard_cache = []
    _leaderboard_cache_time = 0


def get_leaderboard_data(limit: int = 50) -> list:
    """Gold leaderboard rows with caching."""
    global _leaderboard_cache, _leaderboard_cache_time

    cache_age = time.time() - _leaderboard_cache_time
    if _leaderboard_cache and cache_age < _LEADERBOARD_CACHE_TTL:
        app.logger.debug(f"Using cached leaderboard data ({cache_age:.0f}s old)")
        return list(_leaderboard_cache)

    settings = get_settings()
    profiles = ProfileStore(path=str(settings.profiles_path), use_firestore=settings.use_firestore)
    result = [
        {"rank": i, "player_id": p.player_id, "gold": p.gold, "wins": p.wins, "losses": p.losses}
        for i, p in enumerate(profiles.leaderboard(limit=limit), 1)
    ]
    _leaderboard_cache = result
    _leaderboard_cache_time = time.time()
    return result


def tournament_summary(tournament) -> dict:
    return {
        "tournament_id": tournament.tournament_id,
        "creator_id": tournament.creator_id,
        "status": tournament.status.value,
        "total_rounds": tournament.total_rounds,
        "current_round": tournament.current_round,
        "start_time": tournament.start_time,
        "participants": len(tournament.participant_ids),
        "winner_id": tournament.winner_id,
    }


@app.after_request
def set_security_headers(response):
    """Add security headers to all responses."""
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-XSS-Protection'] = '1; mode=block'
    return response


@app.route("/")
def index():
    """Keep-alive page."""
    return "Chess bot is running!", 200, {"Content-Type": "text/plain; charset=utf-8"}


@app.route("/api/tournaments")
def api_tournaments():
    """All tournaments, oldest first."""
    return jsonify([tournament_summary(t) for t in get_tournament_store().all()])


@app.route("/api/tournaments/<tournament_id>")
def api_tournament(tournament_id: str):
    """One tournament with its current round's matches."""
    if not is_valid_tournament_id(tournament_id):
        abort(400)
    try:
        tournament = get_tournament_store().get(tournament_id)
    except TournamentNotFoundError:
        abort(404)
    data = tournament_summary(tournament)
    data["participant_ids"] = tournament.participant_ids
    data["bye_id"] = tournament.bye_id
    data["matches"] = [
        {
            "match_id": m.match_id,
            "white_id": m.white_id,
            "black_id": m.black_id,
            "result": m.result.model_dump(mode="json") if m.result else None,
        }
        for m in tournament.matches
    ]
    return jsonify(data)


@app.route("/api/tournaments/<tournament_id>/standings")
def api_standings(tournament_id: str):
    """Ranked standings of a tournament."""
    if not is_valid_tournament_id(tournament_id):
        abort(400)
    try:
        tournament = get_tournament_store().get(tournament_id)
    except TournamentNotFoundError:
        abort(404)
    return jsonify(tournament.report().model_dump(mode="json"))


@app.route("/api/leaderboard")
def api_leaderboard():
    """Get leaderboard as JSON."""
    return jsonify(get_leaderboard_data())


def ping_once(url: str, timeout: float = 10) -> bool:
    """Request the bot's own URL. Returns True on HTTP 200."""
    try:
        resp = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        logger.warning(f"Self-ping to {url} failed: {e}")
        return False
    if resp.status_code != 200:
        logger.warning(f"Self-ping to {url} returned HTTP {resp.status_code}")
        return False
    return True


def start_self_ping(ping_settings: SelfPingSettings,
                    stop_event: Optional[threading.Event] = None) -> Optional[threading.Thread]:
    """
    Ping the configured URL periodically so free hosting keeps the bot awake.

    Returns:
        The daemon thread, or None if no URL is configured
    """
    if not ping_settings.url:
        return None
    stop_event = stop_event or threading.Event()

    def run():
        while not stop_event.wait(ping_settings.interval):
            ping_once(ping_settings.url)

    thread = threading.Thread(target=run, name="self-ping", daemon=True)
    thread.start()
    logger.info(f"Self-ping every {ping_settings.interval:.0f}s to {ping_settings.url}")
    return thread


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    debug_mode = os.environ.get('FLASK_DEBUG', '').lower() in ('1', 'true', 'yes')
    start_self_ping(get_settings().self_ping)
    app.run(debug=debug_mode, port=5000)
