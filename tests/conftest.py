"""Shared fixtures: file-backed stores in tmp_path, Firestore disabled, no delays."""

import pytest
import pytest_asyncio

from game.deferred import DeferredActions
from profiles import AdminSettings, ProfileStore
from settings import AISettings, BotSettings
from tournament import TournamentLifecycle, TournamentStore

OWNER = "owner"


class FakeClock:
    """Callable clock returning a settable unix time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def settings(tmp_path):
    return BotSettings(
        data_dir=str(tmp_path),
        owner_id=OWNER,
        use_firestore=False,
        archive_delay=0,
        ai=AISettings(move_delay=0, seed=7),
    )


@pytest.fixture()
def profiles(settings):
    return ProfileStore(path=str(settings.profiles_path), use_firestore=False)


@pytest.fixture()
def admins(settings):
    return AdminSettings(path=str(settings.admins_path), owner_id=OWNER, use_firestore=False)


@pytest.fixture()
def store(settings):
    return TournamentStore(path=str(settings.tournaments_path), use_firestore=False)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest_asyncio.fixture()
async def deferred():
    actions = DeferredActions()
    yield actions
    await actions.cancel_all()


@pytest.fixture()
def lifecycle(store, profiles, admins, deferred, clock, settings):
    return TournamentLifecycle(
        store, profiles, admins, deferred=deferred, rewards=settings.rewards, clock=clock
    )


def play(session, *moves):
    """Play UCI moves on a GameSession, returning the last outcome."""
    outcome = None
    for uci in moves:
        outcome = session.make_move(uci[:2], uci[2:4], uci[4:] or None)
    return outcome


FOOLS_MATE = ("f2f3", "e7e5", "g2g4", "d8h4")
KNIGHT_SHUFFLE = ("g1f3", "g8f6", "f3g1", "f6g8") * 2
STALEMATE_FEN = "k7/8/2K5/8/8/8/8/1Q6 w - - 0 1"
