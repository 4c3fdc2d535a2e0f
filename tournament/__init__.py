# Round-robin tournaments
from .models import Match, Standing, StandingRow, StandingsReport, Tournament, TournamentStatus
from .pairing import Pairing, pair_round, round_order
from .store import TournamentStore
from .lifecycle import MatchUpdate, TournamentLifecycle

__all__ = [
    "Match",
    "Standing",
    "StandingRow",
    "StandingsReport",
    "Tournament",
    "TournamentStatus",
    "Pairing",
    "pair_round",
    "round_order",
    "TournamentStore",
    "MatchUpdate",
    "TournamentLifecycle",
]
