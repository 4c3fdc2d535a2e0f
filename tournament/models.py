"""
Data models for round-robin tournaments.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from game.models import MatchResult, SessionState
from game.session import GameSession


class TournamentStatus(str, Enum):
    """Tournament lifecycle. Only moves forward."""
    OPEN = "open"
    ACTIVE = "active"
    COMPLETED = "completed"


class Standing(BaseModel):
    """Accumulated score of one participant."""
    points: float = 0.0
    wins: int = 0
    draws: int = 0
    losses: int = 0

    @property
    def games(self) -> int:
        return self.wins + self.draws + self.losses


class StandingRow(BaseModel):
    """A ranked standings entry."""
    rank: int
    player_id: str
    points: float
    wins: int
    draws: int
    losses: int


class StandingsReport(BaseModel):
    """Standings of one tournament, ready for display."""
    tournament_id: str
    status: TournamentStatus
    current_round: int
    total_rounds: int
    bye_id: Optional[str] = None
    winner_id: Optional[str] = None
    rows: List[StandingRow] = Field(default_factory=list)

    @property
    def total_points(self) -> float:
        return sum(row.points for row in self.rows)


class Match(BaseModel):
    """One game of a tournament round."""
    match_id: str                   # "<tournament_id>_<round>_<slot>"
    round_number: int
    slot: int
    white_id: str
    black_id: str
    game: SessionState
    scored: bool = False            # Counted in standings

    @classmethod
    def create(cls, tournament_id: str, round_number: int, slot: int,
               white_id: str, black_id: str, board_theme: str = "default") -> "Match":
        match_id = make_match_id(tournament_id, round_number, slot)
        return cls(
            match_id=match_id,
            round_number=round_number,
            slot=slot,
            white_id=white_id,
            black_id=black_id,
            game=SessionState(
                game_id=match_id,
                white_id=white_id,
                black_id=black_id,
                board_theme=board_theme,
            ),
        )

    @property
    def result(self) -> Optional[MatchResult]:
        return self.game.result

    def session(self) -> GameSession:
        """A GameSession operating on this match's state."""
        return GameSession(self.game)

    def is_player(self, player_id: str) -> bool:
        return player_id in (self.white_id, self.black_id)


class Tournament(BaseModel):
    """A round-robin tournament."""
    tournament_id: str
    creator_id: str
    total_rounds: int = Field(ge=1)
    start_time: int                 # Unix seconds
    participant_ids: List[str] = Field(default_factory=list)
    status: TournamentStatus = TournamentStatus.OPEN
    current_round: int = 0
    matches: List[Match] = Field(default_factory=list)
    standings: Dict[str, Standing] = Field(default_factory=dict)
    bye_id: Optional[str] = None    # Participant sitting out the current round
    winner_id: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def get_match(self, match_id: str) -> Optional[Match]:
        for match in self.matches:
            if match.match_id == match_id:
                return match
        return None

    def round_complete(self) -> bool:
        return bool(self.matches) and all(m.result is not None for m in self.matches)

    def ranked_standings(self) -> List[StandingRow]:
        """
        Standings ranked by points, then wins, then seed order.

        Seed order is the position in participant_ids, which makes ties
        deterministic.
        """
        seeds = {pid: i for i, pid in enumerate(self.participant_ids)}
        ordered = sorted(
            self.standings.items(),
            key=lambda item: (-item[1].points, -item[1].wins, seeds.get(item[0], len(seeds))),
        )
        return [
            StandingRow(
                rank=i,
                player_id=player_id,
                points=s.points,
                wins=s.wins,
                draws=s.draws,
                losses=s.losses,
            )
            for i, (player_id, s) in enumerate(ordered, 1)
        ]

    def report(self) -> StandingsReport:
        return StandingsReport(
            tournament_id=self.tournament_id,
            status=self.status,
            current_round=self.current_round,
            total_rounds=self.total_rounds,
            bye_id=self.bye_id,
            winner_id=self.winner_id,
            rows=self.ranked_standings(),
        )


def make_match_id(tournament_id: str, round_number: int, slot: int) -> str:
    return f"{tournament_id}_{round_number}_{slot}"
