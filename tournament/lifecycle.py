"""
Tournament lifecycle: creation, registration, start, match play and standings.

A tournament moves open -> active -> completed. Every mutation happens under
the tournament's lock on a copy from the store and is only visible once
TournamentStore.put() saved it. Rewards are paid after the save, so a failed
save leaves both the tournament and the profiles untouched.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from errors import (
    AlreadyJoinedError,
    ChessBotError,
    ForbiddenError,
    InsufficientParticipantsError,
    InvalidRoundsError,
    InvalidTimestampError,
    MatchConcludedError,
    MatchNotFoundError,
    NotParticipantError,
    NotYourTurnError,
    RegistrationClosedError,
    TournamentNotFoundError,
    TournamentNotOpenError,
)
from game.deferred import DeferredActions
from game.locks import KeyedLocks
from game.models import GameEvent
from game.outcome import Settlement, apply_settlement, resolve
from game.session import GameSession
from settings import RewardSettings
from utils import parse_start_time
from .models import Match, Standing, StandingsReport, Tournament, TournamentStatus
from .pairing import pair_round
from .store import TournamentStore

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2
# Seconds between creation and the earliest allowed start
MIN_START_LEAD = 600


def auto_start_key(tournament_id: str) -> str:
    return f"tournament-start:{tournament_id}"


@dataclass
class MatchUpdate:
    """What a match operation did."""
    tournament: Tournament          # Tournament after the update
    match: Match                    # The match as it was played (possibly from a finished round)
    event: Optional[GameEvent] = None
    settlement: Optional[Settlement] = None
    round_advanced: bool = False
    completed: bool = False

    @property
    def concluded(self) -> bool:
        return self.match.result is not None


class TournamentLifecycle:
    """
    Drives tournaments through their states.

    Args:
        store: Tournament registry
        profiles: ProfileStore (rewards and board themes)
        admins: AdminSettings (who may start other people's tournaments)
        deferred: Timer registry for auto start
        rewards: Reward amounts
        clock: Returns the current unix time in seconds
    """

    def __init__(
        self,
        store: TournamentStore,
        profiles,
        admins,
        deferred: Optional[DeferredActions] = None,
        rewards: Optional[RewardSettings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.profiles = profiles
        self.admins = admins
        self.deferred = deferred or DeferredActions()
        self.rewards = rewards or RewardSettings()
        self.clock = clock
        self.locks = KeyedLocks()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def create_tournament(self, creator_id: str, rounds, start_time) -> Tournament:
        """
        Create an open tournament with the creator as first participant.

        Args:
            creator_id: Creating user
            rounds: Number of rounds (>= 1)
            start_time: Unix seconds or ISO-8601 text

        Raises:
            InvalidRoundsError: rounds is not a positive integer
            InvalidTimestampError: start_time cannot be parsed or is less
                than MIN_START_LEAD seconds away
        """
        total_rounds = _parse_rounds(rounds)
        start = parse_start_time(start_time)
        if start < self.clock() + MIN_START_LEAD:
            raise InvalidTimestampError(
                "Start time must be a valid Unix timestamp at least 10 minutes in the future!"
            )

        tournament = Tournament(
            tournament_id=self._new_tournament_id(),
            creator_id=creator_id,
            total_rounds=total_rounds,
            start_time=start,
            participant_ids=[creator_id],
        )
        self.store.put(tournament)
        logger.info(
            f"Tournament {tournament.tournament_id} created by {creator_id}: "
            f"{total_rounds} rounds, start at {start}"
        )
        self._schedule_auto_start(tournament)
        return tournament

    def _new_tournament_id(self) -> str:
        candidate = int(self.clock() * 1000)
        while self.store.has(str(candidate)):
            candidate += 1
        return str(candidate)

    async def join_tournament(self, user_id: str, tournament_id: Optional[str] = None) -> Tournament:
        """
        Register a user for an open tournament.

        Without an id, the earliest open tournament still taking
        registrations is used (or, failing that, the earliest open one).
        """
        if tournament_id is None:
            now = self.clock()
            found = (
                self.store.find(lambda t: t.status == TournamentStatus.OPEN and now < t.start_time)
                or self.store.find(lambda t: t.status == TournamentStatus.OPEN)
            )
            if found is None:
                raise TournamentNotFoundError("No open tournaments found!")
            tournament_id = found.tournament_id

        async with self.locks.lock(tournament_id):
            tournament = self.store.get(tournament_id)
            if user_id in tournament.participant_ids:
                raise AlreadyJoinedError("You are already in this tournament!")
            if tournament.status != TournamentStatus.OPEN or self.clock() >= tournament.start_time:
                raise RegistrationClosedError("Tournament registration is closed!")

            tournament.participant_ids.append(user_id)
            self.store.put(tournament)

        logger.info(f"{user_id} joined tournament {tournament_id} ({len(tournament.participant_ids)} players)")
        return tournament

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    async def start_tournament(self, user_id: Optional[str], tournament_id: Optional[str] = None,
                               automatic: bool = False) -> Tournament:
        """
        Start an open tournament and pair round 1.

        Args:
            user_id: Requesting user (ignored when automatic)
            tournament_id: Tournament to start; defaults to the first open
                           tournament whose start time has passed
            automatic: Triggered by the start timer, skips the permission check

        Raises:
            TournamentNotFoundError, TournamentNotOpenError, ForbiddenError,
            InsufficientParticipantsError
        """
        if tournament_id is None:
            now = self.clock()
            found = self.store.find(lambda t: t.status == TournamentStatus.OPEN and t.start_time <= now)
            if found is None:
                raise TournamentNotFoundError("No tournaments ready to start!")
            tournament_id = found.tournament_id

        async with self.locks.lock(tournament_id):
            tournament = self.store.get(tournament_id)
            if tournament.status != TournamentStatus.OPEN:
                raise TournamentNotOpenError("Tournament has already started!")
            if not automatic and not self.can_start(user_id, tournament):
                raise ForbiddenError(
                    "Only the tournament creator, server owner, or a bot admin can start the tournament!"
                )
            if len(tournament.participant_ids) < MIN_PARTICIPANTS:
                raise InsufficientParticipantsError("Not enough participants to start the tournament!")

            tournament.status = TournamentStatus.ACTIVE
            tournament.current_round = 1
            tournament.standings = {pid: Standing() for pid in tournament.participant_ids}
            self._generate_round(tournament)
            self.store.put(tournament)

        if not automatic:
            self.deferred.cancel(auto_start_key(tournament_id))
        logger.info(
            f"Tournament {tournament_id} started with {len(tournament.participant_ids)} players"
            f"{' (automatic)' if automatic else ''}"
        )
        return tournament

    def can_start(self, user_id: Optional[str], tournament: Tournament) -> bool:
        if user_id is None:
            return False
        return user_id == tournament.creator_id or self.admins.is_admin(user_id)

    def _schedule_auto_start(self, tournament: Tournament) -> None:
        delay = tournament.start_time - self.clock()
        tournament_id = tournament.tournament_id
        try:
            self.deferred.schedule(
                auto_start_key(tournament_id), delay, lambda: self._auto_start(tournament_id)
            )
        except RuntimeError:
            # No running event loop (one-shot CLI calls); recover_schedules() re-arms it
            logger.debug(f"No event loop, auto start of tournament {tournament_id} not scheduled")

    async def _auto_start(self, tournament_id: str) -> None:
        try:
            await self.start_tournament(None, tournament_id, automatic=True)
        except ChessBotError as e:
            logger.warning(f"Automatic start of tournament {tournament_id} skipped: {e}")

    def recover_schedules(self) -> int:
        """
        Re-arm auto start timers for all open tournaments.

        Call once the event loop runs, e.g. after a restart.

        Returns:
            Number of timers armed
        """
        count = 0
        for tournament in self.store.all():
            if tournament.status == TournamentStatus.OPEN:
                self._schedule_auto_start(tournament)
                count += 1
        if count:
            logger.info(f"Re-armed {count} tournament start timers")
        return count

    # ------------------------------------------------------------------
    # Rounds and scoring
    # ------------------------------------------------------------------

    def _generate_round(self, tournament: Tournament) -> None:
        matches = []
        bye_id = None
        for pairing in pair_round(tournament.participant_ids, tournament.current_round):
            if pairing.is_bye:
                bye_id = pairing.bye_player
                continue
            board_theme = self.profiles.get_profile(pairing.white_id).board_theme
            matches.append(Match.create(
                tournament.tournament_id,
                tournament.current_round,
                pairing.slot,
                pairing.white_id,
                pairing.black_id,
                board_theme,
            ))
        tournament.matches = matches
        tournament.bye_id = bye_id
        logger.info(
            f"Tournament {tournament.tournament_id} round {tournament.current_round}/"
            f"{tournament.total_rounds}: {len(matches)} matches"
            f"{f', bye for {bye_id}' if bye_id else ''}"
        )

    def _score_match(self, tournament: Tournament, match: Match) -> Optional[TournamentStatus]:
        """
        Count a concluded match in the standings, once.

        Returns:
            ACTIVE if the next round was paired, COMPLETED if the tournament
            finished, None otherwise
        """
        if match.result is None or match.scored:
            return None

        result = match.result
        standings = tournament.standings
        if result.draw:
            for player_id in (match.white_id, match.black_id):
                standing = standings.setdefault(player_id, Standing())
                standing.points += 0.5
                standing.draws += 1
        else:
            winner_id = result.winner_id
            loser_id = result.loser_id(match.white_id, match.black_id)
            standings.setdefault(winner_id, Standing())
            standings.setdefault(loser_id, Standing())
            standings[winner_id].points += 1
            standings[winner_id].wins += 1
            standings[loser_id].losses += 1
        match.scored = True

        if not tournament.round_complete():
            return None

        if tournament.current_round < tournament.total_rounds:
            tournament.current_round += 1
            self._generate_round(tournament)
            return TournamentStatus.ACTIVE

        tournament.status = TournamentStatus.COMPLETED
        tournament.winner_id = tournament.ranked_standings()[0].player_id
        tournament.bye_id = None
        logger.info(f"Tournament {tournament.tournament_id} completed, winner {tournament.winner_id}")
        return TournamentStatus.COMPLETED

    def _award_winner(self, tournament: Tournament, settlement: Optional[Settlement] = None) -> None:
        """Pay the completion bonus, inside the match settlement when there is one."""
        bonus = self.rewards.tournament_winner_gold
        if not tournament.winner_id or not bonus:
            return
        if settlement is None:
            self.profiles.add_gold(tournament.winner_id, bonus)
        else:
            settlement.pay(tournament.winner_id, bonus)

    async def record_match_result(self, tournament_id: str, match_id: str) -> Tournament:
        """
        Score a concluded match and advance or complete the tournament.

        No-op for a match without a result or one that was already scored.
        """
        async with self.locks.lock(tournament_id):
            tournament = self.store.get(tournament_id)
            match = tournament.get_match(match_id)
            if match is None:
                raise MatchNotFoundError("Match not found or already completed!")
            if match.result is None or match.scored:
                return tournament
            change = self._score_match(tournament, match)
            self.store.put(tournament)

        if change == TournamentStatus.COMPLETED:
            self._award_winner(tournament)
        return tournament

    # ------------------------------------------------------------------
    # Match play
    # ------------------------------------------------------------------

    async def make_move(self, tournament_id: str, match_id: str, user_id: str,
                        from_square: str, to_square: str, promotion: Optional[str] = None) -> MatchUpdate:
        def play(session: GameSession):
            if session.current_turn_id != user_id:
                raise NotYourTurnError("It's not your turn!")
            return session.make_move(from_square, to_square, promotion)

        return await self._update_match(tournament_id, match_id, user_id, play)

    async def offer_draw(self, tournament_id: str, match_id: str, user_id: str) -> MatchUpdate:
        return await self._update_match(
            tournament_id, match_id, user_id, lambda session: session.offer_draw(user_id)
        )

    async def accept_draw(self, tournament_id: str, match_id: str, user_id: str) -> MatchUpdate:
        return await self._update_match(
            tournament_id, match_id, user_id, lambda session: session.accept_draw(user_id)
        )

    async def decline_draw(self, tournament_id: str, match_id: str, user_id: str) -> MatchUpdate:
        return await self._update_match(
            tournament_id, match_id, user_id, lambda session: session.decline_draw(user_id)
        )

    async def surrender(self, tournament_id: str, match_id: str, user_id: str) -> MatchUpdate:
        return await self._update_match(
            tournament_id, match_id, user_id, lambda session: session.surrender(user_id)
        )

    async def _update_match(self, tournament_id: str, match_id: str, user_id: str,
                            action: Callable[[GameSession], Optional[GameEvent]]) -> MatchUpdate:
        """
        Apply an action to a match session and settle its outcome.

        The action runs against the match's state inside a copy of the
        tournament; a raised error discards the copy.
        """
        async with self.locks.lock(tournament_id):
            tournament = self.store.get(tournament_id)
            match = _playable_match(tournament, match_id, user_id)

            event = action(match.session())
            update = MatchUpdate(tournament=tournament, match=match, event=event)

            if event is not None:
                update.settlement = resolve(event, match.white_id, match.black_id, rewards=self.rewards)
                if update.settlement.teardown:
                    change = self._score_match(tournament, match)
                    update.round_advanced = change == TournamentStatus.ACTIVE
                    update.completed = change == TournamentStatus.COMPLETED

            self.store.put(tournament)

        if update.completed:
            self._award_winner(tournament, update.settlement)
        if update.settlement is not None:
            apply_settlement(update.settlement, self.profiles)
        return update

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_tournament(self, tournament_id: str) -> Tournament:
        return self.store.get(tournament_id)

    def get_standings(self, tournament_id: Optional[str] = None) -> StandingsReport:
        """
        Ranked standings.

        Without an id, the earliest active tournament is shown, or else the
        most recently completed one.
        """
        if tournament_id is not None:
            return self.store.get(tournament_id).report()

        tournament = self.store.find(lambda t: t.status == TournamentStatus.ACTIVE)
        if tournament is None:
            completed = [t for t in self.store.all() if t.status == TournamentStatus.COMPLETED]
            tournament = completed[-1] if completed else None
        if tournament is None:
            raise TournamentNotFoundError("No active or completed tournaments found!")
        return tournament.report()

    def find_match_for(self, user_id: str, tournament_id: Optional[str] = None) -> Optional[Match]:
        """The user's unfinished match in the current round of an active tournament."""
        candidates = (
            [self.store.get(tournament_id)] if tournament_id is not None
            else [t for t in self.store.all() if t.status == TournamentStatus.ACTIVE]
        )
        for tournament in candidates:
            for match in tournament.matches:
                if match.result is None and match.is_player(user_id):
                    return match
        return None

    def tournaments(self, statuses: Iterable[TournamentStatus] = ()) -> list:
        statuses = set(statuses)
        return [t for t in self.store.all() if not statuses or t.status in statuses]


def _parse_rounds(rounds) -> int:
    if isinstance(rounds, bool):
        raise InvalidRoundsError("Rounds must be a positive whole number!")
    try:
        value = int(str(rounds).strip()) if isinstance(rounds, str) else rounds
    except ValueError as e:
        raise InvalidRoundsError("Rounds must be a positive whole number!") from e
    if not isinstance(value, int) or value < 1:
        raise InvalidRoundsError("Rounds must be a positive whole number!")
    return value


def _playable_match(tournament: Tournament, match_id: str, user_id: str) -> Match:
    match = tournament.get_match(match_id)
    if match is None:
        raise MatchNotFoundError("Match not found or already completed!")
    if not match.is_player(user_id):
        raise NotParticipantError("You are not a player in this match!")
    if match.result is not None or tournament.status != TournamentStatus.ACTIVE:
        raise MatchConcludedError("This match is already over!")
    return match
