"""
Chat-facing facade of the chess bot.

Every public coroutine returns a Reply. Business errors become a reply with
the error's message; persistence and rendering failures are logged and
reported as a generic failure. Board images are best effort: a rendering
failure never fails the action itself.
"""

import contextlib
import functools
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

import chess

from engines import BaseEngine, create_engine
from errors import (
    ChessBotError,
    ForbiddenError,
    InfrastructureError,
    NotYourTurnError,
    RenderError,
    ValidationError,
)
from game import (
    BoardRenderer,
    Check,
    Checkmate,
    DeferredActions,
    Draw,
    GameSession,
    SessionManager,
    Surrender,
    apply_settlement,
    resolve,
)
from game.models import GameEvent
from profiles import AdminSettings, ProfileStore
from settings import BotSettings
from tournament import Match, MatchUpdate, Tournament, TournamentLifecycle, TournamentStore
from tournament.models import StandingsReport
from utils import mention

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Something went wrong, please try again later."
LEADERBOARD_PAGE_SIZE = 10

DRAW_MESSAGES = {
    "agreement": "Draw accepted!",
    "stalemate": "Draw by stalemate!",
    "insufficient_material": "Draw by insufficient material!",
    "threefold_repetition": "Draw by threefold repetition!",
    "fifty_moves": "Draw by the fifty-move rule!",
}


@dataclass
class Reply:
    """Result of a bot action, ready to be sent by the transport."""
    ok: bool
    content: str
    image: Optional[bytes] = None   # SVG board, if one could be rendered


@dataclass
class ArchivedGame:
    """A finished game handed to the archive callback."""
    game_id: str
    players: str
    result: str
    fen: str
    moves: List[str] = field(default_factory=list)


def replies(func):
    """Turn raised errors of a service coroutine into failure replies."""
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs) -> Reply:
        try:
            return await func(self, *args, **kwargs)
        except ChessBotError as e:
            return Reply(ok=False, content=str(e))
        except InfrastructureError as e:
            logger.error(f"{func.__name__} failed: {e}")
            return Reply(ok=False, content=GENERIC_FAILURE)
    return wrapper


class ChessService:
    """
    Entry point for the interaction layer.

    Args:
        settings: Bot configuration
        profiles: Profile store
        admins: Admin settings
        lifecycle: Tournament lifecycle
        sessions: Casual game registry
        engine: AI opponent
        renderer: Board renderer
        deferred: Timer registry shared with the lifecycle
        on_ai_move: Coroutine called with (human_id, Reply) after the AI moved
        on_game_archived: Coroutine called with an ArchivedGame after the archive delay
    """

    def __init__(
        self,
        settings: BotSettings,
        profiles: ProfileStore,
        admins: AdminSettings,
        lifecycle: TournamentLifecycle,
        sessions: Optional[SessionManager] = None,
        engine: Optional[BaseEngine] = None,
        renderer: Optional[BoardRenderer] = None,
        deferred: Optional[DeferredActions] = None,
        on_ai_move: Optional[Callable[[str, Reply], Awaitable[None]]] = None,
        on_game_archived: Optional[Callable[[ArchivedGame], Awaitable[None]]] = None,
    ):
        self.settings = settings
        self.ai_id = settings.ai.player_id
        self.profiles = profiles
        self.admins = admins
        self.lifecycle = lifecycle
        self.sessions = sessions or SessionManager(ai_ids=(self.ai_id,))
        self.engine = engine or create_engine(settings.ai.engine, player_id=self.ai_id, seed=settings.ai.seed)
        self.renderer = renderer or BoardRenderer()
        self.deferred = deferred or lifecycle.deferred
        self.on_ai_move = on_ai_move
        self.on_game_archived = on_game_archived

    @classmethod
    def from_settings(cls, settings: BotSettings, **kwargs) -> "ChessService":
        """Build the service and its stores from configuration."""
        use_firestore = settings.use_firestore
        profiles = ProfileStore(path=str(settings.profiles_path), use_firestore=use_firestore)
        admins = AdminSettings(
            path=str(settings.admins_path),
            owner_id=settings.owner_id,
            use_firestore=use_firestore,
        )
        store = TournamentStore(path=str(settings.tournaments_path), use_firestore=use_firestore)
        deferred = DeferredActions()
        lifecycle = TournamentLifecycle(
            store, profiles, admins, deferred=deferred, rewards=settings.rewards
        )
        return cls(settings, profiles, admins, lifecycle, deferred=deferred, **kwargs)

    async def startup(self) -> None:
        """Re-arm persisted timers. Call once the event loop runs."""
        self.lifecycle.recover_schedules()

    async def shutdown(self) -> None:
        await self.deferred.cancel_all()
        self.engine.close()

    # ------------------------------------------------------------------
    # Casual games
    # ------------------------------------------------------------------

    @replies
    async def challenge(self, challenger_id: str, opponent_id: str) -> Reply:
        """Start a game between two users; the challenger plays white."""
        if challenger_id == opponent_id:
            raise ValidationError("You cannot challenge yourself!")
        if opponent_id == self.ai_id:
            return await self.play_ai(challenger_id)
        board_theme = self.profiles.get_profile(challenger_id).board_theme
        session = self.sessions.start(challenger_id, opponent_id, board_theme=board_theme)
        return Reply(
            ok=True,
            content=f"{self._header(session)}\n\n{mention(challenger_id, self.ai_id)} has challenged "
                    f"{mention(opponent_id, self.ai_id)} to a chess game!",
            image=self._render(session, challenger_id),
        )

    @replies
    async def play_ai(self, user_id: str) -> Reply:
        """Start a game against the AI; the user plays white."""
        board_theme = self.profiles.get_profile(user_id).board_theme
        session = self.sessions.start(user_id, self.ai_id, board_theme=board_theme)
        return Reply(
            ok=True,
            content=f"{self._header(session)}\n\nAI game started!",
            image=self._render(session, user_id),
        )

    @replies
    async def move(self, user_id: str, from_square: str, to_square: str,
                   promotion: Optional[str] = None) -> Reply:
        session = self.sessions.get(user_id)
        async with self._game_lock(session):
            if not session.is_over and session.current_turn_id != user_id:
                raise NotYourTurnError("It's not your turn!")
            outcome = session.make_move(from_square, to_square, promotion)
            reply = self._event_reply(session, outcome, user_id)

        if not session.is_over and session.current_turn_id == self.ai_id:
            self._schedule_ai_move(session, user_id)
        return reply

    @replies
    async def offer_draw(self, user_id: str) -> Reply:
        session = self.sessions.get(user_id)
        async with self._game_lock(session):
            session.offer_draw(user_id)
        return Reply(ok=True, content=f"{mention(user_id, self.ai_id)} offers a draw!")

    @replies
    async def accept_draw(self, user_id: str) -> Reply:
        session = self.sessions.get(user_id)
        async with self._game_lock(session):
            event = session.accept_draw(user_id)
            return self._event_reply(session, event, user_id)

    @replies
    async def decline_draw(self, user_id: str) -> Reply:
        session = self.sessions.get(user_id)
        async with self._game_lock(session):
            session.decline_draw(user_id)
        return Reply(ok=True, content="Draw declined!")

    @replies
    async def surrender(self, user_id: str) -> Reply:
        session = self.sessions.get(user_id)
        async with self._game_lock(session):
            event = session.surrender(user_id)
            return self._event_reply(session, event, user_id)

    @replies
    async def end_game(self, user_id: str) -> Reply:
        """Abandon the user's game without a result or rewards."""
        session = self.sessions.get(user_id)
        async with self._game_lock(session):
            self.deferred.cancel(_ai_key(session.game_id))
            self.sessions.end(session)
        return Reply(ok=True, content="Your current game has been ended. You can now start a new game!")

    @contextlib.asynccontextmanager
    async def _game_lock(self, session: GameSession):
        """Hold a game's lock; forget it afterwards if the game has ended."""
        try:
            async with self.sessions.locks.lock(session.game_id):
                yield
        finally:
            self.sessions.release(session)

    def _event_reply(self, session: GameSession, event: GameEvent, viewer_id: str) -> Reply:
        """Describe an event and, if it ended the game, settle and tear down."""
        lines = [self._header(session)]
        san = getattr(event, "san", None)
        if san:
            lines.append(f"Played: {san}")
        summary = self._describe(event)
        if summary:
            lines.append(summary)

        if session.is_over:
            self._finish_casual(session, event, summary)
        return Reply(ok=True, content="\n".join(lines), image=self._render(session, viewer_id))

    def _finish_casual(self, session: GameSession, event: GameEvent, summary: str) -> None:
        settlement = resolve(
            event, session.white_id, session.black_id,
            ai_ids=(self.ai_id,), rewards=self.settings.rewards,
        )
        self.deferred.cancel(_ai_key(session.game_id))
        self.sessions.end(session)
        apply_settlement(settlement, self.profiles)
        self._schedule_archive(session, summary)

    def _schedule_ai_move(self, session: GameSession, human_id: str) -> None:
        self.deferred.schedule(
            _ai_key(session.game_id),
            self.settings.ai.move_delay,
            lambda: self._play_ai_move(session, human_id),
        )

    async def _play_ai_move(self, session: GameSession, human_id: str) -> None:
        async with self._game_lock(session):
            if self.sessions.find(human_id) is not session or session.is_over:
                return
            if session.current_turn_id != self.ai_id:
                return
            move = self.engine.select_move(session.board)
            if move is None:
                return
            outcome = session.make_move(
                chess.square_name(move.from_square),
                chess.square_name(move.to_square),
                chess.piece_symbol(move.promotion) if move.promotion else None,
            )
            reply = self._event_reply(session, outcome, human_id)

        logger.debug(f"AI played {outcome.san} in game {session.game_id}")
        if self.on_ai_move is not None:
            await self.on_ai_move(human_id, reply)

    def _schedule_archive(self, session: GameSession, summary: str) -> None:
        if self.on_game_archived is None:
            return
        record = ArchivedGame(
            game_id=session.game_id,
            players=f"{mention(session.white_id, self.ai_id)} vs {mention(session.black_id, self.ai_id)}",
            result=summary,
            fen=session.fen,
            moves=list(session.state.moves),
        )
        self.deferred.schedule(
            f"archive:{session.game_id}",
            self.settings.archive_delay,
            lambda: self.on_game_archived(record),
        )

    # ------------------------------------------------------------------
    # Tournaments
    # ------------------------------------------------------------------

    @replies
    async def create_tournament(self, user_id: str, rounds, start_time) -> Reply:
        tournament = await self.lifecycle.create_tournament(user_id, rounds, start_time)
        return Reply(
            ok=True,
            content=f"Tournament created! ID: {tournament.tournament_id}\n"
                    f"Rounds: {tournament.total_rounds}\n"
                    f"Starts: <t:{tournament.start_time}:f>\n"
                    f"Use /join-tournament to join!",
        )

    @replies
    async def join_tournament(self, user_id: str, tournament_id: Optional[str] = None) -> Reply:
        tournament = await self.lifecycle.join_tournament(user_id, tournament_id)
        return Reply(
            ok=True,
            content=f"Joined tournament {tournament.tournament_id}! Starts: <t:{tournament.start_time}:f>",
        )

    @replies
    async def start_tournament(self, user_id: str, tournament_id: Optional[str] = None) -> Reply:
        tournament = await self.lifecycle.start_tournament(user_id, tournament_id)
        return Reply(
            ok=True,
            content=f"Tournament {tournament.tournament_id} started! Round 1 matches posted.\n"
                    f"{self._round_listing(tournament)}",
        )

    @replies
    async def tournament_move(self, user_id: str, tournament_id: str, match_id: str,
                              from_square: str, to_square: str, promotion: Optional[str] = None) -> Reply:
        update = await self.lifecycle.make_move(
            tournament_id, match_id, user_id, from_square, to_square, promotion
        )
        return self._match_reply(update, user_id)

    @replies
    async def tournament_offer_draw(self, user_id: str, tournament_id: str, match_id: str) -> Reply:
        await self.lifecycle.offer_draw(tournament_id, match_id, user_id)
        return Reply(ok=True, content=f"{mention(user_id, self.ai_id)} offers a draw!")

    @replies
    async def tournament_accept_draw(self, user_id: str, tournament_id: str, match_id: str) -> Reply:
        update = await self.lifecycle.accept_draw(tournament_id, match_id, user_id)
        return self._match_reply(update, user_id)

    @replies
    async def tournament_decline_draw(self, user_id: str, tournament_id: str, match_id: str) -> Reply:
        await self.lifecycle.decline_draw(tournament_id, match_id, user_id)
        return Reply(ok=True, content="Draw declined!")

    @replies
    async def tournament_surrender(self, user_id: str, tournament_id: str, match_id: str) -> Reply:
        update = await self.lifecycle.surrender(tournament_id, match_id, user_id)
        return self._match_reply(update, user_id)

    @replies
    async def standings(self, tournament_id: Optional[str] = None) -> Reply:
        report = self.lifecycle.get_standings(tournament_id)
        return Reply(ok=True, content=format_standings(report, ai_id=self.ai_id))

    def _match_reply(self, update: MatchUpdate, viewer_id: str) -> Reply:
        match = update.match
        session = match.session()
        lines = [f"**Tournament match {match.match_id}**", self._header(session)]
        san = getattr(update.event, "san", None)
        if san:
            lines.append(f"Played: {san}")
        summary = self._describe(update.event)
        if summary:
            lines.append(summary)

        tournament = update.tournament
        if update.round_advanced:
            lines.append(f"\nRound {tournament.current_round} started!\n{self._round_listing(tournament)}")
        if update.completed:
            lines.append(
                f"\nTournament {tournament.tournament_id} completed! "
                f"Winner: {mention(tournament.winner_id, self.ai_id)}"
            )
        return Reply(ok=True, content="\n".join(lines), image=self._render(session, viewer_id))

    def _round_listing(self, tournament: Tournament) -> str:
        lines = [self._match_line(m) for m in tournament.matches]
        if tournament.bye_id:
            lines.append(f"Bye: {mention(tournament.bye_id, self.ai_id)}")
        return "\n".join(lines)

    def _match_line(self, match: Match) -> str:
        return (
            f"Match {match.match_id}: {mention(match.white_id, self.ai_id)} (white) vs "
            f"{mention(match.black_id, self.ai_id)} (black)"
        )

    # ------------------------------------------------------------------
    # Profiles and administration
    # ------------------------------------------------------------------

    @replies
    async def profile(self, user_id: str) -> Reply:
        p = self.profiles.get_profile(user_id)
        content = (
            f"**📊 {mention(user_id, self.ai_id)}'s Profile**\n\n"
            f"**💰 Gold:** {p.gold}\n"
            f"**🏆 Wins:** {p.wins}\n"
            f"**💔 Losses:** {p.losses}\n\n"
            f"**🎨 Active Theme:**\n"
            f"• Board: **{p.board_theme}**\n"
            f"• Pieces: **{p.piece_theme}**\n\n"
            f"**🎨 Owned Themes:**\n"
            f"• Boards: {', '.join(p.owned_board_themes)}\n"
            f"• Pieces: {', '.join(p.owned_piece_themes)}"
        )
        return Reply(ok=True, content=content)

    @replies
    async def set_board_theme(self, user_id: str, theme: str) -> Reply:
        """Switch the board theme used for the user's next games."""
        if theme not in self.profiles.get_profile(user_id).owned_board_themes:
            raise ForbiddenError("You don't own this board theme!")
        self.profiles.update_profile(user_id, board_theme=theme)
        return Reply(ok=True, content=f"Board theme changed to **{theme}**!")

    @replies
    async def set_piece_theme(self, user_id: str, theme: str) -> Reply:
        if theme not in self.profiles.get_profile(user_id).owned_piece_themes:
            raise ForbiddenError("You don't own this piece theme!")
        self.profiles.update_profile(user_id, piece_theme=theme)
        return Reply(ok=True, content=f"Piece theme changed to **{theme}**!")

    @replies
    async def leaderboard(self, page: int = 1) -> Reply:
        page = max(1, page)
        ranked = self.profiles.leaderboard(limit=page * LEADERBOARD_PAGE_SIZE)
        entries = ranked[(page - 1) * LEADERBOARD_PAGE_SIZE:]
        if not entries:
            return Reply(ok=True, content="No players have gold yet!")
        first_rank = (page - 1) * LEADERBOARD_PAGE_SIZE + 1
        lines = [
            f"{i}. {mention(p.player_id, self.ai_id)}: {p.gold} gold"
            for i, p in enumerate(entries, first_rank)
        ]
        return Reply(ok=True, content=f"**Chess Leaderboard (Page {page})**\n" + "\n".join(lines))

    @replies
    async def add_admin(self, requester_id: str, target_id: str) -> Reply:
        self._require_owner(requester_id, "Only the server owner can add admins!")
        if self.admins.add_admin(target_id):
            return Reply(ok=True, content=f"{mention(target_id, self.ai_id)} has been added as a bot admin!")
        return Reply(ok=False, content=f"{mention(target_id, self.ai_id)} is already a bot admin!")

    @replies
    async def remove_admin(self, requester_id: str, target_id: str) -> Reply:
        self._require_owner(requester_id, "Only the server owner can remove admins!")
        if self.admins.remove_admin(target_id):
            return Reply(ok=True, content=f"{mention(target_id, self.ai_id)} has been removed as a bot admin!")
        return Reply(ok=False, content=f"{mention(target_id, self.ai_id)} is not a bot admin!")

    @replies
    async def list_admins(self) -> Reply:
        admin_ids = self.admins.list_admins()
        owner = f"\n\n*Server owner: {mention(self.admins.owner_id)}*" if self.admins.owner_id else ""
        if not admin_ids:
            return Reply(ok=True, content="No bot admins set. The server owner always has admin privileges.")
        listing = "\n".join(mention(a, self.ai_id) for a in admin_ids)
        return Reply(ok=True, content=f"**Bot Admins:**\n{listing}{owner}")

    @replies
    async def give_gold(self, requester_id: str, target_id: str, amount: int) -> Reply:
        if not self.admins.is_admin(requester_id):
            raise ForbiddenError("You do not have permission to use this command!")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
            raise ValidationError("Amount must be a whole number of at least 1!")
        if target_id == self.ai_id:
            raise ValidationError("The AI cannot hold gold!")
        self.profiles.add_gold(target_id, amount)
        return Reply(ok=True, content=f"Successfully gave {amount} gold to {mention(target_id, self.ai_id)}!")

    def _require_owner(self, user_id: str, message: str) -> None:
        if self.admins.owner_id is None or user_id != self.admins.owner_id:
            raise ForbiddenError(message)

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    def _header(self, session: GameSession) -> str:
        white = mention(session.white_id, self.ai_id)
        black = mention(session.black_id, self.ai_id)
        header = f"**{white} vs {black}**\nWhite: {white}\nBlack: {black}"
        if not session.is_over:
            header += f"\nTurn: {mention(session.current_turn_id, self.ai_id)}"
        return header

    def _describe(self, event: Optional[GameEvent]) -> str:
        if isinstance(event, Checkmate):
            return f"Checkmate! {mention(event.winner_id, self.ai_id)} wins!"
        if isinstance(event, Surrender):
            return (
                f"{mention(event.loser_id, self.ai_id)} surrendered! "
                f"{mention(event.winner_id, self.ai_id)} wins!"
            )
        if isinstance(event, Draw):
            return DRAW_MESSAGES[event.reason.value]
        if isinstance(event, Check):
            return "Check!"
        return ""

    def _render(self, session: GameSession, viewer_id: str) -> Optional[bytes]:
        try:
            return self.renderer.render_for(session, viewer_id)
        except RenderError as e:
            logger.warning(f"Board image for game {session.game_id} unavailable: {e}")
            return None


def format_standings(report: StandingsReport, ai_id: str = "AI") -> str:
    """Standings message with one ranked line per participant."""
    lines = [
        f"{row.rank}. {mention(row.player_id, ai_id)}: {row.points:g} points "
        f"(W:{row.wins}, D:{row.draws}, L:{row.losses})"
        for row in report.rows
    ]
    return (
        f"**Tournament {report.tournament_id} Standings**\n"
        f"Round {report.current_round}/{report.total_rounds}\n"
        + ("\n".join(lines) or "No standings yet!")
    )


def _ai_key(game_id: str) -> str:
    return f"ai:{game_id}"
