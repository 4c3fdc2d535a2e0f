#!/usr/bin/env python3
"""
CLI for the chess bot.

Commands:
- create: Create a tournament
- join: Join a tournament
- start: Start a tournament
- standings: Show tournament standings
- leaderboard: Show the gold leaderboard
- profile: Show a player's profile
- set-theme: Change a player's board or piece theme
- play-ai: Play against the AI in the terminal
- serve: Run the web app
"""

import argparse
import asyncio
import logging
import re
import sys

from bot import ChessService, Reply
from settings import load_settings

MOVE_PATTERN = re.compile(r"^([a-h][1-8])\s*-?\s*([a-h][1-8])\s*=?([qrbn])?$", re.IGNORECASE)


def print_reply(reply: Reply) -> int:
    """Print a reply; the exit code is 0 for success."""
    if not reply.ok:
        print(f"Error: {reply.content}")
        return 1
    print(reply.content)
    return 0


async def create_tournament(args):
    service = ChessService.from_settings(load_settings(args.config))
    return print_reply(await service.create_tournament(args.user, args.rounds, args.start))


async def join_tournament(args):
    service = ChessService.from_settings(load_settings(args.config))
    return print_reply(await service.join_tournament(args.user, args.tournament))


async def start_tournament(args):
    service = ChessService.from_settings(load_settings(args.config))
    return print_reply(await service.start_tournament(args.user, args.tournament))


async def show_standings(args):
    service = ChessService.from_settings(load_settings(args.config))
    return print_reply(await service.standings(args.tournament))


async def show_leaderboard(args):
    service = ChessService.from_settings(load_settings(args.config))
    return print_reply(await service.leaderboard(args.page))


async def show_profile(args):
    service = ChessService.from_settings(load_settings(args.config))
    return print_reply(await service.profile(args.user))


async def set_theme(args):
    if not args.board and not args.pieces:
        print("Error: pass --board and/or --pieces")
        return 1
    service = ChessService.from_settings(load_settings(args.config))
    exit_code = 0
    if args.board:
        exit_code |= print_reply(await service.set_board_theme(args.user, args.board))
    if args.pieces:
        exit_code |= print_reply(await service.set_piece_theme(args.user, args.pieces))
    return exit_code


async def play_ai(args):
    """Play a game against the AI, moves typed as e.g. "e2e4" or "e7 e8 q"."""
    settings = load_settings(args.config)
    if args.delay is not None:
        settings.ai.move_delay = args.delay

    async def show_ai_move(human_id: str, reply: Reply):
        print(reply.content)

    service = ChessService.from_settings(settings, on_ai_move=show_ai_move)
    loop = asyncio.get_running_loop()

    reply = await service.play_ai(args.user)
    if print_reply(reply):
        return 1
    print("Type a move (e2e4), 'draw', 'resign' or 'quit'.")

    try:
        while service.sessions.is_playing(args.user):
            session = service.sessions.get(args.user)
            print(f"\n{session.board.unicode(invert_color=True, borders=True)}\n")

            text = (await loop.run_in_executor(None, input, "Your move: ")).strip()
            if text in ("quit", "exit"):
                print_reply(await service.end_game(args.user))
                break
            if text == "resign":
                print_reply(await service.surrender(args.user))
                break
            if text == "draw":
                print_reply(await service.offer_draw(args.user))
                continue

            match = MOVE_PATTERN.match(text)
            if not match:
                print("Error: Moves look like e2e4 or e7e8q")
                continue
            from_square, to_square, promotion = match.groups()
            if print_reply(await service.move(args.user, from_square, to_square, promotion)):
                continue

            pending = service.deferred.get(f"ai:{session.game_id}")
            if pending is not None:
                await asyncio.gather(pending, return_exceptions=True)
    except (EOFError, KeyboardInterrupt):
        await service.end_game(args.user)
    finally:
        await service.shutdown()

    return 0


def serve(args):
    from web.app import app, start_self_ping

    settings = load_settings(args.config)
    start_self_ping(settings.self_ping)
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Chess bot")
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to bot config file (default: $CHESSBOT_CONFIG or config/bot.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    create_parser = subparsers.add_parser("create", help="Create a tournament")
    create_parser.add_argument("--user", "-u", required=True, help="Creating user id")
    create_parser.add_argument("--rounds", "-r", type=int, required=True, help="Number of rounds")
    create_parser.add_argument(
        "--start", "-s",
        required=True,
        help="Start time (unix seconds or ISO-8601)",
    )

    join_parser = subparsers.add_parser("join", help="Join a tournament")
    join_parser.add_argument("--user", "-u", required=True, help="Joining user id")
    join_parser.add_argument("--tournament", "-t", help="Tournament id (default: first open one)")

    start_parser = subparsers.add_parser("start", help="Start a tournament")
    start_parser.add_argument("--user", "-u", required=True, help="Requesting user id")
    start_parser.add_argument("--tournament", "-t", help="Tournament id (default: first one due)")

    standings_parser = subparsers.add_parser("standings", help="Show tournament standings")
    standings_parser.add_argument("--tournament", "-t", help="Tournament id (default: current one)")

    lb_parser = subparsers.add_parser("leaderboard", help="Show gold leaderboard")
    lb_parser.add_argument("--page", type=int, default=1, help="Page number")

    profile_parser = subparsers.add_parser("profile", help="Show a player's profile")
    profile_parser.add_argument("--user", "-u", required=True, help="User id")

    theme_parser = subparsers.add_parser("set-theme", help="Change a player's board or piece theme")
    theme_parser.add_argument("--user", "-u", required=True, help="User id")
    theme_parser.add_argument("--board", help="Board theme to use")
    theme_parser.add_argument("--pieces", help="Piece theme to use")

    ai_parser = subparsers.add_parser("play-ai", help="Play against the AI in the terminal")
    ai_parser.add_argument("--user", "-u", default="local-player", help="Your user id")
    ai_parser.add_argument("--delay", type=float, help="AI thinking delay in seconds")

    serve_parser = subparsers.add_parser("serve", help="Run the web app")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=5000, help="Port")
    serve_parser.add_argument("--debug", action="store_true", help="Flask debug mode")

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.command == "create":
        return asyncio.run(create_tournament(args))
    elif args.command == "join":
        return asyncio.run(join_tournament(args))
    elif args.command == "start":
        return asyncio.run(start_tournament(args))
    elif args.command == "standings":
        return asyncio.run(show_standings(args))
    elif args.command == "leaderboard":
        return asyncio.run(show_leaderboard(args))
    elif args.command == "profile":
        return asyncio.run(show_profile(args))
    elif args.command == "set-theme":
        return asyncio.run(set_theme(args))
    elif args.command == "play-ai":
        return asyncio.run(play_ai(args))
    elif args.command == "serve":
        logging.getLogger().setLevel(logging.INFO)
        return serve(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
