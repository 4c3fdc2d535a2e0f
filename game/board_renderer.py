"""
Board image rendering.

Renders SVG boards with python-chess, using the board themes players can
own in their profile.
"""

import logging

import chess
import chess.svg

from errors import RenderError

logger = logging.getLogger(__name__)

# Light/dark square colors per board theme
BOARD_THEMES = {
    "default": ("#f0d9b5", "#b58863"),
    "blue": ("#e8f4f8", "#4a90a4"),
    "wood": ("#d4a574", "#5c3a1e"),
    "green": ("#ffffdd", "#86a666"),
    "purple": ("#e8d4f8", "#8b5aa8"),
    "red": ("#ffd4d4", "#c74444"),
    "marble": ("#f5f5f5", "#888888"),
    "neon": ("#00ff88", "#ff00ff"),
}


class BoardRenderer:
    """Renders positions to SVG image bytes."""

    def __init__(self, size: int = 400):
        self.size = size

    def render(self, fen: str, board_theme: str = "default", flipped: bool = False,
               last_move: str = None) -> bytes:
        """
        Render a position.

        Args:
            fen: Position in 6-field FEN
            board_theme: Theme name (unknown names fall back to default)
            flipped: Draw from black's side
            last_move: Optional UCI move to highlight

        Returns:
            UTF-8 encoded SVG

        Raises:
            RenderError: Invalid FEN or rendering failure
        """
        if len(fen.split()) != 6:
            raise RenderError(f"Invalid FEN: {fen}")
        try:
            board = chess.Board(fen)
            light, dark = BOARD_THEMES.get(board_theme, BOARD_THEMES["default"])
            svg = chess.svg.board(
                board,
                orientation=chess.BLACK if flipped else chess.WHITE,
                lastmove=chess.Move.from_uci(last_move) if last_move else None,
                check=board.king(board.turn) if board.is_check() else None,
                colors={"square light": light, "square dark": dark},
                size=self.size,
            )
        except ValueError as e:
            raise RenderError(f"Could not render board: {e}") from e
        return svg.encode("utf-8")

    def render_for(self, session, viewer_id: str, board_theme: str = None) -> bytes:
        """Render a session's position from a viewer's side."""
        last_move = session.state.moves[-1] if session.state.moves else None
        return self.render(
            session.fen,
            board_theme=board_theme or session.state.board_theme,
            flipped=viewer_id == session.black_id,
            last_move=last_move,
        )
