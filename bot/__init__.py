# Chat-facing bot service
from .service import ArchivedGame, ChessService, Reply, format_standings

__all__ = ["ArchivedGame", "ChessService", "Reply", "format_standings"]
