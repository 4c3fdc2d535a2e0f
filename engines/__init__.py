# AI opponents
from .base_engine import BaseEngine
from .random_engine import RandomEngine
from .aggressive_engine import AggressiveEngine

ENGINE_TYPES = {
    "random": RandomEngine,
    "aggressive": AggressiveEngine,
}


def create_engine(engine_type: str, player_id: str = "AI", seed: int = None) -> BaseEngine:
    """Create an AI engine by type name."""
    if engine_type not in ENGINE_TYPES:
        raise ValueError(f"Unknown engine type '{engine_type}' (expected one of {sorted(ENGINE_TYPES)})")
    return ENGINE_TYPES[engine_type](player_id=player_id, seed=seed)


__all__ = ["BaseEngine", "RandomEngine", "AggressiveEngine", "ENGINE_TYPES", "create_engine"]
