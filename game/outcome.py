"""
Turns game events into economy and profile changes.

The resolver is pure: it only computes a Settlement. apply_settlement()
writes it to the profile store. Each concluding event must be resolved and
applied exactly once; GameSession guarantees the event itself happens once.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from settings import RewardSettings
from .models import Checkmate, Draw, GameEvent, MatchResult, Surrender

logger = logging.getLogger(__name__)


@dataclass
class Settlement:
    """Economy deltas and counter updates for one game event."""
    gold: Dict[str, int] = field(default_factory=dict)
    wins: List[str] = field(default_factory=list)
    losses: List[str] = field(default_factory=list)
    result: Optional[MatchResult] = None
    teardown: bool = False          # Session should be discarded

    def pay(self, player_id: str, amount: int) -> None:
        if amount:
            self.gold[player_id] = self.gold.get(player_id, 0) + amount


def resolve(
    event: GameEvent,
    white_id: str,
    black_id: str,
    ai_ids: Iterable[str] = (),
    rewards: Optional[RewardSettings] = None,
) -> Settlement:
    """
    Compute rewards for a game event.

    Args:
        event: Outcome of a move, an accepted draw or a surrender
        white_id: White player id
        black_id: Black player id
        ai_ids: Ids of non-persisted AI players (never paid, no counters)
        rewards: Reward amounts (defaults apply if omitted)

    Returns:
        Settlement; empty with teardown=False if the game goes on
    """
    rewards = rewards or RewardSettings()
    ai_ids = set(ai_ids)
    settlement = Settlement()

    if isinstance(event, (Checkmate, Surrender)):
        winner, loser = event.winner_id, event.loser_id
        reason = "checkmate" if isinstance(event, Checkmate) else "surrender"
        settlement.result = MatchResult(winner_id=winner, reason=reason)
        settlement.teardown = True

        if winner in ai_ids:
            # Beaten by the AI: a loss, and gold only for resigning
            if isinstance(event, Surrender):
                settlement.pay(loser, rewards.loss_gold)
            settlement.losses.append(loser)
        elif loser in ai_ids:
            settlement.pay(winner, rewards.ai_win_gold if reason == "checkmate" else rewards.win_gold)
            settlement.wins.append(winner)
        else:
            settlement.pay(winner, rewards.win_gold)
            settlement.pay(loser, rewards.loss_gold)
            settlement.wins.append(winner)
            settlement.losses.append(loser)

    elif isinstance(event, Draw):
        settlement.result = MatchResult(draw=True, reason=event.reason.value)
        settlement.teardown = True
        for player_id in (white_id, black_id):
            if player_id not in ai_ids:
                settlement.pay(player_id, rewards.draw_gold)

    return settlement


def apply_settlement(settlement: Settlement, profiles) -> None:
    """
    Write a settlement to the profile store.

    Args:
        settlement: Result of resolve()
        profiles: Store exposing apply_changes

    Raises:
        PersistenceError: Nothing was written
    """
    profiles.apply_changes(settlement.gold, settlement.wins, settlement.losses)

    if settlement.teardown:
        logger.info(
            f"Settled game: result={settlement.result.reason if settlement.result else None} "
            f"gold={settlement.gold}"
        )
