"""
Round-robin pairing (circle method).

The participant list is padded with a bye sentinel when its length is odd.
Each round pairs slot i with slot n-1-i; slot i plays white. Between rounds
slot 0 stays fixed and every other slot (bye included) moves one place:
the first of them is taken off and appended to the end. Over n-1 rounds
every pair meets exactly once and, for odd counts, everybody sits out once.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

BYE = None


@dataclass(frozen=True)
class Pairing:
    """A pairing slot. black_id (or white_id) is None for a bye."""
    slot: int
    white_id: Optional[str]
    black_id: Optional[str]

    @property
    def is_bye(self) -> bool:
        return self.white_id is BYE or self.black_id is BYE

    @property
    def bye_player(self) -> Optional[str]:
        if not self.is_bye:
            return None
        return self.white_id if self.black_id is BYE else self.black_id


def padded(participant_ids: Sequence[str]) -> List[Optional[str]]:
    """Participants, plus a bye sentinel for odd counts."""
    order = list(participant_ids)
    if len(order) % 2 == 1:
        order.append(BYE)
    return order


def rotate(order: Sequence[Optional[str]]) -> List[Optional[str]]:
    """Advance the circle by one round, keeping the anchor in slot 0."""
    order = list(order)
    if len(order) <= 2:
        return order
    anchor, rest = order[0], order[1:]
    return [anchor] + rest[1:] + rest[:1]


def round_order(participant_ids: Sequence[str], round_number: int) -> List[Optional[str]]:
    """
    Slot order for a round.

    Args:
        participant_ids: Seeded participants (never modified)
        round_number: 1-based round number
    """
    if round_number < 1:
        raise ValueError(f"Round numbers start at 1, got {round_number}")
    order = padded(participant_ids)
    for _ in range(round_number - 1):
        order = rotate(order)
    return order


def pair_round(participant_ids: Sequence[str], round_number: int) -> List[Pairing]:
    """
    All pairing slots for a round, byes included.

    Args:
        participant_ids: Seeded participants
        round_number: 1-based round number

    Returns:
        n/2 pairings in slot order
    """
    if len(set(participant_ids)) != len(participant_ids):
        raise ValueError("Participant ids must be unique")

    order = round_order(participant_ids, round_number)
    n = len(order)
    return [
        Pairing(slot=i, white_id=order[i], black_id=order[n - 1 - i])
        for i in range(n // 2)
    ]
