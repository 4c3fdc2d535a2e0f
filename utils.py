"""Shared utility functions."""

from datetime import datetime, timezone
from typing import Union

from errors import InvalidTimestampError


def mention(player_id: str, ai_player_id: str = "AI") -> str:
    """Format a player id the way the chat platform renders user mentions."""
    if player_id == ai_player_id:
        return ai_player_id
    return f"<@{player_id}>"


def parse_start_time(value: Union[int, float, str]) -> int:
    """
    Parse a tournament start time into unix seconds.

    Accepts unix seconds (int, float or numeric string) or an ISO-8601
    timestamp. Naive ISO timestamps are taken as UTC.

    Raises:
        InvalidTimestampError: If the value cannot be parsed
    """
    if isinstance(value, bool):
        raise InvalidTimestampError(f"Invalid start time: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise InvalidTimestampError(f"Start time must not be negative: {value}")
        return int(value)

    text = str(value).strip()
    if not text:
        raise InvalidTimestampError("Start time is empty")
    if text.lstrip("-").isdigit():
        return parse_start_time(int(text))

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidTimestampError(f"Invalid start time: {text!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())
