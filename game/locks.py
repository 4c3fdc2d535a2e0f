"""
Per-key mutual exclusion for games and tournaments.
"""

import asyncio
from typing import Dict


class KeyedLocks:
    """
    One asyncio.Lock per key (game id, match id or tournament id).

    Handlers hold the lock for the whole read-modify-write of the keyed
    object, so duplicate or near-simultaneous events are applied one at a time.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock(self, key: str) -> asyncio.Lock:
        """Get (or create) the lock for a key."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def discard(self, key: str) -> None:
        """Forget the lock for a key if nobody holds it."""
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def __contains__(self, key: str) -> bool:
        return key in self._locks

    def __len__(self) -> int:
        return len(self._locks)
