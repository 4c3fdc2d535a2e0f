"""
One-shot deferred actions keyed by id.

Used for the AI "thinking" pause, tournament auto start and archiving
finished games. Scheduling a key again replaces the pending action.
Failures are logged, never raised into the event loop.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[None]]


class DeferredActions:
    """Registry of pending timers with explicit cancellation handles."""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def schedule(self, key: str, delay: float, action: Action) -> asyncio.Task:
        """
        Run an action after a delay.

        Must be called from inside a running event loop.

        Args:
            key: Timer key, e.g. "ai:<game_id>" or "tournament-start:<id>"
            delay: Seconds to wait (negative means now)
            action: Coroutine function to run

        Returns:
            The asyncio task (can be awaited or cancelled)
        """
        self.cancel(key)
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(key, max(0.0, delay), action), name=f"deferred:{key}")
        self._tasks[key] = task
        return task

    async def _run(self, key: str, delay: float, action: Action) -> None:
        try:
            await asyncio.sleep(delay)
            await action()
        except asyncio.CancelledError:
            logger.debug(f"Deferred action {key} cancelled")
            raise
        except Exception:
            logger.exception(f"Deferred action {key} failed")
        finally:
            if self._tasks.get(key) is asyncio.current_task():
                del self._tasks[key]

    def cancel(self, key: str) -> bool:
        """
        Cancel a pending action. Returns True if one was pending.

        An action cancelling its own key (e.g. the AI move that ends the
        game) is only unregistered; it keeps running to completion.
        """
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        if task is asyncio.current_task():
            return False
        task.cancel()
        return True

    def is_pending(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def pending(self) -> List[str]:
        return [key for key, task in self._tasks.items() if not task.done()]

    def get(self, key: str):
        """The pending task for a key, or None."""
        return self._tasks.get(key)

    async def cancel_all(self) -> None:
        """Cancel everything and wait for the tasks to finish."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
