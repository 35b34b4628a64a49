"""
Per-key in-flight request guard.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict

from shared.logging import get_logger


class SingleFlight:
    """Collapses concurrent calls for the same key into one shared task.

    The first caller for a key starts the work; callers arriving while it is
    still running await the same task and receive the same result or
    exception. The key is released as soon as the task finishes, so the next
    call after completion starts fresh work.
    """

    def __init__(self) -> None:
        self._inflight: Dict[str, "asyncio.Task[Any]"] = {}
        self.logger = get_logger("schedule.single_flight")

    def __len__(self) -> int:
        return len(self._inflight)

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    async def do(self, key: str, func: Callable[[], Awaitable[Any]]) -> Any:
        """Run ``func`` once per key across concurrent callers."""
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(func())
            self._inflight[key] = task
            task.add_done_callback(lambda done, key=key: self._release(key, done))
        else:
            self.logger.debug("Joining in-flight request", key=key)

        # A cancelled waiter must not cancel the work other callers share.
        return await asyncio.shield(task)

    def _release(self, key: str, task: "asyncio.Task[Any]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Marks the exception retrieved when every waiter was cancelled.
        if not task.cancelled():
            task.exception()
