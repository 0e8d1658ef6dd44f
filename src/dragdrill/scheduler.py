"""Delayed callback adapters used for feedback holds and animations."""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable

AfterFn = Callable[[int, Callable[[], None]], object]


class ManualScheduler:
    """Virtual clock that runs callbacks only when time is advanced.

    Hosts that pump frames themselves, and tests, pass ``scheduler.call_later``
    wherever an ``after(delay_ms, callback)`` function is expected.
    """

    def __init__(self) -> None:
        self._now = 0
        self._counter = itertools.count()
        self._queue: list[tuple[int, int, Callable[[], None]]] = []

    @property
    def now(self) -> int:
        """Current virtual time in milliseconds."""
        return self._now

    @property
    def pending(self) -> int:
        return len(self._queue)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> int:
        """Queue ``callback`` to run ``delay_ms`` after the current virtual time."""
        handle = next(self._counter)
        heapq.heappush(self._queue, (self._now + max(0, int(delay_ms)), handle, callback))
        return handle

    def advance(self, delay_ms: int) -> int:
        """Move time forward, running every callback that becomes due; returns how many ran."""
        deadline = self._now + max(0, int(delay_ms))
        ran = 0
        while self._queue and self._queue[0][0] <= deadline:
            due, _handle, callback = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            callback()
            ran += 1
        self._now = deadline
        return ran

    def run_all(self, limit: int = 10_000) -> int:
        """Drain the queue, including callbacks scheduled while draining."""
        ran = 0
        while self._queue:
            if ran >= limit:
                raise RuntimeError(f"Scheduler did not settle after {limit} callbacks.")
            due, _handle, callback = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            callback()
            ran += 1
        return ran


def loop_after(loop: asyncio.AbstractEventLoop) -> AfterFn:
    """Adapt an asyncio event loop to the ``after(delay_ms, callback)`` shape."""

    def after(delay_ms: int, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return loop.call_later(max(0, delay_ms) / 1000.0, callback)

    return after
