"""Timer services used by the update scheduler.

The scheduler only needs a monotonic clock and cancellable one-shot
callbacks. Hosts pick the backend matching their event loop; tests use
:class:`VirtualTimers` to step time by hand.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, Protocol

__all__ = ["TimerHandle", "TimerService", "AsyncioTimers", "VirtualTimers"]


class TimerHandle(Protocol):
    def cancel(self) -> None:  # pragma: no cover - protocol stub
        ...


class TimerService(Protocol):
    def now(self) -> float:  # pragma: no cover - protocol stub
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:  # pragma: no cover - protocol stub
        ...


class AsyncioTimers:
    """Timers backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)


class _VirtualHandle:
    __slots__ = ("deadline", "callback", "cancelled")

    def __init__(self, deadline: float, callback: Callable[[], None]) -> None:
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualTimers:
    """Manually advanced clock for deterministic scheduling."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, _VirtualHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _VirtualHandle:
        handle = _VirtualHandle(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (handle.deadline, next(self._seq), handle))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due callbacks in deadline order.

        Callbacks scheduled while advancing fire too if they fall inside the
        window. Returns the number of callbacks run.
        """

        target = self._now + max(0.0, seconds)
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            deadline, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, deadline)
            handle.callback()
            fired += 1
        self._now = target
        return fired
