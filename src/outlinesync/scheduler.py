"""Auto-update scheduler reconciling transcript mutations with rebuilds.

The scheduler is a small state machine::

    Idle --start--> Observing --mutation--> Pending --debounce due--> Observing
                        ^                                   |
                        +------- PostGeneration <-----------+  (generation stopped)

Every deadline is held here and a single :meth:`UpdateScheduler.tick` drives
all transitions, so one timer handle is armed at a time. Mutation callbacks
only arm the debounce; extraction and rebuilding happen on ticks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar, Union

from .adapter import Disconnect, MutationSource
from .timers import TimerHandle, TimerService

__all__ = [
    "SchedulerConfig",
    "Idle",
    "Observing",
    "Pending",
    "PostGeneration",
    "SchedulerState",
    "UpdateScheduler",
]

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class SchedulerConfig:
    """Fixed delays, in seconds."""

    post_generation_delay: float = 0.5
    fallback_delay: float = 3.0
    fallback_tolerance: float = 0.1


@dataclass(frozen=True, slots=True)
class Idle:
    pass


@dataclass(frozen=True, slots=True)
class Observing:
    pass


@dataclass(frozen=True, slots=True)
class Pending:
    deadline: float


@dataclass(frozen=True, slots=True)
class PostGeneration:
    deadline: float


SchedulerState = Union[Idle, Observing, Pending, PostGeneration]


class UpdateScheduler:
    """Debounces mutation signals into outline refreshes.

    ``refresh`` performs a normal refresh and returns ``True`` when the
    content key changed. ``force_refresh`` rebuilds regardless of the key.
    """

    def __init__(
        self,
        *,
        refresh: Callable[[], bool],
        force_refresh: Callable[[], object],
        is_generating: Callable[[], bool],
        timers: TimerService,
        interval: float = 2.0,
        mutation_source: MutationSource | None = None,
        config: SchedulerConfig | None = None,
    ) -> None:
        self._refresh = refresh
        self._force_refresh = force_refresh
        self._is_generating = is_generating
        self._timers = timers
        self._interval = max(0.0, float(interval))
        self._mutation_source = mutation_source
        self._config = config or SchedulerConfig()

        self._observing = False
        self._disconnect: Disconnect | None = None
        self._handle: TimerHandle | None = None
        self._debounce_deadline: float | None = None
        self._post_generation_deadline: float | None = None
        self._fallback_deadline: float | None = None
        self._was_generating = False
        self._last_change_at = 0.0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def state(self) -> SchedulerState:
        if not self._observing:
            return Idle()
        if self._post_generation_deadline is not None:
            return PostGeneration(self._post_generation_deadline)
        if self._debounce_deadline is not None:
            return Pending(self._debounce_deadline)
        return Observing()

    @property
    def is_observing(self) -> bool:
        return self._observing

    @property
    def was_generating(self) -> bool:
        return self._was_generating

    @property
    def post_generation_scheduled(self) -> bool:
        return self._post_generation_deadline is not None

    @property
    def fallback_deadline(self) -> float | None:
        return self._fallback_deadline

    @property
    def last_change_at(self) -> float:
        return self._last_change_at

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        self._interval = max(0.0, float(value))

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._observing:
            return
        try:
            self._timers.now()
        except RuntimeError:
            LOGGER.warning("Outline auto-update not started: timer backend has no running loop", exc_info=True)
            return
        self._observing = True
        source = self._mutation_source
        if source is not None:
            self._disconnect = source.connect(self.notify_mutation)
        LOGGER.debug("Outline auto-update started")

    def stop(self) -> None:
        """Detach the observer and drop every pending deadline synchronously."""

        disconnect, self._disconnect = self._disconnect, None
        if disconnect is not None:
            self._guarded(disconnect, None, "mutation source disconnect")
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()
        self._debounce_deadline = None
        self._post_generation_deadline = None
        self._fallback_deadline = None
        if self._observing:
            LOGGER.debug("Outline auto-update stopped")
        self._observing = False

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------
    def notify_mutation(self) -> None:
        """Record a transcript mutation; arms the debounce if none is pending."""

        if not self._observing:
            return
        if self._debounce_deadline is None:
            self._debounce_deadline = self._timers.now() + self._interval
            self._rearm()

    def notify_generation_start(self) -> None:
        self._was_generating = True
        self.notify_mutation()

    def notify_generation_complete(self) -> None:
        """Host-reported end of a streamed response.

        While observing, the post-generation rebuild is scheduled (once). When
        idle there is nothing to wait for and a refresh runs immediately.
        """

        self._was_generating = False
        if not self._observing:
            self._guarded(self._refresh, False, "refresh")
            return
        if self._post_generation_deadline is None:
            self._post_generation_deadline = self._timers.now() + self._config.post_generation_delay
            self._rearm()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def tick(self) -> None:
        """Run every transition whose deadline has passed, then re-arm."""

        self._handle = None
        if not self._observing:
            return
        now = self._timers.now()
        if self._debounce_deadline is not None and self._debounce_deadline <= now:
            self.execute_auto_update()
        if self._post_generation_deadline is not None and self._post_generation_deadline <= now:
            self._post_generation_deadline = None
            LOGGER.debug("Post-generation rebuild")
            self._guarded(self._force_refresh, None, "post-generation rebuild")
        if self._fallback_deadline is not None and self._fallback_deadline <= now:
            self._fallback_deadline = None
            if now - self._last_change_at >= self._config.fallback_delay - self._config.fallback_tolerance:
                LOGGER.debug("Fallback rebuild after %.1fs without changes", now - self._last_change_at)
                self._guarded(self._force_refresh, None, "fallback rebuild")
        self._rearm()

    def execute_auto_update(self) -> None:
        """Debounce expiry: probe generation state and refresh."""

        self._debounce_deadline = None
        now = self._timers.now()
        generating = bool(self._guarded(self._is_generating, self._was_generating, "generation probe"))
        if self._was_generating and not generating and self._post_generation_deadline is None:
            self._post_generation_deadline = now + self._config.post_generation_delay
            LOGGER.debug("Generation finished; rebuild scheduled")
        self._was_generating = generating
        if self._guarded(self._refresh, False, "refresh"):
            self._last_change_at = now
            self._fallback_deadline = now + self._config.fallback_delay
        self._rearm()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _rearm(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()
        if not self._observing:
            return
        deadlines = [
            deadline
            for deadline in (self._debounce_deadline, self._post_generation_deadline, self._fallback_deadline)
            if deadline is not None
        ]
        if not deadlines:
            return
        delay = min(deadlines) - self._timers.now()
        self._handle = self._timers.call_later(max(0.0, delay), self.tick)

    @staticmethod
    def _guarded(callback: Callable[[], T], default: T, label: str) -> T:
        try:
            return callback()
        except Exception:
            LOGGER.warning("Outline scheduler %s failed", label, exc_info=True)
            return default
