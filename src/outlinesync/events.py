"""Event bus connecting the outline engine to its host.

Hosts publish transcript signals (generation start/finish, mutations) and
receive :class:`OutlineUpdated` whenever the outline state changes, so the
engine never depends on a page-wide message channel.

Handlers subscribe to an event class and also receive its subclasses; a
handler on :class:`Event` sees everything. Bound methods are held weakly, so a
panel that goes away drops out of the bus without unsubscribing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, ClassVar, TypeVar
from weakref import WeakMethod

__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "Unsubscribe",
    "GenerationStarted",
    "GenerationCompleted",
    "TranscriptMutated",
    "OutlineUpdated",
]

LOGGER = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]
Unsubscribe = Callable[[], None]


@dataclass(slots=True)
class Event:
    """Base class for bus events.

    Subclasses set ``quiet = True`` when they fire often enough that logging
    every publish would drown the log.
    """

    quiet: ClassVar[bool] = False


@dataclass(slots=True)
class GenerationStarted(Event):
    """The page began streaming a response."""

    source: str = "host"


@dataclass(slots=True)
class GenerationCompleted(Event):
    """The page finished streaming a response."""

    source: str = "host"


@dataclass(slots=True)
class TranscriptMutated(Event):
    """The transcript changed. Fired at mutation frequency."""

    quiet: ClassVar[bool] = True


@dataclass(slots=True)
class OutlineUpdated(Event):
    """Outline state changed; re-read it through ``get_state()``.

    Attributes:
        item_count: Number of nodes in the current tree.
        match_count: Matching nodes for the active search, 0 otherwise.
    """

    item_count: int
    match_count: int = 0


class _Subscription:
    __slots__ = ("event_type", "_target", "_weak", "active")

    def __init__(self, event_type: type[Event], handler: Handler) -> None:
        self.event_type = event_type
        self.active = True
        self._weak = False
        self._target: WeakMethod | Handler = handler
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                self._target = WeakMethod(handler)  # type: ignore[arg-type]
                self._weak = True
            except TypeError:
                # Owner does not support weak references
                pass

    def resolve(self) -> Handler | None:
        if not self.active:
            return None
        if self._weak:
            handler = self._target()  # type: ignore[operator]
            if handler is None:
                self.active = False
            return handler
        return self._target  # type: ignore[return-value]

    def wraps(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


class EventBus:
    """Synchronous publish/subscribe dispatcher.

    Delivery follows subscription order within each class, most specific
    class first. A handler raising an exception is logged and the remaining
    handlers still run.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[type[Event], list[_Subscription]] = {}

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> Unsubscribe:
        subscription = _Subscription(event_type, handler)
        self._subscriptions.setdefault(event_type, []).append(subscription)
        LOGGER.debug("Subscribed %s to %s", _describe(handler), event_type.__name__)

        def _unsubscribe() -> None:
            self._discard(subscription)

        return _unsubscribe

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> bool:
        """Remove the first registration of ``handler``; returns whether one existed."""

        for subscription in self._subscriptions.get(event_type, ()):
            if subscription.wraps(handler):
                self._discard(subscription)
                return True
        return False

    def publish(self, event: Event) -> int:
        """Deliver ``event`` and return the number of handlers that ran."""

        delivered = 0
        for event_type in type(event).__mro__:
            if not issubclass(event_type, Event):
                continue
            for subscription in list(self._subscriptions.get(event_type, ())):
                handler = subscription.resolve()
                if handler is None:
                    self._discard(subscription)
                    continue
                delivered += 1
                try:
                    handler(event)
                except Exception:
                    LOGGER.exception("Handler %s failed on %s", _describe(handler), type(event).__name__)
        if not event.quiet:
            LOGGER.debug("Published %s to %d handler(s)", type(event).__name__, delivered)
        return delivered

    def clear(self) -> None:
        for subscriptions in self._subscriptions.values():
            for subscription in subscriptions:
                subscription.active = False
        self._subscriptions.clear()

    def handler_count(self, event_type: type[Event] | None = None) -> int:
        if event_type is None:
            return sum(len(subscriptions) for subscriptions in self._subscriptions.values())
        return len(self._subscriptions.get(event_type, ()))

    def _discard(self, subscription: _Subscription) -> None:
        subscription.active = False
        subscriptions = self._subscriptions.get(subscription.event_type)
        if subscriptions is None:
            return
        try:
            subscriptions.remove(subscription)
        except ValueError:
            return
        if not subscriptions:
            del self._subscriptions[subscription.event_type]


def _describe(handler: Handler) -> str:
    owner = getattr(handler, "__self__", None)
    if owner is not None and hasattr(handler, "__func__"):
        return f"{type(owner).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__qualname__", None) or repr(handler)
