"""
In-process event bus.

The engine publishes feed, candidate, execution and cycle events here;
the CLI reporter and the HTTP listener subscribe without the engine
knowing about either of them.
"""

import inspect
import itertools
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Generic, TypeVar


logger = logging.getLogger(__name__)


class EventType(Enum):
    """Events published by the engine."""

    # Feed
    SOURCE_FAILED = auto()  # payload: SourceUnavailable

    # Strategy
    CANDIDATE_FOUND = auto()  # payload: ArbitrageCandidate

    # Execution
    EXECUTION_COMPLETE = auto()  # payload: ExecutionOutcome

    # Lifecycle
    CYCLE_COMPLETE = auto()  # payload: CycleReport
    SHUTDOWN = auto()  # payload: metrics dict


T = TypeVar("T")


@dataclass
class Event(Generic[T]):
    """Event with a typed payload."""

    type: EventType
    payload: T
    timestamp_us: int = 0
    source: str = ""


EventHandler = Callable[[Event[Any]], Awaitable[None]]
SyncEventHandler = Callable[[Event[Any]], None]


@dataclass(slots=True)
class _Subscription:
    priority: int
    order: int
    handler: EventHandler | SyncEventHandler
    is_async: bool


class EventBus:
    """
    Ordered publish/subscribe for engine observers.

    Handlers run one at a time in descending priority, then in the order
    they subscribed. An exception in one handler is logged and counted;
    the remaining handlers still receive the event.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[EventType, list[_Subscription]] = defaultdict(list)
        self._order = itertools.count()
        self._failures = 0

    def _add(
        self,
        event_type: EventType,
        handler: EventHandler | SyncEventHandler,
        priority: int,
        is_async: bool,
    ) -> None:
        subs = self._subscriptions[event_type]
        subs.append(_Subscription(priority, next(self._order), handler, is_async))
        subs.sort(key=lambda s: (-s.priority, s.order))

    def subscribe(self, event_type: EventType, handler: EventHandler, priority: int = 0) -> None:
        """
        Register a coroutine handler.

        Args:
            event_type: Event to listen for.
            handler: Coroutine function receiving the event.
            priority: Higher runs earlier.
        """
        self._add(event_type, handler, priority, is_async=True)

    def subscribe_sync(
        self,
        event_type: EventType,
        handler: SyncEventHandler,
        priority: int = 0,
    ) -> None:
        """Register a plain function handler."""
        self._add(event_type, handler, priority, is_async=False)

    def unsubscribe(
        self,
        event_type: EventType,
        handler: EventHandler | SyncEventHandler,
    ) -> bool:
        """
        Remove the first registration of a handler.

        Returns:
            True if the handler was registered.
        """
        subs = self._subscriptions[event_type]
        for i, sub in enumerate(subs):
            if sub.handler is handler:
                del subs[i]
                return True
        return False

    async def publish(self, event: Event[Any]) -> None:
        """Deliver an event to every handler registered for its type."""
        # Copy so handlers may unsubscribe themselves while being called
        for sub in list(self._subscriptions[event.type]):
            try:
                result = sub.handler(event)
                if sub.is_async or inspect.isawaitable(result):
                    await result  # type: ignore[misc]
            except Exception as e:
                self._failures += 1
                logger.error(f"Handler {sub.handler!r} failed on {event.type.name}: {e}")

    def clear(self, event_type: EventType | None = None) -> None:
        """Drop handlers for one event type, or all of them."""
        if event_type is None:
            self._subscriptions.clear()
        else:
            self._subscriptions.pop(event_type, None)

    def handler_count(self, event_type: EventType) -> int:
        """Number of handlers registered for an event type."""
        return len(self._subscriptions.get(event_type, ()))

    @property
    def failures(self) -> int:
        """Handler exceptions caught since creation."""
        return self._failures
