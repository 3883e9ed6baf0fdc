"""
Event Bus

Publishes domain events to in-process subscribers. Handlers may subscribe to
every event or to a single EventType.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, List, Optional

from .domain_events import DomainEvent, EventType

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], Awaitable[None]]


class EventBus(ABC):
    """Abstract base class for event buses."""

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers."""
        pass

    @abstractmethod
    def subscribe(self, handler: EventHandler, event_type: Optional[EventType] = None) -> None:
        """Subscribe a handler to receive events."""
        pass

    @abstractmethod
    def unsubscribe(self, handler: EventHandler, event_type: Optional[EventType] = None) -> None:
        """Remove a previously subscribed handler."""
        pass


class InProcessEventBus(EventBus):
    """
    Simple in-process event bus for single-instance applications.

    Handlers run concurrently; one failing handler never prevents the others
    from receiving the event.
    """

    def __init__(self):
        self._subscribers: List[EventHandler] = []
        self._typed_subscribers: Dict[EventType, List[EventHandler]] = {}

    def subscribe(self, handler: EventHandler, event_type: Optional[EventType] = None) -> None:
        """
        Subscribe a handler.

        Args:
            handler: Async function that accepts a DomainEvent
            event_type: Only deliver events of this type (all events if None)
        """
        if event_type is None:
            self._subscribers.append(handler)
        else:
            self._typed_subscribers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, handler: EventHandler, event_type: Optional[EventType] = None) -> None:
        handlers = self._subscribers if event_type is None else self._typed_subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: DomainEvent) -> None:
        """
        Publish an event to all matching subscribers.

        Args:
            event: The domain event
        """
        handlers = self._subscribers + self._typed_subscribers.get(event.event_type, [])
        if not handlers:
            return

        results = await asyncio.gather(*(handler(event) for handler in handlers), return_exceptions=True)

        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                name = getattr(handler, "__name__", repr(handler))
                logger.error(f"Event handler {name} raised on {event.event_type.value}: {result!r}")

    def clear_subscribers(self) -> None:
        """Remove all subscribers."""
        self._subscribers.clear()
        self._typed_subscribers.clear()

    @property
    def subscriber_count(self) -> int:
        """Get the number of active subscribers."""
        return len(self._subscribers) + sum(len(h) for h in self._typed_subscribers.values())


__all__ = ["EventBus", "InProcessEventBus", "EventHandler"]
