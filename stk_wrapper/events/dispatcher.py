"""Event dispatcher - dispatches typed events to registered handlers.

Each dispatch waits for all of its handlers before returning, so events
are delivered in the order they were dispatched.
"""

import asyncio
import inspect
from typing import Awaitable, Callable, Dict, List, TypeVar, Union

from ..logger import logger
from .base import (
    BaseEvent,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    ServerReadyEvent,
    ServerShutdownEvent,
)
from .types import EventType

EventT = TypeVar("EventT", bound=BaseEvent)

# Handlers may be sync or async
EventHandler = Union[Callable[[EventT], None], Callable[[EventT], Awaitable[None]]]


class EventDispatcher:
    """Dispatches lifecycle events to registered handlers."""

    def __init__(self):
        self._handlers: Dict[EventType, List[Callable]] = {
            event_type: [] for event_type in EventType
        }

    # Registration methods - one per event type for type safety

    def on_server_ready(self, handler: EventHandler[ServerReadyEvent]) -> None:
        """Register handler for server ready events."""
        self._handlers[EventType.SERVER_READY].append(handler)

    def on_player_joined(self, handler: EventHandler[PlayerJoinedEvent]) -> None:
        """Register handler for player joined events."""
        self._handlers[EventType.PLAYER_JOINED].append(handler)

    def on_player_left(self, handler: EventHandler[PlayerLeftEvent]) -> None:
        """Register handler for player left events."""
        self._handlers[EventType.PLAYER_LEFT].append(handler)

    def on_server_shutdown(self, handler: EventHandler[ServerShutdownEvent]) -> None:
        """Register handler for server shutdown events."""
        self._handlers[EventType.SERVER_SHUTDOWN].append(handler)

    # Dispatch methods - one per event type for type safety

    async def dispatch_server_ready(self, event: ServerReadyEvent) -> None:
        await self._dispatch_event(event)

    async def dispatch_player_joined(self, event: PlayerJoinedEvent) -> None:
        await self._dispatch_event(event)

    async def dispatch_player_left(self, event: PlayerLeftEvent) -> None:
        await self._dispatch_event(event)

    async def dispatch_server_shutdown(self, event: ServerShutdownEvent) -> None:
        await self._dispatch_event(event)

    async def _dispatch_event(self, event: BaseEvent) -> None:
        """Dispatch event to all registered handlers.

        Args:
            event: Event to dispatch
        """
        handlers = self._handlers.get(event.event_type, [])

        if not handlers:
            logger.debug(f"No handlers registered for event: {event.event_type}")
            return

        tasks = []
        for handler in handlers:
            if inspect.iscoroutinefunction(handler):
                tasks.append(asyncio.create_task(handler(event)))
            else:
                tasks.append(asyncio.create_task(asyncio.to_thread(handler, event)))

        results = await asyncio.gather(*tasks, return_exceptions=True)
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                handler_name = getattr(handler, "__name__", repr(handler))
                logger.error(
                    f"Handler {handler_name} failed for event {event.event_type}: {result}",
                    exc_info=result,
                )


# Global event dispatcher instance
event_dispatcher = EventDispatcher()
