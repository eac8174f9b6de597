"""
Event system for the wrapper.

Lifecycle events classified from the server log and the dispatcher that
delivers them to registered handlers.
"""

from .base import (
    NO_EVENT,
    BaseEvent,
    Event,
    NoEvent,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    ServerReadyEvent,
    ServerShutdownEvent,
)
from .dispatcher import EventDispatcher, event_dispatcher
from .types import EventType

__all__ = [
    "NO_EVENT",
    "BaseEvent",
    "Event",
    "EventDispatcher",
    "EventType",
    "NoEvent",
    "PlayerJoinedEvent",
    "PlayerLeftEvent",
    "ServerReadyEvent",
    "ServerShutdownEvent",
    "event_dispatcher",
]
