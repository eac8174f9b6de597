"""Event models produced by log classification."""

from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from .types import EventType


class BaseEvent(BaseModel):
    """Base class for all events."""

    model_config = ConfigDict(frozen=True)

    event_type: EventType


class ServerReadyEvent(BaseEvent):
    """Fired when the server starts listening for connections."""

    event_type: EventType = EventType.SERVER_READY


class PlayerJoinedEvent(BaseEvent):
    """Fired when a player joins the lobby."""

    event_type: EventType = EventType.PLAYER_JOINED
    player_name: str = Field(..., min_length=1, description="Player name")


class PlayerLeftEvent(BaseEvent):
    """Fired when a player disconnects."""

    event_type: EventType = EventType.PLAYER_LEFT
    player_name: str = Field(..., min_length=1, description="Player name")


class ServerShutdownEvent(BaseEvent):
    """Fired when the last peer has left and the server can be shut down."""

    event_type: EventType = EventType.SERVER_SHUTDOWN


class NoEvent(BaseEvent):
    """Result of classifying a line that matched no rule."""

    event_type: EventType = EventType.NONE


NO_EVENT = NoEvent()

Event = Union[
    ServerReadyEvent,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    ServerShutdownEvent,
    NoEvent,
]
