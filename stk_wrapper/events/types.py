"""Event type definitions."""

from enum import Enum


class EventType(str, Enum):
    """Lifecycle events inferred from the server log."""

    SERVER_READY = "server.ready"
    PLAYER_JOINED = "player.joined"
    PLAYER_LEFT = "player.left"
    SERVER_SHUTDOWN = "server.shutdown"

    # A line that matched no rule
    NONE = "none"
