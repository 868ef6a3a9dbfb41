"""Network side: WebSocket transport, reconnecting session, wire protocol."""

from .backoff import BackoffPolicy
from .connection import ConnectionManager, ConnectionState
from .protocol import (
    Death,
    GameEvent,
    Left,
    MusicCue,
    RoundEnd,
    RoundStart,
    Unknown,
    parse,
)
from .transport import WebSocketTransport

__all__ = [
    "BackoffPolicy",
    "ConnectionManager", "ConnectionState",
    "GameEvent", "Death", "RoundStart", "RoundEnd", "Left", "MusicCue", "Unknown",
    "parse",
    "WebSocketTransport",
]
