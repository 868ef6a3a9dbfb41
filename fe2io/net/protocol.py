"""Wire protocol of the FE2 event server.

Client -> server: a single handshake text frame containing the username.

Server -> client: JSON objects routed by a message-type field::

    {"msgType": "gameStatus", "statusType": "died"}
    {"msgType": "gameStatus", "statusType": "left"}
    {"msgType": "bgm", "audioUrl": "https://.../track.mp3"}

Frames the client does not understand decode to ``Unknown`` so protocol
additions on the server never break the client.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import ValidationError

from .models import BgmData, GameStatusData, StatusType, validate_server_message

RawFrame = str | bytes


# ==================== events ====================


@dataclass(frozen=True)
class GameEvent:
    """Base of every decoded server event."""


@dataclass(frozen=True)
class Death(GameEvent):
    """The tracked player died."""


@dataclass(frozen=True)
class RoundStart(GameEvent):
    pass


@dataclass(frozen=True)
class RoundEnd(GameEvent):
    pass


@dataclass(frozen=True)
class Left(GameEvent):
    """The tracked player left the map; any map music should stop."""


@dataclass(frozen=True)
class MusicCue(GameEvent):
    """The map's background track, to be streamed from ``url``."""

    url: str


@dataclass(frozen=True)
class Unknown(GameEvent):
    """Anything the client does not recognise, kept verbatim."""

    raw: bytes


_STATUS_EVENTS: dict[StatusType, GameEvent] = {
    StatusType.DIED: Death(),
    StatusType.LEFT: Left(),
    StatusType.ROUND_START: RoundStart(),
    StatusType.ROUND_END: RoundEnd(),
}


def handshake_frame(username: str) -> str:
    """The first frame after connecting: the bare username."""
    return username


# ==================== parsing ====================


def _as_bytes(raw: RawFrame) -> bytes:
    if isinstance(raw, str):
        return raw.encode("utf-8", errors="surrogatepass")
    return bytes(raw)


def parse(raw: RawFrame) -> GameEvent:
    """Decode one server frame. Never raises.

    Pure: the same bytes always produce an equal event.
    """
    raw_bytes = _as_bytes(raw)
    try:
        _, payload = validate_server_message(raw_bytes)
    except (ValidationError, RecursionError):
        return Unknown(raw_bytes)

    if isinstance(payload, GameStatusData):
        return _STATUS_EVENTS[payload.status_type]
    if isinstance(payload, BgmData):
        return MusicCue(payload.audio_url)
    return Unknown(raw_bytes)
