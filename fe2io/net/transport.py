"""Raw WebSocket channel to the event server.

Thin wrapper around a ``websockets`` client connection that translates every
library and socket failure into ``ConnError`` so the ConnectionManager only
has one error type to react to.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import websockets
from websockets.exceptions import InvalidURI, WebSocketException

from ..exceptions import ConnError, InvalidConfig

if TYPE_CHECKING:
    from websockets.asyncio.client import ClientConnection

logger = logging.getLogger(__name__)

_NETWORK_ERRORS = (WebSocketException, OSError, asyncio.TimeoutError, EOFError)


class WebSocketTransport:
    """One WebSocket connection. Not reusable after ``close()``."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None
        self.url: str | None = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    async def connect(self, url: str, open_timeout: float = 5.0) -> None:
        self.url = url
        try:
            self._ws = await websockets.connect(url, open_timeout=open_timeout)
        except InvalidURI as e:
            raise InvalidConfig(f"Invalid server URL: {e}") from e
        except _NETWORK_ERRORS as e:
            raise ConnError(f"Failed to connect: {e!r}", url=url) from e
        logger.debug("WebSocket opened to %s", url)

    async def send(self, text: str) -> None:
        if self._ws is None:
            raise ConnError("Transport is not connected", url=self.url)
        try:
            await self._ws.send(text)
        except _NETWORK_ERRORS as e:
            raise ConnError(f"Send failed: {e!r}", url=self.url) from e

    async def recv(self) -> str | bytes:
        if self._ws is None:
            raise ConnError("Transport is not connected", url=self.url)
        try:
            return await self._ws.recv()
        except _NETWORK_ERRORS as e:
            raise ConnError(f"Disconnected from server: {e!r}", url=self.url) from e

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            await ws.close()
        except _NETWORK_ERRORS as e:
            logger.debug("Error while closing WebSocket: %r", e)
        logger.debug("WebSocket to %s closed", self.url)
