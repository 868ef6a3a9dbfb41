"""Connection lifecycle to the FE2 event server.

Responsibilities:
1. open the transport and send the username handshake
2. hand received frames to the caller one at a time
3. on any failure, back off and reconnect, forever
4. stay interruptible: ``request_close()`` wakes a pending recv or backoff wait

Only one transport is ever open; the old one is closed before a new one is
created. Missed events are not replayed after a reconnect.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from ..config import Config
from ..exceptions import ConnError, Fe2ioError, InvalidConfig
from .backoff import BackoffPolicy
from .protocol import RawFrame, handshake_frame
from .transport import WebSocketTransport

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    BACKOFF = "backoff"


StatusListener = Callable[[ConnectionState, "float | None"], None]

_CLOSED = object()


class ConnectionManager:
    """Reconnecting WebSocket session for one username."""

    def __init__(
        self,
        config: Config,
        transport_factory: Callable[[], Any] = WebSocketTransport,
        backoff: BackoffPolicy | None = None,
        status_listener: StatusListener | None = None,
    ):
        self.config = config
        self._transport_factory = transport_factory
        self._transport = None
        self._backoff = backoff or BackoffPolicy(
            initial=config.reconnect_delay,
            factor=config.backoff_factor,
            maximum=config.max_reconnect_delay,
            jitter=config.backoff_jitter,
        )
        self._status_listener = status_listener
        self._state = ConnectionState.DISCONNECTED
        self.backoff_delay: float | None = None
        self._closing = asyncio.Event()
        # the very first attempt connects immediately, later ones back off
        self._backoff_before_connect = False

    # ==================== state ====================

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def closing(self) -> bool:
        return self._closing.is_set()

    def _set_state(self, state: ConnectionState, delay: float | None = None) -> None:
        delay = delay if state is ConnectionState.BACKOFF else None
        if state is self._state and delay == self.backoff_delay:
            return
        logger.debug("Connection state: %s -> %s", self._state.value, state.value)
        self._state = state
        self.backoff_delay = delay
        if self._status_listener:
            self._status_listener(state, delay)

    # ==================== connect / close ====================

    async def connect(self) -> None:
        """Open a transport and send the handshake. Single attempt.

        Raises:
            InvalidConfig: empty username (checked before touching the network)
            ConnError: the server could not be reached or the handshake failed
        """
        username = self.config.username
        if not username or not username.strip():
            raise InvalidConfig("username must be a non-empty string")
        if self._closing.is_set():
            raise ConnError("Connection manager is closed", url=self.config.server_url)

        await self._drop_transport()
        self._set_state(ConnectionState.CONNECTING)
        transport = self._transport_factory()
        self._transport = transport
        try:
            opened = await self._unless_closing(self._open_session(transport, username))
        except Exception:
            await self._discard(transport)
            self._set_state(ConnectionState.DISCONNECTED)
            raise
        if opened is _CLOSED:
            await self._discard(transport)
            self._set_state(ConnectionState.DISCONNECTED)
            raise ConnError("Connection manager closed while connecting", url=self.config.server_url)

        self._backoff.reset()
        self._set_state(ConnectionState.CONNECTED)
        logger.info(
            "Connected to server %s with username %s", self.config.server_url, username
        )

    async def _open_session(self, transport: Any, username: str) -> None:
        await transport.connect(self.config.server_url, open_timeout=self.config.connect_timeout)
        await transport.send(handshake_frame(username))

    def request_close(self) -> None:
        """Ask the manager to stop. Safe to call from a signal handler."""
        self._closing.set()

    async def close(self) -> None:
        self._closing.set()
        await self._drop_transport()
        self._set_state(ConnectionState.DISCONNECTED)

    async def _drop_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            await transport.close()

    async def _discard(self, transport: Any) -> None:
        if self._transport is transport:
            self._transport = None
        await transport.close()

    # ==================== receive ====================

    async def next_event(self) -> RawFrame | None:
        """Wait for the next frame from the server.

        Reconnects transparently after failures. Returns ``None`` only once
        the manager has been asked to close.
        """
        while not self._closing.is_set():
            if self._state is not ConnectionState.CONNECTED:
                if not await self._reconnect():
                    return None
                continue

            try:
                frame = await self._unless_closing(self._transport.recv())
            except ConnError as e:
                logger.warning("Lost connection to server: %s", e)
                await self._drop_transport()
                self._set_state(ConnectionState.DISCONNECTED)
                self._backoff_before_connect = True
                continue

            if frame is _CLOSED:
                return None
            return frame
        return None

    async def _reconnect(self) -> bool:
        """Connect, backing off between attempts. False if closed meanwhile."""
        while True:
            if self._closing.is_set():
                return False
            if self._backoff_before_connect:
                delay = self._backoff.next_delay()
                self._set_state(ConnectionState.BACKOFF, delay)
                logger.debug(
                    "Reconnecting to %s in %.1f seconds (attempt %d)",
                    self.config.server_url,
                    delay,
                    self._backoff.attempt,
                )
                if await self._wait_closing(delay):
                    return False
            try:
                await self.connect()
                return True
            except ConnError as e:
                if self._closing.is_set():
                    return False
                logger.warning("Failed to connect to server %s", self.config.server_url)
                logger.debug("Failed to connect: %s", e)
                self._backoff_before_connect = True

    async def _wait_closing(self, timeout: float) -> bool:
        """Sleep up to ``timeout``; True if a close was requested meanwhile."""
        try:
            await asyncio.wait_for(self._closing.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def _unless_closing(self, awaitable: Awaitable) -> Any:
        """Await ``awaitable`` unless a close is requested first."""
        task = asyncio.ensure_future(awaitable)
        closing = asyncio.ensure_future(self._closing.wait())
        try:
            await asyncio.wait({task, closing}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closing.cancel()
            if not task.done():
                task.cancel()

        if self._closing.is_set():
            try:
                await task
            except (asyncio.CancelledError, Fe2ioError):
                pass
            return _CLOSED
        return task.result()
