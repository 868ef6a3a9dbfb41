"""Top-level control loop.

State machine::

    STARTING --> RUNNING --> SHUTTING_DOWN --> STOPPED
        |                                        ^
        +----------------------------------------+   (fatal startup error)

STARTING validates the config and opens the audio device before any network
activity. RUNNING pulls frames from the ConnectionManager, parses them and
hands the events to the dispatcher. SIGINT/SIGTERM (or ``request_shutdown``)
ends the loop; SHUTTING_DOWN closes the connection and releases the device.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any

from .audio.engine import AudioEngine
from .config import Config
from .dispatcher import EventDispatcher
from .exceptions import Fe2ioError, FatalError, InvalidConfig, PlaybackError
from .net.connection import ConnectionManager, ConnectionState
from .net.protocol import parse
from .net.transport import WebSocketTransport

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1


class RunnerState(Enum):
    STARTING = "starting"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


VALID_TRANSITIONS: dict[RunnerState, set[RunnerState]] = {
    RunnerState.STARTING: {RunnerState.RUNNING, RunnerState.STOPPED},
    RunnerState.RUNNING: {RunnerState.SHUTTING_DOWN},
    RunnerState.SHUTTING_DOWN: {RunnerState.STOPPED},
    RunnerState.STOPPED: set(),
}


class InvalidRunnerTransition(Fe2ioError):
    def __init__(self, current: RunnerState, target: RunnerState):
        super().__init__(f"Invalid runner transition: {current.name} -> {target.name}")
        self.from_state = current
        self.to_state = target


class Runner:
    """Owns the config, the audio engine and the connection for one session."""

    def __init__(
        self,
        config: Config,
        engine: AudioEngine | None = None,
        connection: ConnectionManager | None = None,
        transport_factory: Callable[[], Any] = WebSocketTransport,
    ):
        self.config = config
        self.engine = engine or AudioEngine(
            workers=config.playback_workers, fetch_timeout=config.connect_timeout
        )
        self.connection = connection or ConnectionManager(
            config, transport_factory, status_listener=self._on_status
        )
        self.dispatcher = EventDispatcher(self.engine, config)
        self._state = RunnerState.STARTING
        self._stop_requested = False
        self.events_received = 0

    @property
    def state(self) -> RunnerState:
        return self._state

    def _transition(self, target: RunnerState) -> None:
        if target not in VALID_TRANSITIONS[self._state]:
            raise InvalidRunnerTransition(self._state, target)
        logger.debug("Runner state: %s -> %s", self._state.name, target.name)
        self._state = target

    # ==================== lifecycle ====================

    def _start(self) -> None:
        problems = self.config.validate()
        if problems:
            raise InvalidConfig("Invalid configuration: " + "; ".join(problems), problems)
        self.engine.open()
        death_clip = self.dispatcher.death_clip
        try:
            self.engine.preload(death_clip)
        except PlaybackError as e:
            self.engine.close(timeout=0)
            raise InvalidConfig(f"Death clip {death_clip} is unusable: {e}", [str(e)]) from e

    async def run(self) -> int:
        """Run until shutdown. Returns the process exit code."""
        try:
            self._start()
        except FatalError as e:
            logger.error("Startup failed: %s", e)
            self._transition(RunnerState.STOPPED)
            return EXIT_FATAL

        self._transition(RunnerState.RUNNING)
        logger.info(
            "Tracking %s on %s (volume %.2f)",
            self.config.username,
            self.config.server_url,
            self.config.volume,
        )

        exit_code = EXIT_OK
        with self._signal_handlers():
            try:
                await self._loop()
            except FatalError as e:
                logger.error("Fatal error: %s", e)
                exit_code = EXIT_FATAL
            finally:
                await self._shutdown()
        return exit_code

    async def _loop(self) -> None:
        while not self._stop_requested:
            frame = await self.connection.next_event()
            if frame is None:
                break
            self.events_received += 1
            self.dispatcher.dispatch(parse(frame))

    def request_shutdown(self) -> None:
        """Ask the loop to stop; safe to call from a signal handler."""
        if self._stop_requested:
            return
        logger.warning("Received interrupt, exiting")
        self._stop_requested = True
        self.connection.request_close()

    async def _shutdown(self) -> None:
        self._transition(RunnerState.SHUTTING_DOWN)
        await self.connection.close()
        drained = await asyncio.to_thread(self.engine.close, self.config.shutdown_timeout)
        if not drained:
            logger.warning("Audio engine released with playback still in flight")
        self._transition(RunnerState.STOPPED)
        logger.info("Stopped")

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
                installed.append(sig)
            except (NotImplementedError, RuntimeError, ValueError):
                # Windows, or not on the main thread
                pass
        try:
            yield
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

    # ==================== status ====================

    def _on_status(self, state: ConnectionState, delay: float | None) -> None:
        if state is ConnectionState.BACKOFF:
            logger.warning("Disconnected, retrying in %.1f seconds", delay)
        elif state is ConnectionState.CONNECTING:
            logger.info("Connecting to %s", self.config.server_url)
