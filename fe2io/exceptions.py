"""Error taxonomy for the fe2io client.

Fatal errors (raised during startup, abort with a non-zero exit):
- InvalidConfig
- AudioInitError

Recoverable errors (absorbed where they occur):
- ConnError      -> ConnectionManager backs off and reconnects
- PlaybackError  -> AudioEngine logs the missed cue and moves on
"""

from __future__ import annotations


class Fe2ioError(Exception):
    """Base class for every error raised by this package.

    Carries an optional ``details`` dict that is rendered in ``str()`` so
    log lines show the context without each caller formatting it.
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class FatalError(Fe2ioError):
    """Startup error; the process cannot continue."""


class RecoverableError(Fe2ioError):
    """Runtime error that is handled locally and never stops the client."""


# ==================== Fatal ====================


class InvalidConfig(FatalError):
    """Configuration is missing or malformed."""

    def __init__(self, message: str, problems: list[str] | None = None):
        details = {"problems": problems} if problems else None
        super().__init__(message, details)
        self.problems = problems or []


class AudioInitError(FatalError):
    """The audio output device could not be opened."""

    def __init__(self, message: str, backend: str | None = None):
        details = {"backend": backend} if backend else None
        super().__init__(message, details)
        self.backend = backend


# ==================== Recoverable ====================


class ConnError(RecoverableError):
    """Connecting to, reading from or writing to the server failed."""

    def __init__(self, message: str, url: str | None = None):
        details = {"url": url} if url else None
        super().__init__(message, details)
        self.url = url


class PlaybackError(RecoverableError):
    """A single clip could not be played."""

    def __init__(self, message: str, clip: str | None = None):
        details = {"clip": clip} if clip else None
        super().__init__(message, details)
        self.clip = clip
