"""Client configuration.

Every tunable lives on the frozen ``Config`` dataclass. Values not given on
the command line can be overridden from the environment:

- FE2IO_DEATH_CLIP: clip played on death (``builtin:death``, a path or a URL)
- FE2IO_RECONNECT_DELAY / FE2IO_MAX_RECONNECT_DELAY: backoff bounds in seconds
- FE2IO_BACKOFF_FACTOR / FE2IO_BACKOFF_JITTER: backoff growth and jitter ratio
- FE2IO_CONNECT_TIMEOUT: WebSocket / HTTP connect timeout in seconds
- FE2IO_SHUTDOWN_TIMEOUT: how long shutdown waits for playback workers
- FE2IO_PLAYBACK_WORKERS: size of the playback thread pool
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from urllib.parse import urlparse

DEFAULT_SERVER_URL = "ws://client.fe2.io:8081"
DEFAULT_VOLUME = 0.5
DEFAULT_DEATH_CLIP = "builtin:death"


def _get_env_float(key: str, default: float) -> float:
    value = os.environ.get(key)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            pass
    return default


def _get_env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            pass
    return default


def clamp_volume(volume: float) -> float:
    """Clamp a linear volume into [0.0, 1.0]. NaN is treated as silence."""
    volume = float(volume)
    if volume != volume:
        return 0.0
    return max(0.0, min(1.0, volume))


@dataclass(frozen=True)
class Config:
    """Immutable client configuration, owned by the Runner."""

    username: str
    volume: float = DEFAULT_VOLUME
    server_url: str = DEFAULT_SERVER_URL

    death_clip: str = field(
        default_factory=lambda: os.environ.get("FE2IO_DEATH_CLIP", DEFAULT_DEATH_CLIP)
    )

    # ==================== reconnect ====================
    reconnect_delay: float = field(
        default_factory=lambda: _get_env_float("FE2IO_RECONNECT_DELAY", 1.0)
    )
    max_reconnect_delay: float = field(
        default_factory=lambda: _get_env_float("FE2IO_MAX_RECONNECT_DELAY", 30.0)
    )
    backoff_factor: float = field(
        default_factory=lambda: _get_env_float("FE2IO_BACKOFF_FACTOR", 2.0)
    )
    backoff_jitter: float = field(
        default_factory=lambda: _get_env_float("FE2IO_BACKOFF_JITTER", 0.1)
    )
    connect_timeout: float = field(
        default_factory=lambda: _get_env_float("FE2IO_CONNECT_TIMEOUT", 5.0)
    )

    # ==================== audio / lifecycle ====================
    shutdown_timeout: float = field(
        default_factory=lambda: _get_env_float("FE2IO_SHUTDOWN_TIMEOUT", 3.0)
    )
    playback_workers: int = field(
        default_factory=lambda: _get_env_int("FE2IO_PLAYBACK_WORKERS", 8)
    )

    @classmethod
    def from_args(
        cls,
        username: str,
        volume: float | None = None,
        server_url: str | None = None,
        **overrides,
    ) -> Config:
        """Build a config from command-line values, clamping the volume."""
        return cls(
            username=(username or "").strip(),
            volume=clamp_volume(DEFAULT_VOLUME if volume is None else volume),
            server_url=server_url or DEFAULT_SERVER_URL,
            **{k: v for k, v in overrides.items() if v is not None},
        )

    def with_overrides(self, **changes) -> Config:
        return replace(self, **changes)

    def validate(self) -> list[str]:
        """Return a list of problems; an empty list means the config is usable."""
        errors: list[str] = []
        if not self.username or not self.username.strip():
            errors.append("username must be a non-empty string")
        if not 0.0 <= self.volume <= 1.0:
            errors.append(f"volume must be within [0, 1], got {self.volume}")

        parsed = urlparse(self.server_url)
        if parsed.scheme not in ("ws", "wss") or not parsed.hostname:
            errors.append(f"server_url must be a ws:// or wss:// URL, got {self.server_url!r}")
        else:
            try:
                parsed.port
            except ValueError:
                errors.append(f"server_url has an invalid port: {self.server_url!r}")

        if not self.death_clip:
            errors.append("death_clip must not be empty")
        if self.reconnect_delay <= 0:
            errors.append(f"reconnect_delay must be > 0, got {self.reconnect_delay}")
        if self.max_reconnect_delay < self.reconnect_delay:
            errors.append(
                f"max_reconnect_delay ({self.max_reconnect_delay}) must be >= "
                f"reconnect_delay ({self.reconnect_delay})"
            )
        if self.backoff_factor < 1.0:
            errors.append(f"backoff_factor must be >= 1, got {self.backoff_factor}")
        if not 0.0 <= self.backoff_jitter < 1.0:
            errors.append(f"backoff_jitter must be within [0, 1), got {self.backoff_jitter}")
        if self.connect_timeout <= 0:
            errors.append(f"connect_timeout must be > 0, got {self.connect_timeout}")
        if self.shutdown_timeout < 0:
            errors.append(f"shutdown_timeout must be >= 0, got {self.shutdown_timeout}")
        if self.playback_workers < 1:
            errors.append(f"playback_workers must be >= 1, got {self.playback_workers}")
        return errors
