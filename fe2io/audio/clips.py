"""Clip identifiers and loading.

A clip is one of:
- ``builtin:<name>``   a sound synthesized in memory (``builtin:death``)
- a filesystem path    read from disk
- an http(s) URL       fetched with requests (music cues)

Loading returns encoded audio bytes (WAV/OGG/MP3); decoding is the backend's
job.
"""

from __future__ import annotations

import io
import logging
import math
import wave
from array import array
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path

import requests

from ..exceptions import PlaybackError

logger = logging.getLogger(__name__)

BUILTIN_PREFIX = "builtin:"
SAMPLE_RATE = 22050


class ClipKind(Enum):
    BUILTIN = "builtin"
    FILE = "file"
    URL = "url"


@dataclass(frozen=True)
class Clip:
    kind: ClipKind
    location: str

    @classmethod
    def parse(cls, spec: str) -> Clip:
        spec = spec.strip()
        if spec.startswith(BUILTIN_PREFIX):
            return cls(ClipKind.BUILTIN, spec[len(BUILTIN_PREFIX):])
        if spec.lower().startswith(("http://", "https://")):
            return cls(ClipKind.URL, spec)
        return cls(ClipKind.FILE, spec)

    @classmethod
    def url(cls, url: str) -> Clip:
        return cls(ClipKind.URL, url)

    @property
    def cacheable(self) -> bool:
        return self.kind is not ClipKind.URL

    def __str__(self) -> str:
        if self.kind is ClipKind.BUILTIN:
            return BUILTIN_PREFIX + self.location
        return self.location


# ==================== builtin sounds ====================


def _render_wav(samples: array) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(SAMPLE_RATE)
        wav.writeframes(samples.tobytes())
    return buf.getvalue()


def _death_samples(duration: float = 0.35) -> array:
    """Falling tone, 440 Hz down to 180 Hz, with a short attack and decay."""
    count = int(SAMPLE_RATE * duration)
    samples = array("h")
    phase = 0.0
    for i in range(count):
        t = i / count
        freq = 440.0 - 260.0 * t
        phase += 2.0 * math.pi * freq / SAMPLE_RATE
        envelope = min(1.0, t * 40.0) * (1.0 - t) ** 2
        samples.append(int(0.8 * 32767 * envelope * math.sin(phase)))
    return samples


_BUILTINS = {
    "death": _death_samples,
}


@lru_cache(maxsize=None)
def builtin_clip(name: str) -> bytes:
    try:
        render = _BUILTINS[name]
    except KeyError:
        raise PlaybackError(f"Unknown builtin clip {name!r}", clip=BUILTIN_PREFIX + name) from None
    return _render_wav(render())


# ==================== loading ====================


def load_clip(clip: Clip, timeout: float = 5.0) -> bytes:
    """Return the encoded bytes of ``clip``.

    Raises:
        PlaybackError: the clip does not exist or could not be fetched
    """
    if clip.kind is ClipKind.BUILTIN:
        return builtin_clip(clip.location)

    if clip.kind is ClipKind.FILE:
        try:
            return Path(clip.location).expanduser().read_bytes()
        except OSError as e:
            raise PlaybackError(f"Cannot read clip file: {e}", clip=str(clip)) from e

    try:
        response = requests.get(clip.location, timeout=(timeout, 30.0))
        response.raise_for_status()
    except requests.RequestException as e:
        raise PlaybackError(f"Cannot fetch clip: {e}", clip=str(clip)) from e
    logger.debug("Fetched %d bytes from %s", len(response.content), clip.location)
    return response.content
