"""pygame mixer output device.

The engine talks to the device only through this class, which keeps the
pygame specifics (channel allocation, decoding from memory) in one place.
Channel 0 is reserved for map music; cue clips are mixed on the others so
overlapping cues never cut each other off.
"""

from __future__ import annotations

import io
import logging
import os

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import pygame

from ..exceptions import AudioInitError, PlaybackError

logger = logging.getLogger(__name__)

MUSIC_CHANNEL = 0


class PygameBackend:
    """Mixer-backed implementation of the audio capability."""

    name = "pygame"

    def __init__(
        self,
        frequency: int = 44100,
        size: int = -16,
        channels: int = 2,
        buffer: int = 512,
        num_channels: int = 16,
    ):
        self.frequency = frequency
        self.size = size
        self.channels = channels
        self.buffer = buffer
        self.num_channels = num_channels
        self._music: pygame.mixer.Sound | None = None

    def open(self) -> None:
        if pygame.mixer.get_init():
            return
        try:
            pygame.mixer.init(
                frequency=self.frequency,
                size=self.size,
                channels=self.channels,
                buffer=self.buffer,
            )
        except pygame.error as e:
            raise AudioInitError(f"Failed to open audio device: {e}", backend=self.name) from e
        pygame.mixer.set_num_channels(self.num_channels)
        pygame.mixer.set_reserved(1)
        logger.info("Audio device opened (%d Hz, %d channels)", self.frequency, self.num_channels)

    def close(self) -> None:
        if pygame.mixer.get_init():
            pygame.mixer.quit()
        self._music = None
        logger.info("Audio device closed")

    def decode(self, data: bytes) -> pygame.mixer.Sound:
        try:
            return pygame.mixer.Sound(file=io.BytesIO(data))
        except pygame.error as e:
            raise PlaybackError(f"Cannot decode clip: {e}") from e

    def play(self, sound: pygame.mixer.Sound, volume: float) -> None:
        channel = pygame.mixer.find_channel(True)
        if channel is None:
            raise PlaybackError("No free mixer channel")
        channel.set_volume(volume)
        channel.play(sound)

    def play_music(self, sound: pygame.mixer.Sound, volume: float, skip: float = 0.0) -> None:
        channel = pygame.mixer.Channel(MUSIC_CHANNEL)
        channel.stop()
        if skip > 0:
            sound = self._skip(sound, skip)
            if sound is None:
                self._music = None
                return
        channel.set_volume(volume)
        channel.play(sound)
        self._music = sound

    def _skip(self, sound: pygame.mixer.Sound, seconds: float) -> pygame.mixer.Sound | None:
        """Drop the first ``seconds`` of ``sound``; None if nothing is left."""
        frequency, size, channels = pygame.mixer.get_init()
        frame = abs(size) // 8 * channels
        offset = int(seconds * frequency) * frame
        raw = sound.get_raw()
        if offset >= len(raw):
            logger.debug("Music track is shorter than the %.2f s to skip", seconds)
            return None
        return pygame.mixer.Sound(buffer=raw[offset:])

    def set_music_volume(self, volume: float) -> None:
        pygame.mixer.Channel(MUSIC_CHANNEL).set_volume(volume)

    def stop_music(self) -> None:
        pygame.mixer.Channel(MUSIC_CHANNEL).stop()
        self._music = None
