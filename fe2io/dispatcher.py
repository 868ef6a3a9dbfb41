"""Event -> audio policy.

A stateless mapping: every call looks only at the event it is given.

    Death       play the death clip at the configured volume, duck the music
    MusicCue    replace the map music with the given track
    Left        stop the map music
    RoundStart  no-op
    RoundEnd    no-op
    Unknown     no-op
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .audio.clips import Clip
from .audio.engine import AudioEngine
from .config import Config
from .net.protocol import Death, GameEvent, Left, MusicCue, RoundEnd, RoundStart, Unknown

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Turns decoded server events into AudioEngine calls."""

    def __init__(self, engine: AudioEngine, config: Config):
        self.engine = engine
        self.config = config
        self.death_clip = Clip.parse(config.death_clip)
        self._handlers: dict[type[GameEvent], Callable[[GameEvent], None]] = {
            Death: self._on_death,
            MusicCue: self._on_music,
            Left: self._on_left,
            RoundStart: self._ignore,
            RoundEnd: self._ignore,
            Unknown: self._on_unknown,
        }

    def dispatch(self, event: GameEvent) -> None:
        handler = self._handlers.get(type(event), self._on_unknown)
        handler(event)

    def _on_death(self, event: GameEvent) -> None:
        logger.info("Player died, playing %s", self.death_clip)
        self.engine.play(self.death_clip, self.config.volume)
        self.engine.set_music_volume(self.config.volume)

    def _on_music(self, event: MusicCue) -> None:
        logger.debug("Music cue %s", event.url)
        self.engine.play_music(Clip.url(event.url))

    def _on_left(self, event: GameEvent) -> None:
        logger.info("Player left the map, stopping music")
        self.engine.stop_music()

    def _ignore(self, event: GameEvent) -> None:
        logger.debug("Ignoring %s", type(event).__name__)

    def _on_unknown(self, event: GameEvent) -> None:
        logger.debug("Unhandled server message: %r", getattr(event, "raw", event))
