"""PygameBackend on SDL's dummy audio driver (no sound card needed)."""

import os

import pytest

os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

pygame = pytest.importorskip("pygame")

from fe2io.audio.backend import PygameBackend  # noqa: E402
from fe2io.audio.clips import builtin_clip  # noqa: E402
from fe2io.exceptions import PlaybackError  # noqa: E402


@pytest.fixture
def backend():
    backend = PygameBackend()
    try:
        backend.open()
    except Exception as e:
        pytest.skip(f"no usable mixer: {e}")
    yield backend
    backend.close()


def test_builtin_death_decodes_and_plays(backend):
    sound = backend.decode(builtin_clip("death"))
    backend.play(sound, 0.5)
    backend.play(sound, 0.5)


def test_music_channel_reserved(backend):
    sound = backend.decode(builtin_clip("death"))
    backend.play_music(sound, 1.0)
    backend.set_music_volume(0.3)
    assert pygame.mixer.Channel(0).get_volume() == pytest.approx(0.3, abs=0.01)
    backend.stop_music()


def test_garbage_is_playback_error(backend):
    with pytest.raises(PlaybackError):
        backend.decode(b"definitely not audio")


def test_close_releases_mixer(backend):
    backend.close()
    assert not pygame.mixer.get_init()


def test_music_starts_past_skipped_time(backend):
    sound = backend.decode(builtin_clip("death"))
    backend.play_music(sound, 1.0, skip=0.1)
    assert backend._music is not None
    assert backend._music.get_length() < sound.get_length()
    backend.stop_music()


def test_skip_beyond_track_plays_nothing(backend):
    sound = backend.decode(builtin_clip("death"))
    backend.play_music(sound, 1.0, skip=60.0)
    assert backend._music is None
    assert not pygame.mixer.Channel(0).get_busy()
