"""Audio engine: fire-and-forget playback on worker threads.

Owns the output device exclusively. ``play`` returns immediately; each clip
is loaded, decoded and started on its own daemon thread so a slow disk, a
slow HTTP fetch or a busy device never stalls the network loop, and never
keeps the process alive after shutdown gave up on it.

Locking:
- ``_device_lock`` serializes every call into the backend, including
  open/close (single writer). Clips still overlap audibly because each one
  gets its own mixer channel.
- ``_state_lock`` guards the in-flight set, the clip cache and the music
  queue.
- ``_slots`` bounds how many cue threads load and decode at once.

Music operations go through a single daemon lane fed by a queue so
cue/stop/volume changes are applied in the order they were dispatched.
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, wait
from dataclasses import dataclass
from typing import Any

from ..config import clamp_volume
from ..exceptions import AudioInitError, PlaybackError
from .clips import Clip, load_clip

logger = logging.getLogger(__name__)

_thread_ids = itertools.count(1)


@dataclass(frozen=True)
class PlaybackRequest:
    """One clip at one volume. The volume is clamped on construction."""

    clip: Clip
    volume: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "volume", clamp_volume(self.volume))


def _as_clip(clip: Clip | str) -> Clip:
    return clip if isinstance(clip, Clip) else Clip.parse(clip)


def _run(future: Future, fn: Callable, args: tuple) -> None:
    if not future.set_running_or_notify_cancel():
        return
    try:
        result = fn(*args)
    except Exception as e:
        future.set_exception(e)
    else:
        future.set_result(result)


class AudioEngine:
    """Thread-safe front end to an audio backend."""

    def __init__(
        self,
        backend: Any = None,
        workers: int = 8,
        fetch_timeout: float = 5.0,
        loader: Callable[..., bytes] = load_clip,
    ):
        if backend is None:
            from .backend import PygameBackend

            backend = PygameBackend()
        self.backend = backend
        self.workers = workers
        self.fetch_timeout = fetch_timeout
        self._loader = loader

        self._device_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._slots = threading.BoundedSemaphore(workers)
        self._open = False
        self._accepting = False
        self._music_jobs: queue.Queue | None = None
        self._inflight: set[Future] = set()
        self._cache: dict[Clip, bytes] = {}

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def inflight(self) -> int:
        with self._state_lock:
            return len(self._inflight)

    # ==================== lifecycle ====================

    def open(self) -> None:
        """Open the output device.

        Raises:
            AudioInitError: the device is unavailable
        """
        with self._device_lock:
            if self._open:
                return
            try:
                self.backend.open()
            except AudioInitError:
                raise
            except Exception as e:
                raise AudioInitError(
                    f"Failed to open audio device: {e}",
                    backend=getattr(self.backend, "name", None),
                ) from e
            self._open = True

        jobs: queue.Queue = queue.Queue()
        threading.Thread(
            target=self._music_lane, args=(jobs,), name="fe2io-music", daemon=True
        ).start()
        with self._state_lock:
            self._music_jobs = jobs
            self._accepting = True

    def close(self, timeout: float | None = 3.0) -> bool:
        """Stop accepting work, wait for in-flight workers, release the device.

        Returns True if every worker finished within ``timeout``. Workers
        still busy afterwards are daemon threads and die with the process.
        """
        with self._state_lock:
            self._accepting = False
            jobs, self._music_jobs = self._music_jobs, None
            pending = set(self._inflight)
        if jobs is not None:
            jobs.put(None)

        drained = True
        if pending:
            logger.info("Waiting for %d playback worker(s)", len(pending))
            _, not_done = wait(pending, timeout=timeout)
            drained = not not_done
            if not drained:
                logger.warning("%d playback worker(s) still busy at shutdown", len(not_done))
                for future in not_done:
                    future.cancel()

        if self._device_lock.acquire(timeout=-1 if timeout is None else timeout):
            try:
                if self._open:
                    self._open = False
                    self.backend.close()
            finally:
                self._device_lock.release()
        else:
            self._open = False
            drained = False
            logger.warning("Audio device still busy, leaving it to process exit")
        return drained

    def preload(self, clip: Clip | str) -> None:
        """Load and decode ``clip`` now so the first cue does not pay for it.

        Raises:
            PlaybackError: the clip cannot be loaded or decoded
        """
        clip = _as_clip(clip)
        if not clip.cacheable:
            return
        self.backend.decode(self._load(clip))
        logger.debug("Preloaded %s", clip)

    # ==================== submission ====================

    def _track(self, future: Future, name: str) -> bool:
        with self._state_lock:
            if not self._accepting:
                logger.warning("Audio engine is closed, skipping %s", name)
                return False
            self._inflight.add(future)
        future.add_done_callback(self._forget)
        return True

    def _forget(self, future: Future) -> None:
        with self._state_lock:
            self._inflight.discard(future)

    def _spawn(self, fn: Callable, *args) -> Future | None:
        future: Future = Future()
        if not self._track(future, fn.__name__):
            return None
        threading.Thread(
            target=self._bounded,
            args=(future, fn, args),
            name=f"fe2io-playback-{next(_thread_ids)}",
            daemon=True,
        ).start()
        return future

    def _bounded(self, future: Future, fn: Callable, args: tuple) -> None:
        with self._slots:
            _run(future, fn, args)

    def _enqueue_music(self, fn: Callable, *args) -> Future | None:
        future: Future = Future()
        with self._state_lock:
            if not self._accepting or self._music_jobs is None:
                logger.warning("Audio engine is closed, skipping %s", fn.__name__)
                return None
            self._inflight.add(future)
            # queued under the lock so close() always enqueues its stop marker last
            self._music_jobs.put((future, fn, args))
        future.add_done_callback(self._forget)
        return future

    def _music_lane(self, jobs: queue.Queue) -> None:
        while True:
            job = jobs.get()
            if job is None:
                return
            _run(*job)

    def play(self, clip: Clip | str, volume: float) -> Future | None:
        """Start playing ``clip`` without waiting for it. Overlaps freely."""
        request = PlaybackRequest(_as_clip(clip), volume)
        return self._spawn(self._play_worker, request)

    def play_music(self, clip: Clip | str, volume: float = 1.0) -> Future | None:
        """Replace the current music track.

        The track starts at the position it would have reached had it begun
        when this call was made, so the time spent fetching it is skipped.
        """
        request = PlaybackRequest(_as_clip(clip), volume)
        return self._enqueue_music(self._music_worker, request, time.monotonic())

    def set_music_volume(self, volume: float) -> Future | None:
        return self._enqueue_music(self._music_volume_worker, clamp_volume(volume))

    def stop_music(self) -> Future | None:
        return self._enqueue_music(self._stop_music_worker)

    # ==================== workers ====================

    def _load(self, clip: Clip) -> bytes:
        if clip.cacheable:
            with self._state_lock:
                cached = self._cache.get(clip)
            if cached is not None:
                return cached
        data = self._loader(clip, timeout=self.fetch_timeout)
        if clip.cacheable:
            with self._state_lock:
                data = self._cache.setdefault(clip, data)
        return data

    def _on_device(self, action: Callable, *args) -> None:
        with self._device_lock:
            if not self._open:
                raise PlaybackError("Audio device is closed")
            action(*args)

    def _play_worker(self, request: PlaybackRequest) -> bool:
        try:
            sound = self.backend.decode(self._load(request.clip))
            self._on_device(self.backend.play, sound, request.volume)
        except PlaybackError as e:
            logger.error("Missed cue %s: %s", request.clip, e)
            return False
        except Exception as e:
            logger.error("Missed cue %s: unexpected audio error: %r", request.clip, e)
            return False
        logger.debug("Playing %s at volume %.2f", request.clip, request.volume)
        return True

    def _music_worker(self, request: PlaybackRequest, requested_at: float) -> bool:
        try:
            sound = self.backend.decode(self._load(request.clip))
            skip = time.monotonic() - requested_at
            self._on_device(self.backend.play_music, sound, request.volume, skip)
        except Exception as e:
            logger.error("Cannot play music %s: %s", request.clip, e)
            return False
        logger.info("Playing music %s (skipped %.2f seconds)", request.clip, skip)
        return True

    def _music_volume_worker(self, volume: float) -> bool:
        try:
            self._on_device(self.backend.set_music_volume, volume)
        except Exception as e:
            logger.error("Cannot change music volume: %s", e)
            return False
        return True

    def _stop_music_worker(self) -> bool:
        try:
            self._on_device(self.backend.stop_music)
        except Exception as e:
            logger.error("Cannot stop music: %s", e)
            return False
        return True
