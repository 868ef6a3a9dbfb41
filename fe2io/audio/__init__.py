"""Audio side: clip loading and the thread-safe playback engine.

The pygame backend is imported lazily by ``AudioEngine`` so importing this
package does not touch the mixer.
"""

from .clips import Clip, ClipKind, load_clip
from .engine import AudioEngine, PlaybackRequest

__all__ = ["AudioEngine", "PlaybackRequest", "Clip", "ClipKind", "load_clip"]
