"""Property-based tests for volume clamping.

Invariants:
1. clamp_volume always lands in [0, 1]
2. values already in range pass through unchanged
3. PlaybackRequest never carries an out-of-range volume
"""

from __future__ import annotations

import math

from hypothesis import given, settings
from hypothesis import strategies as st

from fe2io.audio.clips import Clip
from fe2io.audio.engine import PlaybackRequest
from fe2io.config import Config, clamp_volume

any_float = st.floats(allow_nan=True, allow_infinity=True)


@given(v=any_float)
@settings(max_examples=300)
def test_clamp_in_unit_range(v: float) -> None:
    assert 0.0 <= clamp_volume(v) <= 1.0


@given(v=st.floats(min_value=0.0, max_value=1.0))
def test_in_range_unchanged(v: float) -> None:
    assert clamp_volume(v) == v


@given(v=st.floats(max_value=0.0, exclude_max=True, allow_infinity=True, allow_nan=False))
def test_negative_is_silent(v: float) -> None:
    assert clamp_volume(v) == 0.0


@given(v=st.floats(min_value=1.0, exclude_min=True, allow_infinity=True, allow_nan=False))
def test_above_one_is_full(v: float) -> None:
    assert clamp_volume(v) == 1.0


@given(v=any_float)
def test_playback_request_is_clamped(v: float) -> None:
    request = PlaybackRequest(Clip.parse("builtin:death"), v)
    assert 0.0 <= request.volume <= 1.0
    assert not math.isnan(request.volume)


@given(v=any_float)
def test_config_from_args_is_valid_volume(v: float) -> None:
    config = Config.from_args("alice", v)
    assert 0.0 <= config.volume <= 1.0
    assert not any("volume" in p for p in config.validate())
