"""Tests for fe2io.exceptions: the error taxonomy."""

import pytest

from fe2io.exceptions import (
    AudioInitError,
    ConnError,
    FatalError,
    Fe2ioError,
    InvalidConfig,
    PlaybackError,
    RecoverableError,
)

# ==================== Fe2ioError base ====================


class TestFe2ioError:
    def test_basic(self):
        e = Fe2ioError("test")
        assert e.message == "test"
        assert e.details == {}
        assert str(e) == "test"

    def test_with_details(self):
        e = Fe2ioError("boom", {"key": "value"})
        assert "boom" in str(e)
        assert "key" in str(e)


# ==================== taxonomy ====================


class TestTaxonomy:
    @pytest.mark.parametrize("cls", [InvalidConfig, AudioInitError])
    def test_fatal(self, cls):
        assert issubclass(cls, FatalError)
        assert not issubclass(cls, RecoverableError)

    @pytest.mark.parametrize("cls", [ConnError, PlaybackError])
    def test_recoverable(self, cls):
        assert issubclass(cls, RecoverableError)
        assert not issubclass(cls, FatalError)

    def test_invalid_config_problems(self):
        e = InvalidConfig("bad config", ["username must be a non-empty string"])
        assert e.problems == ["username must be a non-empty string"]
        assert "username" in str(e)

    def test_invalid_config_no_problems(self):
        e = InvalidConfig("bad config")
        assert e.problems == []
        assert str(e) == "bad config"

    def test_audio_init_backend(self):
        e = AudioInitError("no device", backend="pygame")
        assert e.backend == "pygame"
        assert "pygame" in str(e)

    def test_conn_error_url(self):
        e = ConnError("refused", url="ws://localhost:1")
        assert e.url == "ws://localhost:1"
        assert e.details == {"url": "ws://localhost:1"}

    def test_playback_error_clip(self):
        e = PlaybackError("missing", clip="builtin:death")
        assert e.clip == "builtin:death"

    def test_catch_as_base(self):
        with pytest.raises(Fe2ioError):
            raise ConnError("x")
