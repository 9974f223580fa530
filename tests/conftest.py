"""Shared pytest fixtures for the interview media test suite.

Provides the platform fakes from ``fakes.py`` as fixtures and a Settings
instance with short intervals so timers fire quickly.
"""

import math
import struct

import pytest
from fakes import FakePlatform, FakePreview

from interview_media.core.config import Settings
from interview_media.core.models import MediaBlob
from interview_media.services.media.resources import ObjectUrlRegistry, TimerRegistry

# ---------------------------------------------------------------------------
# Settings / registries
# ---------------------------------------------------------------------------


@pytest.fixture
def settings():
    """Settings with millisecond timers and no .env lookup.

    Returns:
        Settings: Short intervals, zero settle delays, fixed analysis seed.
    """
    return Settings(
        _env_file=None,
        recording_tick_seconds=0.01,
        acquire_settle_seconds=0,
        playback_poll_seconds=0.01,
        playback_settle_seconds=0,
        analysis_interval_seconds=0.01,
        analysis_seed=7,
        fallback_timeout_seconds=0.5,
        supabase_url="https://project.supabase.co",
        supabase_key="service-key",
        upload_max_attempts=3,
    )


@pytest.fixture
def timers():
    return TimerRegistry()


@pytest.fixture
def urls():
    return ObjectUrlRegistry()


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def preview():
    return FakePreview()


# ---------------------------------------------------------------------------
# Audio Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_pcm_bytes():
    """Generate 1 second of 440Hz sine-wave PCM audio (16kHz, 16-bit, mono).

    Returns:
        bytes: Raw PCM audio data.
    """
    sample_rate = 16000
    amplitude = 16000  # ~50% of max int16

    samples = []
    for i in range(sample_rate):
        value = int(amplitude * math.sin(2 * math.pi * 440.0 * i / sample_rate))
        samples.append(struct.pack("<h", value))
    return b"".join(samples)


@pytest.fixture
def webm_blob():
    """A finalized 3 KiB audio recording."""
    return MediaBlob(data=b"\x1a" * 3072, mime_type="audio/webm;codecs=opus")


@pytest.fixture
def silent_pcm_bytes():
    """Generate 1 second of digital silence (16kHz, 16-bit, mono).

    Returns:
        bytes: Raw PCM audio data (all zeros).
    """
    return b"\x00\x00" * 16000


@pytest.fixture
def wav_bytes(sample_pcm_bytes):
    """The 440Hz tone framed as a streamed WAV file (unknown sizes)."""
    from interview_media.services.media.processor import AudioProcessor

    return AudioProcessor(sample_rate=16000).wav_stream_header() + sample_pcm_bytes
