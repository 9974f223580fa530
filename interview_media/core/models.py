"""
Pydantic v2 models and enums shared by the media components.

Recording, Playback, Analysis, Transcription, Recognition, Upload, Feedback
"""

import math
from dataclasses import dataclass, field
from enum import StrEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field

# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class MediaMode(StrEnum):
    """Kind of answer being captured."""

    audio = "audio"
    video = "video"


class SessionState(StrEnum):
    """Possible states for a media session."""

    idle = "idle"
    acquiring = "acquiring"
    ready = "ready"
    recording = "recording"
    stopped = "stopped"
    error = "error"


class ErrorCause(StrEnum):
    """Machine-readable cause attached to every failure."""

    permission_denied = "permission-denied"
    device_unavailable = "device-unavailable"
    device_lost = "device-lost"
    empty_recording = "empty-recording"
    playback_failure = "playback-failure"
    transcription_failure = "transcription-failure"
    upload_failure = "upload-failure"
    unknown = "unknown"


class AudioConstraints(BaseModel):
    """Microphone processing requested from the platform."""

    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True
    sample_rate: int = 48000


class VideoConstraints(BaseModel):
    """Camera resolution requested from the platform."""

    width: int = 640
    height: int = 480


class CaptureConstraints(BaseModel):
    """Full device request; ``video`` is None in audio mode."""

    audio: AudioConstraints = Field(default_factory=AudioConstraints)
    video: VideoConstraints | None = None


class RecorderOptions(BaseModel):
    """Options handed to the platform recording primitive."""

    mime_type: str
    audio_bits_per_second: int = 128_000
    video_bits_per_second: int | None = None


class MediaBlob(BaseModel):
    """Immutable finalized recording."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        """Number of bytes in the blob."""
        return len(self.data)


@dataclass
class MediaSession:
    """In-memory lifecycle of one recording attempt.

    Owned exclusively by the recorder state machine. Other components only
    hold a reference and must not outlive a reset.
    """

    mode: MediaMode
    session_id: str = field(default_factory=lambda: uuid4().hex)
    state: SessionState = SessionState.idle
    elapsed_seconds: int = 0
    chunks: list[bytes] = field(default_factory=list)
    mime_type: str | None = None
    result_blob: MediaBlob | None = None
    result_url: str | None = None
    error: Exception | None = None

    @property
    def cause(self) -> ErrorCause | None:
        """Cause of the current error, or None when the session is healthy."""
        if self.error is None:
            return None
        return getattr(self.error, "cause", ErrorCause.unknown)

    @property
    def buffered_bytes(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------


class PlaybackState(BaseModel):
    """Playback position and volume for a finalized recording."""

    current_time: float = 0.0
    duration: float = 0.0
    is_playing: bool = False
    volume: float = 0.5
    is_muted: bool = False
    previous_volume: float = 0.5

    @computed_field  # type: ignore[prop-decorator]
    @property
    def effective_volume(self) -> float:
        """Volume actually applied to the sink (0 while muted)."""
        return 0.0 if self.is_muted else self.volume

    @property
    def has_finite_duration(self) -> bool:
        return math.isfinite(self.duration) and self.duration > 0


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------


class AnalysisSample(BaseModel):
    """One synthetic quality snapshot; every value is a percentage."""

    model_config = ConfigDict(frozen=True)

    volume: float = Field(ge=0, le=100)
    pace: float = Field(ge=0, le=100)
    clarity: float = Field(ge=0, le=100)
    confidence: float = Field(ge=0, le=100)
    facial_expressions: float | None = Field(default=None, ge=0, le=100)
    eye_contact: float | None = Field(default=None, ge=0, le=100)


# ---------------------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------------------


class TranscriptionMethod(StrEnum):
    """Which step of the fallback chain produced a transcript."""

    local = "local"
    fallback = "fallback"
    failed = "failed"


class TranscriptionResult(BaseModel):
    """Transcript for one finalized session."""

    model_config = ConfigDict(frozen=True)

    text: str
    method: TranscriptionMethod
    session_id: str | None = None


class RecognitionResult(BaseModel):
    """A single result delivered by a speech recognizer."""

    transcript: str
    is_final: bool = False
    confidence: float = 0.0


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


class UploadResult(BaseModel):
    """Where a recorded artifact ended up."""

    path: str
    public_url: str
    content_type: str
    size: int


class ResponseRecord(BaseModel):
    """Row persisted alongside an uploaded answer."""

    question_id: str
    response_type: str
    response_text: str | None = None
    media_url: str | None = None


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------


class PreviewFeedback(BaseModel):
    """Instant feedback derived from the last analysis sample."""

    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    confidence_score: float = 0.0
