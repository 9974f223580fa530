"""
Interview media exception hierarchy.

All application-specific exceptions inherit from InterviewMediaError and
carry an ``ErrorCause`` so the hosting view can pick the alert to show
without matching on exception types.
"""

from datetime import UTC, datetime

from interview_media.core.models import ErrorCause, MediaMode


class InterviewMediaError(Exception):
    """Base exception for all interview media errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "INTERVIEW_MEDIA_ERROR",
        cause: ErrorCause = ErrorCause.unknown,
    ) -> None:
        self.detail = detail
        self.code = code
        self.cause = cause
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


class CaptureError(InterviewMediaError):
    """Raised when a camera/microphone stream cannot be acquired."""

    def __init__(
        self,
        detail: str = "Failed to access media devices",
        code: str = "CAPTURE_ERROR",
        cause: ErrorCause = ErrorCause.unknown,
    ) -> None:
        super().__init__(detail=detail, code=code, cause=cause)


class PermissionDeniedError(CaptureError):
    """Raised when the user (or the OS) refuses device access."""

    def __init__(self, mode: MediaMode) -> None:
        devices = "microphone" if mode is MediaMode.audio else "camera and microphone"
        super().__init__(
            detail=f"Failed to access {mode}. Please grant permission to use your {devices}.",
            code="PERMISSION_DENIED",
            cause=ErrorCause.permission_denied,
        )


class DeviceUnavailableError(CaptureError):
    """Raised when no usable capture device exists."""

    def __init__(self, mode: MediaMode, reason: str = "") -> None:
        detail = f"Failed to access {mode}. " + (reason or "Please check your device settings.")
        super().__init__(
            detail=detail,
            code="DEVICE_UNAVAILABLE",
            cause=ErrorCause.device_unavailable,
        )


class DeviceLostError(InterviewMediaError):
    """Raised when a capture track ends while it is still in use."""

    def __init__(self, track_kind: str) -> None:
        super().__init__(
            detail=f"The {track_kind} device was disconnected. Please reset and try again.",
            code="DEVICE_LOST",
            cause=ErrorCause.device_lost,
        )


class EmptyRecordingError(InterviewMediaError):
    """Raised when a recording finishes without any captured data."""

    def __init__(self, mode: MediaMode) -> None:
        super().__init__(
            detail=f"No {mode} data was recorded. Please try again.",
            code="EMPTY_RECORDING",
            cause=ErrorCause.empty_recording,
        )


class RecorderStateError(InterviewMediaError):
    """Raised when an operation is not valid in the current session state."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail=detail, code="INVALID_STATE")


class RecordingError(InterviewMediaError):
    """Raised when the platform recording primitive fails to start or run."""

    def __init__(self, detail: str = "Failed to start recording. Please try again.") -> None:
        super().__init__(detail=detail, code="RECORDING_ERROR")


class PlaybackFailureError(InterviewMediaError):
    """Raised when the media sink rejects a playback command."""

    def __init__(self, detail: str = "Playback failed") -> None:
        super().__init__(
            detail=detail,
            code="PLAYBACK_FAILURE",
            cause=ErrorCause.playback_failure,
        )


class TranscriptionError(InterviewMediaError):
    """Raised when a single speech-to-text method fails."""

    def __init__(self, detail: str = "Transcription failed") -> None:
        super().__init__(
            detail=detail,
            code="TRANSCRIPTION_ERROR",
            cause=ErrorCause.transcription_failure,
        )


class UploadError(InterviewMediaError):
    """Raised when the recorded artifact cannot be stored or persisted."""

    def __init__(self, detail: str = "Upload failed") -> None:
        super().__init__(
            detail=detail,
            code="UPLOAD_ERROR",
            cause=ErrorCause.upload_failure,
        )


class TemplateNotFoundError(InterviewMediaError):
    """Raised when an interview template does not exist."""

    def __init__(self, template_id: str) -> None:
        super().__init__(
            detail=f"Template not found: {template_id}",
            code="TEMPLATE_NOT_FOUND",
        )
