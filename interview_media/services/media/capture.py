"""Camera / microphone acquisition.

Wraps ``BaseMediaPlatform.get_user_media`` with the constraints used for
interview answers, binds the stream to the live preview in video mode and
translates platform failures into ``CaptureError`` subclasses.
"""

import logging
from collections.abc import Callable
from functools import partial

from interview_media.core.config import Settings, get_settings
from interview_media.core.exceptions import (
    CaptureError,
    DeviceUnavailableError,
    PermissionDeniedError,
)
from interview_media.core.models import (
    AudioConstraints,
    CaptureConstraints,
    MediaMode,
    VideoConstraints,
)
from interview_media.services.media.platform import (
    BaseMediaPlatform,
    BaseMediaStream,
    BaseMediaTrack,
    BasePreviewSurface,
)

logger = logging.getLogger(__name__)


def build_constraints(mode: MediaMode, settings: Settings) -> CaptureConstraints:
    """Device request for ``mode``: microphone always, camera for video."""
    audio = AudioConstraints(sample_rate=settings.audio_sample_rate)
    video = None
    if mode is MediaMode.video:
        video = VideoConstraints(width=settings.video_width, height=settings.video_height)
    return CaptureConstraints(audio=audio, video=video)


class CaptureController:
    """Holds at most one live capture stream.

    Args:
        platform: Host device access.
        preview: Optional surface that shows the camera while recording video.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        platform: BaseMediaPlatform,
        preview: BasePreviewSurface | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._platform = platform
        self._preview = preview
        self._settings = settings or get_settings()
        self._stream: BaseMediaStream | None = None
        self._preview_attached = False
        self._generation = 0
        self._device_lost_listeners: list[Callable[[BaseMediaTrack], None]] = []

    @property
    def stream(self) -> BaseMediaStream | None:
        return self._stream

    @property
    def has_stream(self) -> bool:
        return self._stream is not None

    @property
    def active_track_count(self) -> int:
        if self._stream is None:
            return 0
        return len(self._stream.get_tracks())

    def on_device_lost(self, callback: Callable[[BaseMediaTrack], None]) -> None:
        """Register a callback fired when a held track ends unexpectedly."""
        self._device_lost_listeners.append(callback)

    async def acquire(self, mode: MediaMode) -> BaseMediaStream:
        """Request a stream for ``mode``, reusing the held one if any.

        Raises:
            PermissionDeniedError: Access was refused.
            DeviceUnavailableError: No usable device.
            CaptureError: Any other platform failure (cause ``unknown``).
        """
        if self._stream is not None:
            return self._stream

        constraints = build_constraints(mode, self._settings)
        generation = self._generation
        logger.info("Requesting %s access with constraints %s", mode, constraints.model_dump())
        try:
            stream = await self._platform.get_user_media(constraints)
        except CaptureError:
            raise
        except PermissionError as exc:
            logger.warning("%s access denied: %s", mode, exc)
            raise PermissionDeniedError(mode) from exc
        except (LookupError, OSError) as exc:
            logger.warning("%s device unavailable: %s", mode, exc)
            raise DeviceUnavailableError(mode, str(exc)) from exc
        except Exception as exc:
            logger.error("Unexpected error accessing %s: %s", mode, exc)
            raise CaptureError(detail=f"Failed to access {mode}. {exc}") from exc

        if generation != self._generation or self._stream is not None:
            # Released or superseded while the permission request was pending
            for track in stream.get_tracks():
                track.stop()
            if self._stream is not None:
                return self._stream
            raise CaptureError(detail=f"{mode} capture was cancelled before it completed")

        self._stream = stream
        for track in stream.get_tracks():
            track.on_ended(partial(self._handle_track_ended, stream, track))

        if mode is MediaMode.video and self._preview is not None:
            self._preview.attach(stream, muted=True)
            self._preview_attached = True

        logger.info("Acquired %s stream with %d track(s)", mode, len(stream.get_tracks()))
        return stream

    def release(self) -> None:
        """Stop every held track and clear the preview. Idempotent."""
        self._generation += 1
        stream = self._stream
        if stream is None:
            return
        # Cleared first so the ended callbacks below are recognised as ours
        self._stream = None
        for track in stream.get_tracks():
            track.stop()
            logger.debug("Stopped %s track", track.kind)
        if self._preview is not None and self._preview_attached:
            self._preview.detach()
            self._preview_attached = False

    def _handle_track_ended(self, stream: BaseMediaStream, track: BaseMediaTrack) -> None:
        if stream is not self._stream:
            return
        logger.warning("Capture %s track ended unexpectedly", track.kind)
        for listener in list(self._device_lost_listeners):
            listener(track)
