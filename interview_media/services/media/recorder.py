"""
Recorder state machine for audio and video answers.

States: idle -> acquiring -> ready -> recording -> stopped, with error
reachable from any state and reset() starting a fresh session in idle.

Data arrives from the platform recording primitive in small time slices and
is accumulated in the session's chunk buffer; stop() waits for the
primitive's finalization callback and assembles the chunks into one blob.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from functools import partial

from interview_media.core.config import Settings, get_settings
from interview_media.core.exceptions import (
    CaptureError,
    DeviceLostError,
    DeviceUnavailableError,
    EmptyRecordingError,
    InterviewMediaError,
    RecorderStateError,
    RecordingError,
)
from interview_media.core.models import (
    MediaBlob,
    MediaMode,
    MediaSession,
    RecorderOptions,
    SessionState,
)
from interview_media.services.media.capture import CaptureController
from interview_media.services.media.platform import (
    BaseMediaPlatform,
    BaseMediaRecorder,
    BaseMediaTrack,
)
from interview_media.services.media.resources import (
    IntervalTimer,
    ObjectUrlRegistry,
    TimerRegistry,
)

logger = logging.getLogger(__name__)

# MIME types in order of preference
AUDIO_MIME_TYPES = (
    "audio/webm;codecs=opus",
    "audio/webm",
    "audio/mp4",
    "audio/ogg;codecs=opus",
    "audio/ogg",
    "audio/wav",
)
VIDEO_MIME_TYPES = (
    "video/webm;codecs=vp9,opus",
    "video/webm;codecs=vp8,opus",
    "video/webm",
    "video/mp4",
    "video/webm;codecs=h264",
)
GENERIC_MIME_TYPES = {
    MediaMode.audio: "audio/webm",
    MediaMode.video: "video/webm",
}

StateListener = Callable[[MediaSession, SessionState, SessionState], None]


def negotiate_mime_type(mode: MediaMode, platform: BaseMediaPlatform) -> str:
    """Return the first preferred MIME type the platform can record.

    Falls back to the generic container for ``mode`` when none is supported.
    """
    preferences = AUDIO_MIME_TYPES if mode is MediaMode.audio else VIDEO_MIME_TYPES
    for mime_type in preferences:
        try:
            if platform.is_type_supported(mime_type):
                return mime_type
        except Exception as exc:
            logger.warning("Error checking MIME type support for %s: %s", mime_type, exc)
    return GENERIC_MIME_TYPES[mode]


class RecorderStateMachine:
    """Drives one media session at a time over a platform recorder.

    Args:
        mode: Whether answers are recorded as audio or video.
        platform: Host device access and recording primitive.
        capture: Controller that owns the live stream.
        timers: Registry tracking the recording clock.
        urls: Registry issuing the playback URL of the finalized blob.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        mode: MediaMode,
        platform: BaseMediaPlatform,
        capture: CaptureController,
        timers: TimerRegistry,
        urls: ObjectUrlRegistry,
        settings: Settings | None = None,
    ) -> None:
        self.mode = mode
        self._platform = platform
        self._capture = capture
        self._timers = timers
        self._urls = urls
        self._settings = settings or get_settings()
        self._session = MediaSession(mode=mode)
        self._media_recorder: BaseMediaRecorder | None = None
        self._clock: IntervalTimer | None = None
        self._finalizing: asyncio.Future[MediaBlob] | None = None
        self._closed = False

        self._state_listeners: list[StateListener] = []
        self._tick_listeners: list[Callable[[int], None]] = []
        self._complete_listeners: list[Callable[[MediaSession, MediaBlob], None]] = []
        self._reset_listeners: list[Callable[[MediaSession, MediaSession], None]] = []

        capture.on_device_lost(self._handle_device_lost)

    @property
    def session(self) -> MediaSession:
        return self._session

    @property
    def closed(self) -> bool:
        return self._closed

    # -- listeners --

    def on_state_change(self, callback: StateListener) -> None:
        self._state_listeners.append(callback)

    def on_tick(self, callback: Callable[[int], None]) -> None:
        self._tick_listeners.append(callback)

    def on_complete(self, callback: Callable[[MediaSession, MediaBlob], None]) -> None:
        self._complete_listeners.append(callback)

    def on_reset(self, callback: Callable[[MediaSession, MediaSession], None]) -> None:
        """Register a callback receiving ``(previous_session, new_session)``."""
        self._reset_listeners.append(callback)

    def _emit(self, listeners: Iterable[Callable], *args) -> None:
        for listener in list(listeners):
            try:
                listener(*args)
            except Exception:
                logger.exception("Recorder listener %r failed (non-fatal)", listener)

    # -- transitions --

    def _transition(self, new_state: SessionState) -> None:
        session = self._session
        previous = session.state
        if previous is new_state:
            return
        session.state = new_state
        logger.debug("Session %s: %s -> %s", session.session_id, previous, new_state)
        self._emit(self._state_listeners, session, previous, new_state)

    def _fail(self, exc: InterviewMediaError) -> None:
        self._cancel_clock()
        session = self._session
        session.error = exc
        session.result_blob = None
        logger.warning(
            "Session %s failed (%s): %s", session.session_id, exc.cause, exc.detail
        )
        self._transition(SessionState.error)

    def _cancel_clock(self) -> None:
        if self._clock is not None:
            self._clock.cancel()
            self._clock = None

    def _settle_finalizing(self, exc: Exception | None = None, blob: MediaBlob | None = None) -> None:
        future = self._finalizing
        self._finalizing = None
        if future is None or future.done():
            return
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(blob)

    # -- start --

    async def start(self) -> None:
        """Start recording, acquiring a stream first if none is held.

        Raises:
            RecorderStateError: Already recording, not reset after a stop,
                or the recorder was closed.
            CaptureError: Device access failed (session lands in ``error``).
            RecordingError: The recording primitive could not be started.
        """
        if self._closed:
            raise RecorderStateError("Recorder has been closed")
        state = self._session.state
        if state in (SessionState.acquiring, SessionState.recording):
            raise RecorderStateError(f"Cannot start while {state}")
        if state is SessionState.stopped:
            raise RecorderStateError("Reset the recorder before recording again")

        self._session.error = None
        await self._start(retries_left=self._settings.acquire_retry_limit)

    async def _start(self, retries_left: int) -> None:
        session = self._session
        if not self._capture.has_stream:
            if retries_left <= 0:
                exc = DeviceUnavailableError(
                    self.mode, "The device stream was lost before recording could start."
                )
                self._fail(exc)
                raise exc

            self._transition(SessionState.acquiring)
            try:
                await self._capture.acquire(self.mode)
            except CaptureError as exc:
                if session is self._session:
                    self._fail(exc)
                raise
            if session is not self._session or self._closed:
                raise RecorderStateError("Recording start was interrupted by a reset")
            self._transition(SessionState.ready)

            if self._settings.acquire_settle_seconds > 0:
                await asyncio.sleep(self._settings.acquire_settle_seconds)
            if session is not self._session or self._closed:
                raise RecorderStateError("Recording start was interrupted by a reset")
            await self._start(retries_left - 1)
            return

        self._begin_recording()

    def _begin_recording(self) -> None:
        session = self._session
        mime_type = negotiate_mime_type(self.mode, self._platform)
        options = RecorderOptions(
            mime_type=mime_type,
            audio_bits_per_second=self._settings.audio_bits_per_second,
            video_bits_per_second=(
                self._settings.video_bits_per_second if self.mode is MediaMode.video else None
            ),
        )

        session.chunks.clear()
        session.elapsed_seconds = 0
        session.mime_type = mime_type

        try:
            recorder = self._platform.create_recorder(self._capture.stream, options)
            recorder.on_data(partial(self._handle_data, recorder))
            recorder.on_stop(partial(self._handle_stop, recorder))
            recorder.on_error(partial(self._handle_recorder_error, recorder))
            recorder.start(self._settings.recorder_timeslice_ms)
        except Exception as exc:
            error = RecordingError(f"Failed to start {self.mode} recording. {exc}")
            self._fail(error)
            raise error from exc

        self._media_recorder = recorder
        logger.info("Recording %s using MIME type %s", self.mode, mime_type)
        self._transition(SessionState.recording)
        self._clock = self._timers.start_interval(
            "recording-clock", self._settings.recording_tick_seconds, self._tick
        )

    def _tick(self) -> None:
        session = self._session
        if session.state is not SessionState.recording:
            self._cancel_clock()
            return
        session.elapsed_seconds += 1
        self._emit(self._tick_listeners, session.elapsed_seconds)

    # -- recorder callbacks --

    def _handle_data(self, recorder: BaseMediaRecorder, data: bytes) -> None:
        if recorder is not self._media_recorder or not data:
            return
        self._session.chunks.append(bytes(data))
        logger.debug("Received %s chunk: %d bytes", self.mode, len(data))

    def _handle_stop(self, recorder: BaseMediaRecorder) -> None:
        if recorder is not self._media_recorder:
            return
        self._media_recorder = None
        self._cancel_clock()
        self._capture.release()

        session = self._session
        logger.info("Recording stopped. Total chunks: %d", len(session.chunks))
        data = b"".join(session.chunks)
        session.chunks.clear()

        if not data:
            exc = EmptyRecordingError(self.mode)
            self._fail(exc)
            self._settle_finalizing(exc=exc)
            return

        blob = MediaBlob(data=data, mime_type=session.mime_type or GENERIC_MIME_TYPES[self.mode])
        if session.result_url is not None:
            self._urls.revoke(session.result_url)
        session.result_url = self._urls.create(blob)
        session.result_blob = blob
        logger.info("%s blob created: %d bytes, %s", self.mode, blob.size, blob.mime_type)

        self._transition(SessionState.stopped)
        self._emit(self._complete_listeners, session, blob)
        self._settle_finalizing(blob=blob)

    def _handle_recorder_error(self, recorder: BaseMediaRecorder, error: Exception) -> None:
        if recorder is not self._media_recorder:
            return
        self._detach_recorder()
        self._capture.release()
        exc = RecordingError(f"The {self.mode} recorder failed: {error}")
        self._fail(exc)
        self._settle_finalizing(exc=exc)

    def _handle_device_lost(self, track: BaseMediaTrack) -> None:
        session = self._session
        if session.state is SessionState.recording:
            self._detach_recorder()
            self._capture.release()
            session.chunks.clear()
            exc = DeviceLostError(track.kind)
            self._fail(exc)
            self._settle_finalizing(exc=exc)
            return

        # Not recording yet: drop the dead stream, the next start() re-acquires
        self._capture.release()
        if session.state is SessionState.ready:
            self._transition(SessionState.idle)

    def _detach_recorder(self) -> None:
        recorder = self._media_recorder
        self._media_recorder = None
        if recorder is None or recorder.state == "inactive":
            return
        try:
            recorder.stop()
        except Exception as exc:
            logger.warning("Error stopping %s recorder during teardown: %s", self.mode, exc)

    # -- stop --

    async def stop(self) -> MediaBlob:
        """Stop recording and return the finalized blob.

        Raises:
            RecorderStateError: No recording in progress.
            EmptyRecordingError: Nothing was captured.
            DeviceLostError: The device went away before finalization.
            RecordingError: The recording primitive failed.
        """
        if self._finalizing is not None:
            return await asyncio.shield(self._finalizing)
        recorder = self._media_recorder
        if self._session.state is not SessionState.recording or recorder is None:
            raise RecorderStateError("No recording in progress")

        self._cancel_clock()
        finalizing = asyncio.get_running_loop().create_future()
        self._finalizing = finalizing
        logger.info("Stopping %s recorder (state=%s)", self.mode, recorder.state)
        try:
            recorder.stop()
        except Exception as exc:
            self._detach_recorder()
            self._capture.release()
            error = RecordingError(f"Failed to stop recording. {exc}")
            self._fail(error)
            self._settle_finalizing(exc=error)
        return await finalizing

    # -- reset / close --

    def _teardown(self) -> None:
        self._cancel_clock()
        self._detach_recorder()
        self._capture.release()
        session = self._session
        if session.result_url is not None:
            self._urls.revoke(session.result_url)
            session.result_url = None
        session.chunks.clear()
        self._settle_finalizing(exc=RecorderStateError("Recording was reset before it finished"))

    async def reset(self, reacquire: bool = True) -> None:
        """Discard the current attempt and start a fresh session.

        Cancels the recording clock, releases capture resources, revokes the
        playback URL and notifies reset listeners so playback, analysis and
        transcription state can be dropped. With ``reacquire`` a new stream
        is requested immediately; a failure there is recorded on the new
        session rather than raised. Safe to call repeatedly.
        """
        if self._closed:
            return
        self._teardown()
        previous = self._session
        self._session = MediaSession(mode=self.mode)
        logger.info(
            "Session %s reset; new session %s", previous.session_id, self._session.session_id
        )
        self._emit(self._reset_listeners, previous, self._session)

        if reacquire:
            await self._reacquire()

    async def _reacquire(self) -> None:
        session = self._session
        self._transition(SessionState.acquiring)
        try:
            await self._capture.acquire(self.mode)
        except CaptureError as exc:
            if session is self._session and not self._closed:
                self._fail(exc)
            return
        if self._closed:
            self._capture.release()
            return
        if session is self._session:
            self._transition(SessionState.ready)

    async def close(self) -> None:
        """Release everything for good (hosting view unmounted)."""
        if self._closed:
            return
        self._teardown()
        self._closed = True
        if self._session.state in (
            SessionState.acquiring,
            SessionState.ready,
            SessionState.recording,
        ):
            self._transition(SessionState.idle)
        logger.info("Recorder for session %s closed", self._session.session_id)
