"""Wires the media components together for one hosting view.

A ``MediaWorkspace`` owns the timer and URL registries, the capture
controller and the recorder, and reacts to recorder events:

- recording starts: an ``AnalysisEmitter`` begins sampling;
- recording completes: a ``PlaybackController`` is bound to the finalized
  session and, for audio answers, a transcription task is launched, tagged
  with the session id;
- reset: playback, analysis and any transcription result are dropped.

Usage::

    workspace = MediaWorkspace(MediaMode.audio, platform, sink_factory)
    await workspace.start_recording()
    blob = await workspace.stop_recording()
    await workspace.submit(interview_id, question_id)
    await workspace.close()
"""

import asyncio
import logging
from collections.abc import Callable

from interview_media.core.config import Settings, get_settings
from interview_media.core.exceptions import RecorderStateError, UploadError
from interview_media.core.models import (
    AnalysisSample,
    MediaBlob,
    MediaMode,
    MediaSession,
    PlaybackState,
    PreviewFeedback,
    ResponseRecord,
    SessionState,
    TranscriptionMethod,
    TranscriptionResult,
    UploadResult,
)
from interview_media.services.feedback import build_preview_feedback
from interview_media.services.media.analysis import AnalysisEmitter
from interview_media.services.media.capture import CaptureController
from interview_media.services.media.platform import (
    BaseMediaPlatform,
    BaseMediaSink,
    BasePreviewSurface,
)
from interview_media.services.media.playback import PlaybackController
from interview_media.services.media.recorder import RecorderStateMachine
from interview_media.services.media.resources import ObjectUrlRegistry, TimerRegistry
from interview_media.services.storage.base import BaseResponseStore
from interview_media.services.storage.uploader import MediaUploader
from interview_media.services.transcription.adapter import TranscriptionAdapter

logger = logging.getLogger(__name__)


class MediaWorkspace:
    """Recording, review, transcription and submission for one answer at a time.

    Args:
        mode: Audio or video answers.
        platform: Host device access and recording primitive.
        sink_factory: Builds a fresh playback sink per finalized recording.
        preview: Optional live camera preview (video mode).
        transcriber: Transcription chain; None disables transcription.
        uploader: Stores the finalized blob on ``submit()``.
        responses: Persists the response row on ``submit()``.
        on_analysis: Receives every analysis sample.
        on_transcription: Receives the transcript of the current session.
        on_transcription_progress: Receives transcription progress in [0, 1].
        on_playback_progress: Receives playback state updates.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        mode: MediaMode,
        platform: BaseMediaPlatform,
        sink_factory: Callable[[], BaseMediaSink],
        preview: BasePreviewSurface | None = None,
        transcriber: TranscriptionAdapter | None = None,
        uploader: MediaUploader | None = None,
        responses: BaseResponseStore | None = None,
        on_analysis: Callable[[AnalysisSample], None] | None = None,
        on_transcription: Callable[[TranscriptionResult], None] | None = None,
        on_transcription_progress: Callable[[float], None] | None = None,
        on_playback_progress: Callable[[PlaybackState], None] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.mode = mode
        self._settings = settings or get_settings()
        self._sink_factory = sink_factory
        self._transcriber = transcriber
        self._uploader = uploader
        self._responses = responses
        self._on_analysis = on_analysis
        self._on_transcription = on_transcription
        self._on_transcription_progress = on_transcription_progress
        self._on_playback_progress = on_playback_progress

        self.timers = TimerRegistry()
        self.urls = ObjectUrlRegistry()
        self.capture = CaptureController(platform, preview, self._settings)
        self.recorder = RecorderStateMachine(
            mode, platform, self.capture, self.timers, self.urls, self._settings
        )

        self.playback: PlaybackController | None = None
        self.transcription: TranscriptionResult | None = None
        self.latest_sample: AnalysisSample | None = None
        self._analysis: AnalysisEmitter | None = None
        self._transcription_tasks: set[asyncio.Task] = set()
        self._upload: UploadResult | None = None
        self._upload_session_id: str | None = None
        self._closed = False

        self.recorder.on_state_change(self._handle_state_change)
        self.recorder.on_complete(self._handle_complete)
        self.recorder.on_reset(self._handle_reset)

    @property
    def session(self) -> MediaSession:
        return self.recorder.session

    @property
    def transcribing(self) -> bool:
        return any(not task.done() for task in self._transcription_tasks)

    # -- recorder commands --

    async def start_recording(self) -> None:
        await self.recorder.start()

    async def stop_recording(self) -> MediaBlob:
        return await self.recorder.stop()

    async def reset(self, reacquire: bool = True) -> None:
        await self.recorder.reset(reacquire=reacquire)

    def preview_feedback(self) -> PreviewFeedback:
        """Quick feedback from the last analysis sample of this session."""
        return build_preview_feedback(self.latest_sample, self.mode)

    # -- recorder events --

    def _handle_state_change(
        self, session: MediaSession, previous: SessionState, new: SessionState
    ) -> None:
        if new is SessionState.recording:
            self._stop_analysis()
            self._analysis = AnalysisEmitter(
                session, self._handle_sample, self.timers, self._settings
            )
            self._analysis.start()
        elif previous is SessionState.recording:
            self._stop_analysis()

    def _handle_sample(self, sample: AnalysisSample) -> None:
        self.latest_sample = sample
        if self._on_analysis is not None:
            self._on_analysis(sample)

    def _stop_analysis(self) -> None:
        if self._analysis is not None:
            self._analysis.stop()
            self._analysis = None

    def _handle_complete(self, session: MediaSession, blob: MediaBlob) -> None:
        self._close_playback()
        self.playback = PlaybackController(session, self._sink_factory(), self.timers, self._settings)
        if self._on_playback_progress is not None:
            self.playback.on_progress(self._on_playback_progress)

        if self.mode is MediaMode.audio and self._transcriber is not None:
            self._launch_transcription(session.session_id, blob)

    def _handle_reset(self, previous: MediaSession, new: MediaSession) -> None:
        self._close_playback()
        if self._analysis is not None:
            self._analysis.clear()
            self._analysis = None
        self.latest_sample = None
        self.transcription = None
        self._upload = None
        self._upload_session_id = None
        logger.debug("Workspace state cleared for session %s", previous.session_id)

    def _close_playback(self) -> None:
        if self.playback is not None:
            self.playback.close()
            self.playback = None

    # -- transcription --

    def _launch_transcription(self, session_id: str, blob: MediaBlob) -> None:
        task = asyncio.create_task(
            self._transcribe(session_id, blob), name=f"transcribe:{session_id}"
        )
        self._transcription_tasks.add(task)
        task.add_done_callback(self._transcription_tasks.discard)

    async def _transcribe(self, session_id: str, blob: MediaBlob) -> None:
        result = await self._transcriber.transcribe(
            blob, session_id=session_id, progress=self._handle_transcription_progress
        )
        if self._closed or result.session_id != self.session.session_id:
            logger.info("Discarding transcription for stale session %s", session_id)
            return
        self.transcription = result
        logger.info("Transcription ready (%s) for session %s", result.method, session_id)
        if self._on_transcription is not None:
            self._on_transcription(result)

    def _handle_transcription_progress(self, fraction: float) -> None:
        if self._on_transcription_progress is not None and not self._closed:
            self._on_transcription_progress(fraction)

    async def wait_for_transcription(self) -> TranscriptionResult | None:
        """Wait for in-flight transcriptions; returns the current session's result."""
        if self._transcription_tasks:
            await asyncio.gather(*self._transcription_tasks, return_exceptions=True)
        return self.transcription

    # -- submission --

    def _response_text(self, response_text: str | None) -> str:
        if response_text:
            return response_text
        result = self.transcription
        if result is not None and result.method is not TranscriptionMethod.failed and result.text:
            return result.text
        return f"{self.mode.capitalize()} response (transcription not available)"

    async def submit(
        self,
        interview_id: str,
        question_id: str,
        response_text: str | None = None,
    ) -> dict:
        """Upload the finalized recording and persist the response row.

        The upload result is kept for the session, so retrying after a
        failed insert reuses the stored artifact.

        Raises:
            RecorderStateError: There is no finalized recording.
            UploadError: Storage is not configured, or upload / insert failed.
        """
        session = self.session
        if session.state is not SessionState.stopped or session.result_blob is None:
            raise RecorderStateError(f"Please record a {self.mode} response first")
        if self._uploader is None or self._responses is None:
            raise UploadError("Storage is not configured")

        if self._upload is None or self._upload_session_id != session.session_id:
            self._upload = await self._uploader.upload(
                session.result_blob, interview_id, question_id, self.mode
            )
            self._upload_session_id = session.session_id

        record = ResponseRecord(
            question_id=question_id,
            response_type=str(self.mode),
            response_text=self._response_text(response_text),
            media_url=self._upload.public_url,
        )
        return await self._responses.insert_response(record)

    # -- teardown --

    async def close(self) -> None:
        """Release every track, timer and URL (hosting view unmounted)."""
        if self._closed:
            return
        self._closed = True
        for task in list(self._transcription_tasks):
            task.cancel()
        if self._transcription_tasks:
            await asyncio.gather(*self._transcription_tasks, return_exceptions=True)
        self._close_playback()
        self._stop_analysis()
        await self.recorder.close()
        self.timers.cancel_all()
        logger.info("Workspace closed")
