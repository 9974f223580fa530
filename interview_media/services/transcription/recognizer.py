"""Fallback transcription through an online speech recognizer.

The recording is played back through a media sink while a continuous
recognizer listens; only final results are kept.
"""

import asyncio
import logging
from collections.abc import Callable

from interview_media.core.config import Settings, get_settings
from interview_media.core.exceptions import TranscriptionError
from interview_media.core.models import MediaBlob, RecognitionResult, TranscriptionMethod
from interview_media.services.media.platform import BaseMediaSink, BaseSpeechRecognizer
from interview_media.services.media.resources import ObjectUrlRegistry
from interview_media.services.transcription.base import BaseTranscriptionMethod, ProgressCallback

logger = logging.getLogger(__name__)


class SpeechRecognitionFallback(BaseTranscriptionMethod):
    """Transcribes by replaying the recording to a speech recognizer.

    Args:
        recognizer_factory: Builds a fresh recognizer per transcription, or
            None when the host has no recognition service.
        sink_factory: Builds the sink used to play the recording.
        urls: Registry issuing the temporary playback URL.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    method = TranscriptionMethod.fallback

    def __init__(
        self,
        recognizer_factory: Callable[[], BaseSpeechRecognizer] | None,
        sink_factory: Callable[[], BaseMediaSink],
        urls: ObjectUrlRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._recognizer_factory = recognizer_factory
        self._sink_factory = sink_factory
        self._urls = urls or ObjectUrlRegistry()
        self._settings = settings or get_settings()

    def is_supported(self) -> bool:
        return self._recognizer_factory is not None

    async def transcribe(self, blob: MediaBlob, progress: ProgressCallback | None = None) -> str:
        if self._recognizer_factory is None:
            raise TranscriptionError(detail="Speech recognition not supported")
        if progress is not None:
            progress(0.0)

        done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        finals: list[str] = []

        recognizer = self._recognizer_factory()
        recognizer.lang = self._settings.fallback_recognition_lang
        recognizer.continuous = True
        recognizer.interim_results = False

        def handle_result(results: list[RecognitionResult]) -> None:
            for result in results:
                if result.is_final and result.transcript.strip():
                    finals.append(result.transcript.strip())

        def handle_error(code: str) -> None:
            logger.error("Speech recognition error: %s", code)
            if not done.done():
                done.set_exception(TranscriptionError(detail=f"Speech recognition error: {code}"))

        def handle_end() -> None:
            if not done.done():
                done.set_result(None)

        recognizer.on_result(handle_result)
        recognizer.on_error(handle_error)
        recognizer.on_end(handle_end)

        sink = self._sink_factory()
        url = self._urls.create(blob)
        sink.load(url, blob)
        sink.on_ended(recognizer.stop)

        try:
            recognizer.start()
            try:
                await sink.play()
            except Exception as exc:
                raise TranscriptionError(
                    detail=f"Error playing audio for transcription: {exc}"
                ) from exc
            try:
                await asyncio.wait_for(done, timeout=self._settings.fallback_timeout_seconds)
            except TimeoutError as exc:
                raise TranscriptionError(detail="Speech recognition timed out") from exc
        finally:
            self._cleanup(recognizer, sink, url)

        if progress is not None:
            progress(1.0)
        text = " ".join(finals).strip()
        if not text:
            raise TranscriptionError(detail="No speech recognized")
        logger.info("Fallback recognition produced %d characters", len(text))
        return text

    def _cleanup(self, recognizer: BaseSpeechRecognizer, sink: BaseMediaSink, url: str) -> None:
        try:
            recognizer.stop()
        except Exception as exc:
            logger.warning("Error stopping speech recognizer: %s", exc)
        sink.pause()
        sink.unload()
        self._urls.revoke(url)
