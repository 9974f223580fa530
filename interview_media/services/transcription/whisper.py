"""Local Whisper transcription using faster-whisper.

Runs entirely on this machine. The WhisperModel is loaded lazily through the
shared ``LazyModelLoader`` so every recording reuses one instance.
"""

import asyncio
import importlib.util
import io
import logging

import numpy as np

from interview_media.core.config import Settings, get_settings
from interview_media.core.exceptions import TranscriptionError
from interview_media.core.models import MediaBlob, TranscriptionMethod
from interview_media.core.utils import base_mime_type
from interview_media.services.media.processor import AudioProcessor
from interview_media.services.transcription.base import BaseTranscriptionMethod, ProgressCallback
from interview_media.services.transcription.loader import LazyModelLoader, get_model_loader

logger = logging.getLogger(__name__)

EMPTY_TEXT = "No transcription available."
WHISPER_SAMPLE_RATE = 16000


class LocalWhisperTranscriber(BaseTranscriptionMethod):
    """Speech-to-text on device using faster-whisper (CTranslate2).

    Args:
        loader: Model holder (defaults to the process-wide Whisper loader).
        settings: Optional Settings instance (defaults to get_settings()).
    """

    method = TranscriptionMethod.local

    def __init__(
        self,
        loader: LazyModelLoader | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._loader = loader or get_model_loader(self._settings)
        self._processor = AudioProcessor()

    def is_supported(self) -> bool:
        if not self._settings.local_transcription_enabled:
            return False
        return importlib.util.find_spec("faster_whisper") is not None

    def _prepare_audio(self, blob: MediaBlob):
        """Decode streamed WAV with numpy; hand other containers to faster-whisper."""
        if base_mime_type(blob.mime_type) == "audio/wav":
            samples, sample_rate = AudioProcessor.decode_wav(blob.data)
            return AudioProcessor.resample(samples, sample_rate, WHISPER_SAMPLE_RATE)
        return io.BytesIO(blob.data)

    def _run_transcription(self, model, audio, progress: ProgressCallback | None) -> list[str]:
        """Run synchronous transcription (CPU-bound).

        Must be called via asyncio.to_thread(). The segment iterator is
        consumed in this thread to avoid CTranslate2 thread-safety issues.
        """
        segments_iter, info = model.transcribe(
            audio,
            language=self._settings.whisper_language or None,
            beam_size=5,
            vad_filter=True,
        )
        duration = float(getattr(info, "duration", 0.0) or 0.0)
        texts: list[str] = []
        for segment in segments_iter:
            text = segment.text.strip()
            if text:
                texts.append(text)
            if progress is not None and duration > 0:
                progress(0.1 + 0.9 * min(segment.end / duration, 1.0))
        return texts

    async def transcribe(self, blob: MediaBlob, progress: ProgressCallback | None = None) -> str:
        report = _threadsafe(progress)
        if report is not None:
            report(0.0)

        try:
            model = await self._loader.get()
        except Exception as exc:
            raise TranscriptionError(detail=f"Failed to load Whisper model: {exc}") from exc
        if report is not None:
            report(0.1)

        try:
            audio = self._prepare_audio(blob)
        except ValueError as exc:
            raise TranscriptionError(detail=f"Unreadable audio: {exc}") from exc
        if isinstance(audio, np.ndarray) and self._processor.is_silent(audio, threshold=1e-4):
            logger.info("Recording is silent; skipping Whisper")
            if report is not None:
                report(1.0)
            return EMPTY_TEXT

        try:
            texts = await asyncio.to_thread(self._run_transcription, model, audio, report)
        except Exception as exc:
            raise TranscriptionError(detail=f"Whisper transcription failed: {exc}") from exc

        if report is not None:
            report(1.0)
        text = " ".join(texts).strip()
        logger.info("Local transcription produced %d characters", len(text))
        return text or EMPTY_TEXT


def _threadsafe(progress: ProgressCallback | None) -> ProgressCallback | None:
    """Wrap ``progress`` so calls from the worker thread run on the loop."""
    if progress is None:
        return None
    loop = asyncio.get_running_loop()

    def report(fraction: float) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            progress(fraction)
        else:
            loop.call_soon_threadsafe(progress, fraction)

    return report
