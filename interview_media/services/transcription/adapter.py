"""Ordered fallback chain over transcription methods."""

import asyncio
import logging
from collections.abc import Sequence

from interview_media.core.models import MediaBlob, TranscriptionMethod, TranscriptionResult
from interview_media.services.transcription.base import BaseTranscriptionMethod, ProgressCallback

logger = logging.getLogger(__name__)

FAILED_TEXT = "Transcription failed. Please try again or type your response manually."


class TranscriptionAdapter:
    """Tries each method in turn until one returns text.

    Unsupported methods are skipped and every failure degrades to the next
    method. When nothing works the result carries ``FAILED_TEXT`` with
    method ``failed``; ``transcribe`` itself never raises.

    Args:
        methods: Methods in order of preference.
    """

    def __init__(self, methods: Sequence[BaseTranscriptionMethod]) -> None:
        self._methods = list(methods)

    @property
    def methods(self) -> list[BaseTranscriptionMethod]:
        return list(self._methods)

    async def transcribe(
        self,
        blob: MediaBlob,
        session_id: str | None = None,
        progress: ProgressCallback | None = None,
    ) -> TranscriptionResult:
        """Transcribe ``blob``, tagging the result with ``session_id``."""
        for method in self._methods:
            try:
                supported = method.is_supported()
            except Exception as exc:
                logger.warning("Support check for %s failed: %s", method.method, exc)
                supported = False
            if not supported:
                logger.info("Transcription method %s not supported; skipping", method.method)
                continue

            logger.info("Transcribing session %s with %s method", session_id, method.method)
            try:
                text = await method.transcribe(blob, progress)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning(
                    "%s transcription failed, trying next method: %s", method.method, exc
                )
                continue
            return TranscriptionResult(text=text, method=method.method, session_id=session_id)

        logger.error("All transcription methods failed for session %s", session_id)
        return TranscriptionResult(
            text=FAILED_TEXT, method=TranscriptionMethod.failed, session_id=session_id
        )
