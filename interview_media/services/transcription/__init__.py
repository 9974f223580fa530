"""
Transcription module - Speech-to-text fallback chain.

Factory function for building the adapter from the available methods.
"""

from collections.abc import Callable

from interview_media.core.config import Settings
from interview_media.services.media.platform import BaseMediaSink, BaseSpeechRecognizer
from interview_media.services.media.resources import ObjectUrlRegistry

from .adapter import FAILED_TEXT, TranscriptionAdapter
from .base import BaseTranscriptionMethod

__all__ = [
    "FAILED_TEXT",
    "BaseTranscriptionMethod",
    "TranscriptionAdapter",
    "create_transcription_adapter",
]


def create_transcription_adapter(
    sink_factory: Callable[[], BaseMediaSink] | None = None,
    recognizer_factory: Callable[[], BaseSpeechRecognizer] | None = None,
    urls: ObjectUrlRegistry | None = None,
    settings: Settings | None = None,
) -> TranscriptionAdapter:
    """
    Factory function to build the local-then-fallback transcription chain.

    Args:
        sink_factory: Builds the sink the fallback plays the recording through.
        recognizer_factory: Builds a speech recognizer; None disables the fallback.
        urls: Registry for the fallback's temporary playback URL.
        settings: Optional Settings instance.

    Returns:
        TranscriptionAdapter trying local Whisper first, then recognition.
    """
    from .whisper import LocalWhisperTranscriber

    methods: list[BaseTranscriptionMethod] = [LocalWhisperTranscriber(settings=settings)]
    if sink_factory is not None:
        from .recognizer import SpeechRecognitionFallback

        methods.append(
            SpeechRecognitionFallback(recognizer_factory, sink_factory, urls=urls, settings=settings)
        )
    return TranscriptionAdapter(methods)
