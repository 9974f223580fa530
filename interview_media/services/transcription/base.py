"""
Abstract base class for transcription methods.

Each method turns a finalized recording into text. The adapter tries the
configured methods in order, so an implementation only has to report
whether it can run on this host and raise when it fails.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from interview_media.core.models import MediaBlob, TranscriptionMethod

ProgressCallback = Callable[[float], None]


class BaseTranscriptionMethod(ABC):
    """Interface that every speech-to-text method must implement."""

    method: TranscriptionMethod

    @abstractmethod
    def is_supported(self) -> bool:
        """Whether this method can run in the current environment."""

    @abstractmethod
    async def transcribe(self, blob: MediaBlob, progress: ProgressCallback | None = None) -> str:
        """Transcribe a finalized recording.

        Args:
            blob: The recorded audio.
            progress: Optional callback receiving a fraction in [0.0, 1.0].

        Returns:
            The recognized text.

        Raises:
            TranscriptionError: The method failed for this recording.
        """
