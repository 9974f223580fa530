"""
Abstract base classes for the media platform.

Device access, the recording primitive, the live preview, the playback sink
and the speech recognizer are all provided by the host runtime. The state
machines in this package only talk to these interfaces, so a browser bridge,
a desktop backend or a test fake can be swapped in freely.

Event callbacks are plain synchronous callables invoked on the event loop.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from interview_media.core.models import (
    CaptureConstraints,
    MediaBlob,
    RecognitionResult,
    RecorderOptions,
)


class BaseMediaTrack(ABC):
    """One audio or video track of a live stream."""

    kind: str = "audio"

    @abstractmethod
    def stop(self) -> None:
        """Stop the track and free the underlying device."""

    @abstractmethod
    def on_ended(self, callback: Callable[[], None]) -> None:
        """Register a callback for when the track ends on its own."""


class BaseMediaStream(ABC):
    """A live capture stream made of one or more tracks."""

    @abstractmethod
    def get_tracks(self) -> list[BaseMediaTrack]:
        """Return every track of the stream."""


class BaseMediaRecorder(ABC):
    """Platform recording primitive bound to one stream."""

    @property
    @abstractmethod
    def state(self) -> str:
        """``inactive``, ``recording`` or ``paused``."""

    @abstractmethod
    def start(self, timeslice_ms: int) -> None:
        """Start recording, delivering data every ``timeslice_ms``."""

    @abstractmethod
    def stop(self) -> None:
        """Stop recording.

        Any buffered data is delivered through ``on_data`` before the
        ``on_stop`` callback fires.
        """

    @abstractmethod
    def on_data(self, callback: Callable[[bytes], None]) -> None:
        """Register the data-available callback."""

    @abstractmethod
    def on_stop(self, callback: Callable[[], None]) -> None:
        """Register the finalization callback."""

    @abstractmethod
    def on_error(self, callback: Callable[[Exception], None]) -> None:
        """Register a callback for asynchronous recorder failures."""


class BaseMediaPlatform(ABC):
    """Entry point to the host's devices and recorder implementation."""

    @abstractmethod
    async def get_user_media(self, constraints: CaptureConstraints) -> BaseMediaStream:
        """Request a capture stream.

        Raises:
            PermissionError: The user or OS denied access.
            LookupError: No matching device exists.
            OSError: The device exists but cannot be opened.
        """

    @abstractmethod
    def is_type_supported(self, mime_type: str) -> bool:
        """Whether the recording primitive can produce ``mime_type``."""

    @abstractmethod
    def create_recorder(
        self, stream: BaseMediaStream, options: RecorderOptions
    ) -> BaseMediaRecorder:
        """Instantiate a recording primitive for ``stream``."""


class BasePreviewSurface(ABC):
    """Surface showing the live camera feed while recording video."""

    @abstractmethod
    def attach(self, stream: BaseMediaStream, muted: bool = True) -> None:
        """Bind the live stream; ``muted`` avoids speaker feedback."""

    @abstractmethod
    def detach(self) -> None:
        """Clear the binding."""


class BaseMediaSink(ABC):
    """Playback target for a finalized recording."""

    @property
    @abstractmethod
    def duration(self) -> float:
        """Media length in seconds; may be ``inf`` when unknown."""

    @abstractmethod
    def load(self, url: str, blob: MediaBlob) -> None:
        """Point the sink at a recording."""

    @abstractmethod
    async def play(self) -> None:
        """Start playback; raises if the platform rejects the request."""

    @abstractmethod
    def pause(self) -> None:
        """Pause playback."""

    @abstractmethod
    def seek(self, seconds: float) -> None:
        """Move the playback position."""

    @abstractmethod
    def get_current_time(self) -> float:
        """Current playback position in seconds."""

    @abstractmethod
    def set_volume(self, level: float) -> None:
        """Apply an output volume in [0.0, 1.0]."""

    @abstractmethod
    def on_ended(self, callback: Callable[[], None]) -> None:
        """Register the end-of-media callback."""

    @abstractmethod
    def unload(self) -> None:
        """Drop the current source and release playback resources."""


class BaseSpeechRecognizer(ABC):
    """Online speech recognition service listening to played-back audio."""

    lang: str = "en-US"
    continuous: bool = True
    interim_results: bool = False

    @abstractmethod
    def start(self) -> None:
        """Begin listening."""

    @abstractmethod
    def stop(self) -> None:
        """Stop listening; ``on_end`` fires once pending results are delivered."""

    @abstractmethod
    def on_result(self, callback: Callable[[list[RecognitionResult]], None]) -> None:
        """Register the callback receiving newly recognized results."""

    @abstractmethod
    def on_error(self, callback: Callable[[str], None]) -> None:
        """Register the callback receiving recognition error codes."""

    @abstractmethod
    def on_end(self, callback: Callable[[], None]) -> None:
        """Register the callback fired when recognition has ended."""
