"""Desktop audio backend built on sounddevice (PortAudio).

Implements the media platform interfaces for a microphone-only host: the
capture stream wraps ``sd.InputStream``, the recorder frames the PCM it
receives as a streamed WAV file in timesliced chunks, and the sink plays a
finalized WAV blob through ``sd.OutputStream``.

PortAudio invokes its callbacks on its own thread; everything that touches
component state is handed back to the event loop with
``call_soon_threadsafe``.
"""

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Any

import numpy as np

from interview_media.core.models import CaptureConstraints, MediaBlob, RecorderOptions
from interview_media.core.utils import base_mime_type
from interview_media.services.media.platform import (
    BaseMediaPlatform,
    BaseMediaRecorder,
    BaseMediaSink,
    BaseMediaStream,
    BaseMediaTrack,
)
from interview_media.services.media.processor import AudioProcessor

logger = logging.getLogger(__name__)

SUPPORTED_MIME_TYPES = frozenset({"audio/wav"})


def _load_sounddevice():
    try:
        import sounddevice as sd
    except Exception as exc:  # pragma: no cover - environment-dependent
        raise RuntimeError("sounddevice is required for the desktop backend.") from exc
    return sd


def list_input_devices(sd) -> list[dict[str, Any]]:
    """Every PortAudio device with at least one input channel."""
    devices = sd.query_devices()
    return [dict(d) for d in devices if d.get("max_input_channels", 0) > 0]


def select_input_device(
    candidates: list[dict[str, Any]],
    prefer_name: str | None = None,
) -> dict[str, Any]:
    """Pick the device whose name contains ``prefer_name``, else the first one.

    Raises:
        LookupError: No input device exists.
    """
    if not candidates:
        raise LookupError("No input devices found.")
    if prefer_name:
        preferred = [d for d in candidates if prefer_name.lower() in d.get("name", "").lower()]
        if preferred:
            return preferred[0]
    return candidates[0]


# ---------------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------------


class SoundDeviceTrack(BaseMediaTrack):
    """Microphone track backed by a running ``sd.InputStream``."""

    kind = "audio"

    def __init__(self, loop: asyncio.AbstractEventLoop, sample_rate: int, channels: int) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self._loop = loop
        self._input = None
        self._stopped = False
        self._ended_listeners: list[Callable[[], None]] = []
        self._subscribers: list[Callable[[bytes], None]] = []
        self._lock = threading.Lock()

    def bind(self, input_stream) -> None:
        self._input = input_stream

    def subscribe(self, callback: Callable[[bytes], None]) -> None:
        """Receive raw 16-bit PCM blocks on the event loop."""
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[bytes], None]) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def audio_callback(self, indata, _frames, _time, status) -> None:
        if status:
            logger.debug("Input stream status: %s", status)
        data = indata.tobytes()
        with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            self._loop.call_soon_threadsafe(subscriber, data)

    def finished_callback(self) -> None:
        if self._stopped:
            return
        self._loop.call_soon_threadsafe(self._fire_ended)

    def _fire_ended(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        for listener in list(self._ended_listeners):
            listener()

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._input is not None:
            try:
                self._input.stop()
                self._input.close()
            except Exception as exc:
                logger.warning("Error closing input stream: %s", exc)

    def on_ended(self, callback: Callable[[], None]) -> None:
        self._ended_listeners.append(callback)


class SoundDeviceStream(BaseMediaStream):
    """Capture stream holding a single microphone track."""

    def __init__(self, track: SoundDeviceTrack) -> None:
        self.track = track

    def get_tracks(self) -> list[BaseMediaTrack]:
        return [self.track]


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class WavChunkRecorder(BaseMediaRecorder):
    """Streams microphone PCM as WAV, flushing one chunk per timeslice.

    The first chunk starts with a WAV header whose sizes are unknown
    (0xFFFFFFFF), so the concatenated chunks form a playable file.
    """

    def __init__(self, stream: SoundDeviceStream, options: RecorderOptions) -> None:
        if base_mime_type(options.mime_type) not in SUPPORTED_MIME_TYPES:
            raise ValueError(f"Unsupported recording format: {options.mime_type}")
        self._track = stream.track
        self._processor = AudioProcessor(
            sample_rate=self._track.sample_rate, sample_width=2, channels=self._track.channels
        )
        self._state = "inactive"
        self._pending = bytearray()
        self._header_sent = False
        self._flush_task: asyncio.Task | None = None
        self._data_listeners: list[Callable[[bytes], None]] = []
        self._stop_listeners: list[Callable[[], None]] = []
        self._error_listeners: list[Callable[[Exception], None]] = []

    @property
    def state(self) -> str:
        return self._state

    def on_data(self, callback: Callable[[bytes], None]) -> None:
        self._data_listeners.append(callback)

    def on_stop(self, callback: Callable[[], None]) -> None:
        self._stop_listeners.append(callback)

    def on_error(self, callback: Callable[[Exception], None]) -> None:
        self._error_listeners.append(callback)

    def start(self, timeslice_ms: int) -> None:
        if self._state != "inactive":
            raise RuntimeError("Recorder already started")
        self._state = "recording"
        self._track.subscribe(self._append)
        self._flush_task = asyncio.get_running_loop().create_task(
            self._flush_loop(timeslice_ms / 1000)
        )

    def _append(self, data: bytes) -> None:
        if self._state == "recording":
            self._pending.extend(data)

    async def _flush_loop(self, interval: float) -> None:
        try:
            while self._state == "recording":
                await asyncio.sleep(interval)
                self._flush()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("WAV recorder flush failed")
            self._state = "inactive"
            self._track.unsubscribe(self._append)
            for listener in list(self._error_listeners):
                listener(exc)

    def _flush(self) -> None:
        if not self._pending:
            return
        chunk = bytes(self._pending)
        self._pending.clear()
        if not self._header_sent:
            chunk = self._processor.wav_stream_header() + chunk
            self._header_sent = True
        for listener in list(self._data_listeners):
            listener(chunk)

    def stop(self) -> None:
        if self._state == "inactive":
            return
        self._state = "inactive"
        self._track.unsubscribe(self._append)
        if self._flush_task is not None:
            self._flush_task.cancel()
            self._flush_task = None
        self._flush()
        loop = asyncio.get_running_loop()
        for listener in list(self._stop_listeners):
            loop.call_soon(listener)


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------


class SoundDeviceSink(BaseMediaSink):
    """Plays a finalized WAV blob through the default output device."""

    def __init__(self, blocksize: int = 1024) -> None:
        self._blocksize = blocksize
        self._samples: np.ndarray | None = None
        self._sample_rate = 0
        self._position = 0
        self._volume = 1.0
        self._output = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._ended_listeners: list[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def duration(self) -> float:
        if self._samples is None or not self._sample_rate:
            return 0.0
        return len(self._samples) / self._sample_rate

    def load(self, url: str, blob: MediaBlob) -> None:
        self.unload()
        if base_mime_type(blob.mime_type) not in SUPPORTED_MIME_TYPES:
            logger.warning("Sink cannot decode %s; playback will fail", blob.mime_type)
            return
        self._samples, self._sample_rate = AudioProcessor.decode_wav(blob.data)
        logger.debug("Loaded %s (%.2fs)", url, self.duration)

    async def play(self) -> None:
        if self._samples is None:
            raise RuntimeError("No playable audio loaded")
        sd = _load_sounddevice()
        self._loop = asyncio.get_running_loop()
        with self._lock:
            if self._position >= len(self._samples):
                self._position = 0
        self._close_output()
        self._output = sd.OutputStream(
            samplerate=self._sample_rate,
            channels=1,
            dtype="float32",
            blocksize=self._blocksize,
            callback=self._audio_callback,
            finished_callback=self._finished_callback,
        )
        self._output.start()

    def _audio_callback(self, outdata, frames, _time, status) -> None:
        if status:
            logger.debug("Output stream status: %s", status)
        with self._lock:
            start = self._position
            block = self._samples[start : start + frames]
            self._position = start + len(block)
            volume = self._volume
        outdata.fill(0)
        outdata[: len(block), 0] = block * volume
        if len(block) < frames:
            sd = _load_sounddevice()
            raise sd.CallbackStop

    def _finished_callback(self) -> None:
        if self._samples is None or self._loop is None:
            return
        with self._lock:
            at_end = self._position >= len(self._samples)
        if at_end:
            self._loop.call_soon_threadsafe(self._fire_ended)

    def _fire_ended(self) -> None:
        for listener in list(self._ended_listeners):
            listener()

    def _close_output(self) -> None:
        output = self._output
        self._output = None
        if output is None:
            return
        try:
            output.stop()
            output.close()
        except Exception as exc:
            logger.warning("Error closing output stream: %s", exc)

    def pause(self) -> None:
        self._close_output()

    def seek(self, seconds: float) -> None:
        if self._samples is None:
            return
        frame = int(seconds * self._sample_rate)
        with self._lock:
            self._position = min(max(frame, 0), len(self._samples))

    def get_current_time(self) -> float:
        if not self._sample_rate:
            return 0.0
        with self._lock:
            return self._position / self._sample_rate

    def set_volume(self, level: float) -> None:
        with self._lock:
            self._volume = min(max(float(level), 0.0), 1.0)

    def on_ended(self, callback: Callable[[], None]) -> None:
        self._ended_listeners.append(callback)

    def unload(self) -> None:
        self._close_output()
        self._samples = None
        self._sample_rate = 0
        self._position = 0


# ---------------------------------------------------------------------------
# Platform
# ---------------------------------------------------------------------------


class SoundDevicePlatform(BaseMediaPlatform):
    """Microphone-only platform for desktop hosts.

    Args:
        device_name: Substring of the preferred input device name.
        channels: Number of input channels to capture.
    """

    def __init__(self, device_name: str | None = None, channels: int = 1) -> None:
        self._device_name = device_name
        self._channels = channels

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type in SUPPORTED_MIME_TYPES

    async def get_user_media(self, constraints: CaptureConstraints) -> BaseMediaStream:
        if constraints.video is not None:
            raise LookupError("No camera is available to the desktop audio backend.")

        sd = _load_sounddevice()
        device = select_input_device(
            await asyncio.to_thread(list_input_devices, sd), self._device_name
        )
        sample_rate = constraints.audio.sample_rate
        logger.info(
            "Opening input device %s at %d Hz (%d channel(s))",
            device.get("name"),
            sample_rate,
            self._channels,
        )
        # PortAudio has no echo cancellation / noise suppression / AGC switches
        logger.debug("Audio processing constraints are not applied on this backend")

        track = SoundDeviceTrack(asyncio.get_running_loop(), sample_rate, self._channels)
        try:
            input_stream = sd.InputStream(
                samplerate=sample_rate,
                channels=self._channels,
                dtype="int16",
                device=device.get("index"),
                callback=track.audio_callback,
                finished_callback=track.finished_callback,
            )
            input_stream.start()
        except sd.PortAudioError as exc:
            raise OSError(f"Could not open {device.get('name')}: {exc}") from exc
        track.bind(input_stream)
        return SoundDeviceStream(track)

    def create_recorder(
        self, stream: BaseMediaStream, options: RecorderOptions
    ) -> BaseMediaRecorder:
        if not isinstance(stream, SoundDeviceStream):
            raise TypeError("The desktop backend can only record its own streams")
        return WavChunkRecorder(stream, options)
