"""Unit tests for the sounddevice desktop backend.

sounddevice is replaced by a MagicMock module so the tests need neither
PortAudio nor an audio device.
"""

import asyncio
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from interview_media.core.exceptions import DeviceUnavailableError
from interview_media.core.models import (
    CaptureConstraints,
    MediaBlob,
    MediaMode,
    RecorderOptions,
    SessionState,
    VideoConstraints,
)
from interview_media.services.media.capture import CaptureController
from interview_media.services.media.desktop import (
    SoundDevicePlatform,
    SoundDeviceSink,
    SoundDeviceStream,
    SoundDeviceTrack,
    WavChunkRecorder,
    select_input_device,
)
from interview_media.services.media.processor import AudioProcessor
from interview_media.services.media.recorder import RecorderStateMachine

DEVICES = [
    {"name": "Built-in Microphone", "index": 0, "max_input_channels": 1},
    {"name": "USB Audio Interface", "index": 3, "max_input_channels": 2},
    {"name": "Speakers", "index": 4, "max_input_channels": 0},
]


class _PortAudioError(Exception):
    pass


class _CallbackStop(Exception):
    pass


@pytest.fixture
def sd():
    """Mock sounddevice module with three devices."""
    module = MagicMock()
    module.query_devices.return_value = DEVICES
    module.PortAudioError = _PortAudioError
    module.CallbackStop = _CallbackStop
    with patch("interview_media.services.media.desktop._load_sounddevice", return_value=module):
        yield module


def _block(value: int, frames: int = 160) -> np.ndarray:
    return np.full((frames, 1), value, dtype=np.int16)


class TestDeviceSelection:
    def test_prefers_named_device(self):
        inputs = [d for d in DEVICES if d["max_input_channels"] > 0]
        assert select_input_device(inputs, "usb")["index"] == 3

    def test_defaults_to_first(self):
        assert select_input_device(DEVICES[:2], "missing")["index"] == 0

    def test_no_devices(self):
        with pytest.raises(LookupError):
            select_input_device([])


class TestSoundDevicePlatform:
    def test_only_wav_is_supported(self):
        platform = SoundDevicePlatform()
        assert platform.is_type_supported("audio/wav") is True
        assert platform.is_type_supported("audio/webm;codecs=opus") is False

    async def test_opens_preferred_input(self, sd):
        platform = SoundDevicePlatform(device_name="USB")
        stream = await platform.get_user_media(CaptureConstraints())

        kwargs = sd.InputStream.call_args.kwargs
        assert kwargs["device"] == 3
        assert kwargs["samplerate"] == 48000
        assert kwargs["dtype"] == "int16"
        sd.InputStream.return_value.start.assert_called_once()
        assert [t.kind for t in stream.get_tracks()] == ["audio"]

    async def test_video_unavailable(self, sd, settings):
        capture = CaptureController(SoundDevicePlatform(), settings=settings)
        with pytest.raises(DeviceUnavailableError):
            await capture.acquire(MediaMode.video)

    async def test_video_constraints_rejected(self):
        with pytest.raises(LookupError):
            await SoundDevicePlatform().get_user_media(
                CaptureConstraints(video=VideoConstraints())
            )

    async def test_portaudio_failure_is_device_unavailable(self, sd, settings):
        sd.InputStream.return_value.start.side_effect = _PortAudioError("Device busy")
        capture = CaptureController(SoundDevicePlatform(), settings=settings)
        with pytest.raises(DeviceUnavailableError, match="Device busy"):
            await capture.acquire(MediaMode.audio)

    async def test_track_stop_closes_stream(self, sd):
        stream = await SoundDevicePlatform().get_user_media(CaptureConstraints())
        stream.get_tracks()[0].stop()
        sd.InputStream.return_value.stop.assert_called_once()
        sd.InputStream.return_value.close.assert_called_once()

    async def test_unexpected_finish_reports_ended(self, sd):
        stream = await SoundDevicePlatform().get_user_media(CaptureConstraints())
        track = stream.get_tracks()[0]
        ended = []
        track.on_ended(lambda: ended.append(True))

        sd.InputStream.call_args.kwargs["finished_callback"]()
        await asyncio.sleep(0)
        assert ended == [True]


class TestWavChunkRecorder:
    async def test_chunks_form_a_wav_file(self):
        track = SoundDeviceTrack(asyncio.get_running_loop(), 16000, 1)
        recorder = WavChunkRecorder(SoundDeviceStream(track), RecorderOptions(mime_type="audio/wav"))
        chunks, stopped = [], []
        recorder.on_data(chunks.append)
        recorder.on_stop(lambda: stopped.append(True))

        recorder.start(10)
        track.audio_callback(_block(1000), 160, None, None)
        await asyncio.sleep(0.03)
        track.audio_callback(_block(-1000), 160, None, None)
        await asyncio.sleep(0)
        recorder.stop()
        await asyncio.sleep(0)

        assert len(chunks) == 2
        assert chunks[0][:4] == b"RIFF"
        assert chunks[1][:4] != b"RIFF"
        assert stopped == [True]
        assert recorder.state == "inactive"

        samples, rate = AudioProcessor.decode_wav(b"".join(chunks))
        assert rate == 16000
        assert len(samples) == 320

    async def test_data_after_stop_is_dropped(self):
        track = SoundDeviceTrack(asyncio.get_running_loop(), 16000, 1)
        recorder = WavChunkRecorder(SoundDeviceStream(track), RecorderOptions(mime_type="audio/wav"))
        chunks = []
        recorder.on_data(chunks.append)
        recorder.start(10)
        recorder.stop()
        track.audio_callback(_block(5), 160, None, None)
        await asyncio.sleep(0.03)
        assert chunks == []

    def test_rejects_compressed_formats(self):
        track = SoundDeviceTrack(MagicMock(), 16000, 1)
        with pytest.raises(ValueError, match="Unsupported"):
            WavChunkRecorder(SoundDeviceStream(track), RecorderOptions(mime_type="audio/webm"))


class TestSoundDeviceSink:
    def test_load_reports_duration(self, wav_bytes):
        sink = SoundDeviceSink()
        sink.load("blob:x", MediaBlob(data=wav_bytes, mime_type="audio/wav"))
        assert sink.duration == pytest.approx(1.0)

    def test_seek_and_position(self, wav_bytes):
        sink = SoundDeviceSink()
        sink.load("blob:x", MediaBlob(data=wav_bytes, mime_type="audio/wav"))
        sink.seek(0.5)
        assert sink.get_current_time() == pytest.approx(0.5)
        sink.seek(5)
        assert sink.get_current_time() == pytest.approx(1.0)

    async def test_play_renders_scaled_blocks(self, sd, wav_bytes):
        sink = SoundDeviceSink(blocksize=1024)
        sink.load("blob:x", MediaBlob(data=wav_bytes, mime_type="audio/wav"))
        sink.set_volume(0.5)
        await sink.play()

        kwargs = sd.OutputStream.call_args.kwargs
        assert kwargs["samplerate"] == 16000
        sd.OutputStream.return_value.start.assert_called_once()

        out = np.zeros((1024, 1), dtype=np.float32)
        kwargs["callback"](out, 1024, None, None)
        samples, _ = AudioProcessor.decode_wav(wav_bytes)
        assert np.allclose(out[:, 0], samples[:1024] * 0.5)
        assert sink.get_current_time() == pytest.approx(1024 / 16000)

    async def test_end_of_media(self, sd, wav_bytes):
        sink = SoundDeviceSink()
        sink.load("blob:x", MediaBlob(data=wav_bytes, mime_type="audio/wav"))
        ended = []
        sink.on_ended(lambda: ended.append(True))
        await sink.play()
        kwargs = sd.OutputStream.call_args.kwargs

        sink.seek(0.99)
        out = np.zeros((1024, 1), dtype=np.float32)
        with pytest.raises(_CallbackStop):
            kwargs["callback"](out, 1024, None, None)
        kwargs["finished_callback"]()
        await asyncio.sleep(0)
        assert ended == [True]

    async def test_pause_does_not_report_end(self, sd, wav_bytes):
        sink = SoundDeviceSink()
        sink.load("blob:x", MediaBlob(data=wav_bytes, mime_type="audio/wav"))
        ended = []
        sink.on_ended(lambda: ended.append(True))
        await sink.play()
        sink.pause()
        sd.OutputStream.call_args.kwargs["finished_callback"]()
        await asyncio.sleep(0)
        assert ended == []
        sd.OutputStream.return_value.close.assert_called_once()

    async def test_undecodable_blob_fails_to_play(self, sd):
        sink = SoundDeviceSink()
        sink.load("blob:x", MediaBlob(data=b"\x1a\x45", mime_type="audio/webm"))
        with pytest.raises(RuntimeError):
            await sink.play()


class TestDesktopRecording:
    async def test_record_wav_answer(self, sd, settings, timers, urls):
        """The recorder negotiates WAV and finalizes a decodable blob."""
        platform = SoundDevicePlatform()
        capture = CaptureController(platform, settings=settings)
        machine = RecorderStateMachine(MediaMode.audio, platform, capture, timers, urls, settings)

        await machine.start()
        assert machine.session.mime_type == "audio/wav"
        audio_callback = sd.InputStream.call_args.kwargs["callback"]
        for _ in range(3):
            audio_callback(_block(2000, 480), 480, None, None)
        await asyncio.sleep(0.15)

        blob = await machine.stop()

        assert machine.session.state is SessionState.stopped
        assert blob.mime_type == "audio/wav"
        samples, rate = AudioProcessor.decode_wav(blob.data)
        assert rate == 48000
        assert len(samples) == 1440
        sd.InputStream.return_value.close.assert_called_once()
        assert timers.active_count == 0
