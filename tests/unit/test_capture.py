"""Unit tests for CaptureController (device acquisition and release)."""

import asyncio

import pytest
from fakes import FakePlatform

from interview_media.core.exceptions import (
    CaptureError,
    DeviceUnavailableError,
    PermissionDeniedError,
)
from interview_media.core.models import ErrorCause, MediaMode
from interview_media.services.media.capture import CaptureController, build_constraints


class TestBuildConstraints:
    def test_audio_constraints(self, settings):
        constraints = build_constraints(MediaMode.audio, settings)
        assert constraints.video is None
        assert constraints.audio.echo_cancellation is True
        assert constraints.audio.noise_suppression is True
        assert constraints.audio.auto_gain_control is True
        assert constraints.audio.sample_rate == 48000

    def test_video_constraints(self, settings):
        constraints = build_constraints(MediaMode.video, settings)
        assert constraints.video.width == 640
        assert constraints.video.height == 480


class TestAcquire:
    async def test_audio_stream_has_one_track(self, platform, settings):
        capture = CaptureController(platform, settings=settings)
        stream = await capture.acquire(MediaMode.audio)
        assert capture.has_stream
        assert capture.active_track_count == 1
        assert [t.kind for t in stream.get_tracks()] == ["audio"]

    async def test_reuses_held_stream(self, platform, settings):
        """A second acquire returns the held stream without a new request."""
        capture = CaptureController(platform, settings=settings)
        first = await capture.acquire(MediaMode.audio)
        second = await capture.acquire(MediaMode.audio)
        assert first is second
        assert len(platform.requests) == 1

    async def test_video_binds_muted_preview(self, platform, preview, settings):
        capture = CaptureController(platform, preview, settings)
        stream = await capture.acquire(MediaMode.video)
        assert preview.stream is stream
        assert preview.muted is True
        assert capture.active_track_count == 2

    async def test_audio_leaves_preview_alone(self, platform, preview, settings):
        capture = CaptureController(platform, preview, settings)
        await capture.acquire(MediaMode.audio)
        assert preview.stream is None

    @pytest.mark.parametrize(
        ("error", "exc_type", "cause"),
        [
            (PermissionError("NotAllowedError"), PermissionDeniedError, ErrorCause.permission_denied),
            (LookupError("NotFoundError"), DeviceUnavailableError, ErrorCause.device_unavailable),
            (OSError("NotReadableError"), DeviceUnavailableError, ErrorCause.device_unavailable),
            (RuntimeError("weird"), CaptureError, ErrorCause.unknown),
        ],
    )
    async def test_error_mapping(self, settings, error, exc_type, cause):
        capture = CaptureController(FakePlatform(error=error), settings=settings)
        with pytest.raises(exc_type) as exc_info:
            await capture.acquire(MediaMode.audio)
        assert exc_info.value.cause is cause
        assert not capture.has_stream

    async def test_permission_message(self, settings):
        capture = CaptureController(FakePlatform(error=PermissionError()), settings=settings)
        with pytest.raises(PermissionDeniedError) as exc_info:
            await capture.acquire(MediaMode.video)
        assert "camera and microphone" in exc_info.value.detail

    async def test_capture_error_passes_through(self, settings):
        error = CaptureError(detail="custom", cause=ErrorCause.device_unavailable)
        capture = CaptureController(FakePlatform(error=error), settings=settings)
        with pytest.raises(CaptureError) as exc_info:
            await capture.acquire(MediaMode.audio)
        assert exc_info.value is error

    async def test_release_during_pending_request(self, platform, settings):
        """A stream granted after release() is stopped, not kept."""
        capture = CaptureController(platform, settings=settings)
        task = asyncio.create_task(capture.acquire(MediaMode.audio))
        await asyncio.sleep(0)  # request is now pending
        capture.release()

        with pytest.raises(CaptureError, match="cancelled"):
            await task
        assert not capture.has_stream
        assert platform.live_track_count == 0


class TestRelease:
    async def test_stops_tracks_and_detaches_preview(self, platform, preview, settings):
        capture = CaptureController(platform, preview, settings)
        await capture.acquire(MediaMode.video)
        capture.release()
        assert platform.live_track_count == 0
        assert preview.stream is None
        assert capture.active_track_count == 0

    async def test_idempotent(self, platform, settings):
        capture = CaptureController(platform, settings=settings)
        capture.release()
        await capture.acquire(MediaMode.audio)
        capture.release()
        capture.release()
        assert not capture.has_stream


class TestDeviceLost:
    async def test_unexpected_track_end_notifies(self, platform, settings):
        capture = CaptureController(platform, settings=settings)
        lost = []
        capture.on_device_lost(lost.append)
        stream = await capture.acquire(MediaMode.audio)
        stream.tracks[0].end()
        assert lost == [stream.tracks[0]]

    async def test_end_after_release_ignored(self, platform, settings):
        capture = CaptureController(platform, settings=settings)
        lost = []
        capture.on_device_lost(lost.append)
        stream = await capture.acquire(MediaMode.audio)
        capture.release()
        stream.tracks[0].end()
        assert lost == []
