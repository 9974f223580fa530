"""Unit tests for the synthetic delivery metrics."""

import asyncio

import numpy as np
import pytest

from interview_media.core.models import MediaMode, MediaSession, SessionState
from interview_media.services.media.analysis import AnalysisEmitter, synthesize_sample


class TestSynthesizeSample:
    def test_start_values(self):
        sample = synthesize_sample(0, MediaMode.audio, jitter=0.0)
        assert sample.volume == 60
        assert sample.pace == 50
        assert sample.clarity == 70
        assert sample.confidence == 40
        assert sample.facial_expressions is None
        assert sample.eye_contact is None

    def test_plateau_after_thirty_seconds(self):
        sample = synthesize_sample(30, MediaMode.video, jitter=0.0)
        assert sample.volume == 100  # 60 + 45 capped
        assert sample.pace == 90
        assert sample.clarity == 90
        assert sample.confidence == 90
        assert sample.facial_expressions == 90
        assert sample.eye_contact == 90

    def test_halfway(self):
        sample = synthesize_sample(15, MediaMode.audio, jitter=0.05)
        assert sample.pace == pytest.approx(50 + 20 + 0.5)
        assert sample.volume == pytest.approx(60 + 22.5 + 1.0)

    @pytest.mark.parametrize("elapsed", [0, 7, 29, 31, 120, 600])
    def test_values_stay_in_range(self, elapsed):
        sample = synthesize_sample(elapsed, MediaMode.video, jitter=0.0999)
        for value in sample.model_dump().values():
            assert 0 <= value <= 100


class TestAnalysisEmitter:
    async def test_emits_while_recording(self, timers, settings):
        session = MediaSession(mode=MediaMode.audio, state=SessionState.recording)
        samples = []
        emitter = AnalysisEmitter(session, samples.append, timers, settings)
        emitter.start()
        await asyncio.sleep(0.05)
        emitter.stop()

        assert len(samples) >= 2
        assert emitter.latest is samples[-1]
        assert timers.active_count == 0

    async def test_not_started_when_idle(self, timers, settings):
        session = MediaSession(mode=MediaMode.audio)
        emitter = AnalysisEmitter(session, lambda s: None, timers, settings)
        emitter.start()
        assert emitter.running is False
        assert timers.active_count == 0

    async def test_stops_when_session_leaves_recording(self, timers, settings):
        session = MediaSession(mode=MediaMode.video, state=SessionState.recording)
        samples = []
        emitter = AnalysisEmitter(session, samples.append, timers, settings)
        emitter.start()
        session.state = SessionState.stopped
        await asyncio.sleep(0.03)
        assert samples == []
        assert emitter.running is False
        assert timers.active_count == 0

    async def test_seeded_jitter_is_reproducible(self, timers, settings):
        session = MediaSession(mode=MediaMode.audio, state=SessionState.recording, elapsed_seconds=5)
        first, second = [], []
        AnalysisEmitter(session, first.append, timers, settings, rng=np.random.default_rng(3))._emit()
        AnalysisEmitter(session, second.append, timers, settings, rng=np.random.default_rng(3))._emit()
        assert first == second

    async def test_clear_forgets_latest(self, timers, settings):
        session = MediaSession(mode=MediaMode.audio, state=SessionState.recording)
        emitter = AnalysisEmitter(session, lambda s: None, timers, settings)
        emitter._emit()
        assert emitter.latest is not None
        emitter.clear()
        assert emitter.latest is None
        assert emitter.running is False
