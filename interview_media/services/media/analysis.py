"""Synthetic delivery metrics shown while an answer is being recorded.

The values are a display heuristic, not measurements: each metric rises with
elapsed recording time towards a plateau, plus a small bounded jitter, and
is capped at 100.
"""

import logging
from collections.abc import Callable

import numpy as np

from interview_media.core.config import Settings, get_settings
from interview_media.core.models import AnalysisSample, MediaMode, MediaSession, SessionState
from interview_media.services.media.resources import IntervalTimer, TimerRegistry

logger = logging.getLogger(__name__)

_RAMP_SECONDS = 30.0  # Time-based factor saturates after this long
_JITTER = 0.1


def synthesize_sample(elapsed_seconds: float, mode: MediaMode, jitter: float) -> AnalysisSample:
    """Build one sample for ``elapsed_seconds`` of recording.

    Args:
        elapsed_seconds: Recording time so far.
        mode: Video adds the facial-expression and eye-contact proxies.
        jitter: Random factor in ``[0, 0.1)``.
    """
    t = max(float(elapsed_seconds), 0.0)
    factor = min(t / _RAMP_SECONDS, 1.0)

    def cap(value: float) -> float:
        return min(value, 100.0)

    video = mode is MediaMode.video
    return AnalysisSample(
        volume=cap(60 + t * 1.5 + jitter * 20),
        pace=cap(50 + factor * 40 + jitter * 10),
        clarity=cap(70 + factor * 20 + jitter * 10),
        confidence=cap(40 + factor * 50 + jitter * 10),
        facial_expressions=cap(60 + factor * 30 + jitter * 10) if video else None,
        eye_contact=cap(70 + factor * 20 + jitter * 10) if video else None,
    )


class AnalysisEmitter:
    """Emits an ``AnalysisSample`` every interval while a session records.

    Args:
        session: Session to observe (not owned).
        callback: Receives each sample.
        timers: Registry tracking the emission timer.
        settings: Optional Settings instance (defaults to get_settings()).
        rng: Optional numpy generator; seeded from settings when omitted.
    """

    def __init__(
        self,
        session: MediaSession,
        callback: Callable[[AnalysisSample], None],
        timers: TimerRegistry,
        settings: Settings | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._session = session
        self._callback = callback
        self._timers = timers
        self._settings = settings or get_settings()
        self._rng = rng or np.random.default_rng(self._settings.analysis_seed)
        self._timer: IntervalTimer | None = None
        self.latest: AnalysisSample | None = None

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        """Begin emitting; a no-op unless the session is recording."""
        if self._timer is not None or self._session.state is not SessionState.recording:
            return
        self._timer = self._timers.start_interval(
            "analysis", self._settings.analysis_interval_seconds, self._emit
        )

    def stop(self) -> None:
        """Stop emitting. Idempotent."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def clear(self) -> None:
        """Stop and forget the last sample (session reset)."""
        self.stop()
        self.latest = None

    def _emit(self) -> None:
        if self._session.state is not SessionState.recording:
            self.stop()
            return
        jitter = float(self._rng.random()) * _JITTER
        sample = synthesize_sample(self._session.elapsed_seconds, self._session.mode, jitter)
        self.latest = sample
        self._callback(sample)
