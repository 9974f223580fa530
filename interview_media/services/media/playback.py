"""Playback of a finalized recording through a media sink.

Position updates come from a short polling timer instead of sink change
notifications, which are unreliable for short clips on some platforms.
"""

import asyncio
import logging
import math
from collections.abc import Callable

from interview_media.core.config import Settings, get_settings
from interview_media.core.exceptions import PlaybackFailureError, RecorderStateError
from interview_media.core.models import MediaSession, PlaybackState, SessionState
from interview_media.services.media.platform import BaseMediaSink
from interview_media.services.media.resources import IntervalTimer, TimerRegistry

logger = logging.getLogger(__name__)


class PlaybackController:
    """Play / pause / seek / volume over one stopped session.

    Args:
        session: The finalized session to review (not owned).
        sink: Playback target; loaded with the session's URL on creation.
        timers: Registry tracking the polling timer.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        session: MediaSession,
        sink: BaseMediaSink,
        timers: TimerRegistry,
        settings: Settings | None = None,
    ) -> None:
        if session.state is not SessionState.stopped or session.result_blob is None:
            raise RecorderStateError("Playback requires a stopped session with a recording")

        self._session = session
        self._sink = sink
        self._timers = timers
        self._settings = settings or get_settings()
        self._poll: IntervalTimer | None = None
        self._busy = False
        self._closed = False
        self._ended_count = 0
        self._progress_listeners: list[Callable[[PlaybackState], None]] = []

        volume = self._settings.default_volume
        sink.load(session.result_url or "", session.result_blob)
        sink.on_ended(self._handle_ended)
        sink.set_volume(volume)
        self.state = PlaybackState(duration=sink.duration, volume=volume, previous_volume=volume)
        self.last_error: PlaybackFailureError | None = None

    @property
    def busy(self) -> bool:
        return self._busy

    def on_progress(self, callback: Callable[[PlaybackState], None]) -> None:
        self._progress_listeners.append(callback)

    def _require_active(self) -> None:
        if self._closed or self._session.state is not SessionState.stopped:
            raise RecorderStateError("No finalized recording to play")

    def _notify(self) -> None:
        for listener in list(self._progress_listeners):
            try:
                listener(self.state)
            except Exception:
                logger.exception("Playback listener %r failed (non-fatal)", listener)

    # -- play / pause --

    async def toggle_playback(self) -> bool:
        """Play if paused, pause if playing.

        A call made while a previous toggle is still settling is ignored.

        Returns:
            True if the playback state changed, False if the call was ignored.

        Raises:
            PlaybackFailureError: The sink rejected ``play()``. The recording
                is kept so the user can retry or submit without reviewing.
        """
        self._require_active()
        if self._busy:
            logger.debug("Playback toggle ignored: previous toggle still settling")
            return False

        self._busy = True
        try:
            if self.state.is_playing:
                self._sink.pause()
                await asyncio.sleep(self._settings.playback_settle_seconds)
                self._cancel_poll()
                self.state.is_playing = False
                self.state.current_time = self._sink.get_current_time()
            else:
                ended_before = self._ended_count
                try:
                    await self._sink.play()
                except Exception as exc:
                    self.state.is_playing = False
                    self.last_error = PlaybackFailureError(
                        f"Error playing {self._session.mode}: {exc}"
                    )
                    logger.error("Error playing %s: %s", self._session.mode, exc)
                    raise self.last_error from exc
                if self._closed:
                    self._sink.pause()
                    return False
                self.last_error = None
                if self._ended_count != ended_before:
                    logger.debug("Playback ended before play() returned")
                    return True
                self.state.is_playing = True
                self._start_poll()
        finally:
            self._busy = False

        self._notify()
        return True

    def _start_poll(self) -> None:
        self._cancel_poll()
        self._poll = self._timers.start_interval(
            "playback-poll", self._settings.playback_poll_seconds, self._sample_position
        )

    def _cancel_poll(self) -> None:
        if self._poll is not None:
            self._poll.cancel()
            self._poll = None

    def _sample_position(self) -> None:
        self.state.current_time = self._sink.get_current_time()
        self._notify()

    def _handle_ended(self) -> None:
        if self._closed:
            return
        self._ended_count += 1
        self._cancel_poll()
        self.state.is_playing = False
        self.state.current_time = self._sink.get_current_time()
        logger.debug("Playback of session %s ended", self._session.session_id)
        self._notify()

    # -- position / volume --

    def seek(self, seconds: float) -> float:
        """Move to ``seconds`` clamped into ``[0, duration]``; returns the new position."""
        self._require_active()
        duration = self._sink.duration
        self.state.duration = duration
        target = max(0.0, float(seconds))
        if math.isfinite(duration):
            target = min(target, duration)
        self._sink.seek(target)
        self.state.current_time = target
        self._notify()
        return target

    def set_volume(self, level: float) -> None:
        """Set volume in [0, 1]; 0 mutes, anything above unmutes."""
        self._require_active()
        level = min(max(float(level), 0.0), 1.0)
        if level == 0:
            if self.state.volume > 0:
                self.state.previous_volume = self.state.volume
            self.state.is_muted = True
        else:
            self.state.is_muted = False
        self.state.volume = level
        self._sink.set_volume(self.state.effective_volume)
        self._notify()

    def toggle_mute(self) -> None:
        """Mute, or restore the exact volume that was active before muting."""
        self._require_active()
        if self.state.is_muted:
            self.state.volume = self.state.previous_volume
            self.state.is_muted = False
        else:
            if self.state.volume > 0:
                self.state.previous_volume = self.state.volume
            self.state.is_muted = True
        self._sink.set_volume(self.state.effective_volume)
        self._notify()

    # -- teardown --

    def close(self) -> None:
        """Stop polling, pause and unload the sink. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._cancel_poll()
        if self.state.is_playing:
            self._sink.pause()
            self.state.is_playing = False
        self._sink.unload()
