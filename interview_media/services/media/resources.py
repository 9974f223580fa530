"""Tracked playback URLs and interval timers.

Every recorder, playback controller and analysis emitter registers the
timers and URLs it creates here, so a host can assert that an exit path
(stop, reset, unmount) left nothing running.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from uuid import uuid4

from interview_media.core.models import MediaBlob

logger = logging.getLogger(__name__)


class ObjectUrlRegistry:
    """Creates and revokes ephemeral references to finalized blobs."""

    def __init__(self, prefix: str = "blob:interview-media/") -> None:
        self._prefix = prefix
        self._blobs: dict[str, MediaBlob] = {}

    @property
    def active_count(self) -> int:
        return len(self._blobs)

    def create(self, blob: MediaBlob) -> str:
        """Register ``blob`` and return a new playback URL for it."""
        url = f"{self._prefix}{uuid4()}"
        self._blobs[url] = blob
        return url

    def resolve(self, url: str) -> MediaBlob | None:
        return self._blobs.get(url)

    def revoke(self, url: str) -> bool:
        """Release ``url``. Returns False if it was already revoked."""
        if self._blobs.pop(url, None) is None:
            logger.warning("Attempted to revoke unknown or revoked URL %s", url)
            return False
        return True


class IntervalTimer:
    """Repeating callback driven by an ``asyncio`` task."""

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], None | Awaitable[None]],
        registry: "TimerRegistry",
    ) -> None:
        self.name = name
        self.interval = interval
        self._callback = callback
        self._registry = registry
        self._cancelled = False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"timer:{name}")

    @property
    def active(self) -> bool:
        return not self._cancelled and not self._task.done()

    async def _run(self) -> None:
        try:
            while not self._cancelled:
                await asyncio.sleep(self.interval)
                if self._cancelled:
                    break
                result = self._callback()
                if inspect.isawaitable(result):
                    await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Timer %s crashed", self.name)
        finally:
            self._registry._discard(self)

    def cancel(self) -> None:
        """Stop the timer. Safe to call more than once, including from its own callback."""
        if self._cancelled:
            return
        self._cancelled = True
        self._registry._discard(self)
        if self._task is not asyncio.current_task():
            self._task.cancel()


class TimerRegistry:
    """Owns every interval timer started by the media components."""

    def __init__(self) -> None:
        self._timers: set[IntervalTimer] = set()

    @property
    def active_count(self) -> int:
        return len(self._timers)

    def start_interval(
        self,
        name: str,
        interval: float,
        callback: Callable[[], None | Awaitable[None]],
    ) -> IntervalTimer:
        """Call ``callback`` every ``interval`` seconds until cancelled.

        Must be called from inside a running event loop.
        """
        timer = IntervalTimer(name, interval, callback, self)
        self._timers.add(timer)
        logger.debug("Started timer %s (every %.3fs)", name, interval)
        return timer

    def cancel_all(self) -> None:
        for timer in list(self._timers):
            timer.cancel()

    def _discard(self, timer: IntervalTimer) -> None:
        self._timers.discard(timer)
