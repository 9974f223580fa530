"""Init-once model holder shared by every local transcription."""

import asyncio
import logging
from collections.abc import Callable
from functools import lru_cache, partial
from typing import Any

from interview_media.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class LazyModelLoader:
    """Loads a model on first use and hands the same instance to every caller.

    Concurrent callers share one in-flight load. The factory is blocking and
    runs in a worker thread. A failed load is forgotten so the next call
    tries again.

    Args:
        factory: Zero-argument callable building the model.
        name: Label used in log messages.
    """

    def __init__(self, factory: Callable[[], Any], name: str = "model") -> None:
        self._factory = factory
        self._name = name
        self._model: Any = None
        self._task: asyncio.Task | None = None

    @property
    def loaded(self) -> bool:
        return self._model is not None

    async def get(self) -> Any:
        """Return the model, loading it if needed."""
        if self._model is not None:
            return self._model
        if self._task is None:
            self._task = asyncio.ensure_future(self._load())
        task = self._task
        try:
            return await asyncio.shield(task)
        finally:
            if task.done() and (task.cancelled() or task.exception() is not None):
                if self._task is task:
                    self._task = None

    async def _load(self) -> Any:
        logger.info("Loading %s", self._name)
        try:
            model = await asyncio.to_thread(self._factory)
        except Exception as exc:
            logger.error("Failed to load %s: %s", self._name, exc)
            raise
        self._model = model
        logger.info("%s ready", self._name)
        return model

    def reset(self) -> None:
        """Drop the cached model (and forget any pending load)."""
        self._model = None
        self._task = None


def _build_whisper_model(model_size: str, device: str, compute_type: str):
    from faster_whisper import WhisperModel

    logger.info(
        "Loading Whisper model: %s (device=%s, compute=%s)", model_size, device, compute_type
    )
    return WhisperModel(model_size, device=device, compute_type=compute_type)


@lru_cache
def _loader_for(model_size: str, device: str, compute_type: str) -> LazyModelLoader:
    factory = partial(_build_whisper_model, model_size, device, compute_type)
    return LazyModelLoader(factory, name=f"Whisper model {model_size}")


def get_model_loader(settings: Settings | None = None) -> LazyModelLoader:
    """Return the shared loader for the Whisper model ``settings`` select.

    One loader (and so one model instance) exists per model, device and
    compute type combination.
    """
    settings = settings or get_settings()
    return _loader_for(
        settings.whisper_model, settings.whisper_device, settings.whisper_compute_type
    )
