"""Uploads finalized recordings with retry on transient failures."""

import logging
import time
from uuid import uuid4

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from interview_media.core.config import Settings, get_settings
from interview_media.core.exceptions import UploadError
from interview_media.core.models import MediaBlob, MediaMode, UploadResult
from interview_media.core.utils import base_mime_type, extension_for_mime
from interview_media.services.storage.base import BaseObjectStore

logger = logging.getLogger(__name__)


def build_object_path(
    interview_id: str,
    question_id: str,
    mode: MediaMode,
    mime_type: str,
    epoch_ms: int | None = None,
) -> str:
    """Unique storage key for one answer."""
    if epoch_ms is None:
        epoch_ms = int(time.time() * 1000)
    ext = extension_for_mime(mime_type)
    return f"interviews/{interview_id}/question_{question_id}_{mode}_{epoch_ms}_{uuid4()}.{ext}"


class MediaUploader:
    """Stores a recording in the object store.

    Args:
        store: Remote object store.
        settings: Optional Settings instance (defaults to get_settings()).
        min_wait: Lower bound of the exponential backoff in seconds.
        max_wait: Upper bound of the exponential backoff in seconds.
    """

    def __init__(
        self,
        store: BaseObjectStore,
        settings: Settings | None = None,
        min_wait: float = 1,
        max_wait: float = 16,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._min_wait = min_wait
        self._max_wait = max_wait

    async def upload(
        self,
        blob: MediaBlob,
        interview_id: str,
        question_id: str,
        mode: MediaMode,
    ) -> UploadResult:
        """Upload ``blob`` and return where it was stored.

        Raises:
            UploadError: The blob is empty or every attempt failed.
        """
        if blob.size == 0:
            raise UploadError(f"Invalid {mode} recording. Please try again.")

        path = build_object_path(interview_id, question_id, mode, blob.mime_type)
        content_type = base_mime_type(blob.mime_type)
        logger.info("Uploading %s file: %s, size: %d bytes", mode, path, blob.size)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.upload_max_attempts),
            wait=wait_exponential(multiplier=1, min=self._min_wait, max=self._max_wait),
            retry=retry_if_exception_type((ConnectionError, TimeoutError)),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            "Retrying %s upload (attempt %d)",
                            mode,
                            attempt.retry_state.attempt_number,
                        )
                    public_url = await self._store.upload(path, blob, content_type)
        except UploadError:
            raise
        except (ConnectionError, TimeoutError, RetryError) as exc:
            raise UploadError(f"Failed to upload {mode}: {exc}") from exc

        return UploadResult(
            path=path, public_url=public_url, content_type=content_type, size=blob.size
        )
