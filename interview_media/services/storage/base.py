"""
Abstract base classes for remote storage.

The object store holds the recorded media; the response store persists one
row per answered question. Both are external services, so implementations
report transient network failures as ``ConnectionError`` / ``TimeoutError``
and everything else as ``UploadError``.
"""

from abc import ABC, abstractmethod

from interview_media.core.models import MediaBlob, ResponseRecord


class BaseObjectStore(ABC):
    """Interface for blob storage."""

    @abstractmethod
    async def upload(self, path: str, blob: MediaBlob, content_type: str) -> str:
        """Store ``blob`` under ``path`` (overwriting) and return its public URL."""

    async def close(self) -> None:
        """Release network resources. Optional."""


class BaseResponseStore(ABC):
    """Interface for persisting interview responses."""

    @abstractmethod
    async def insert_response(self, record: ResponseRecord) -> dict:
        """Insert ``record`` and return the stored row."""

    async def close(self) -> None:
        """Release network resources. Optional."""
