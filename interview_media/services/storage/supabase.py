"""
Supabase Storage and PostgREST clients over ``httpx.AsyncClient``.

Transient network failures surface as ``ConnectionError`` / ``TimeoutError``
so callers can retry them; HTTP status errors become ``UploadError``.
"""

import logging
from urllib.parse import quote

import httpx

from interview_media.core.config import Settings, get_settings
from interview_media.core.exceptions import UploadError
from interview_media.core.models import MediaBlob, ResponseRecord
from interview_media.services.storage.base import BaseObjectStore, BaseResponseStore

logger = logging.getLogger(__name__)


class _SupabaseClient:
    """Shared request plumbing for the Supabase REST endpoints."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        if not self._settings.supabase_url:
            raise UploadError("SUPABASE_URL is not configured")
        self._base_url = self._settings.supabase_url.rstrip("/")
        key = self._settings.supabase_key
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._settings.upload_timeout_seconds,
            headers={"apikey": key, "Authorization": f"Bearer {key}"},
        )

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Execute a request, translating httpx errors.

        Raises:
            ConnectionError: The service could not be reached.
            TimeoutError: The request timed out.
            UploadError: The service answered with an error status.
        """
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.TimeoutException as exc:
            raise TimeoutError(f"Request to {path} timed out") from exc
        except httpx.TransportError as exc:
            raise ConnectionError(f"Could not reach storage service: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            try:
                body = exc.response.json()
                detail = body.get("message") or body.get("error") or exc.response.text
            except Exception:
                detail = exc.response.text or str(exc)
            raise UploadError(
                f"Storage request failed ({exc.response.status_code}): {detail}"
            ) from exc

    async def close(self) -> None:
        await self._client.aclose()


class SupabaseObjectStore(_SupabaseClient, BaseObjectStore):
    """Uploads recordings to a Supabase Storage bucket."""

    @property
    def bucket(self) -> str:
        return self._settings.storage_bucket

    def public_url(self, path: str) -> str:
        return f"{self._base_url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    async def upload(self, path: str, blob: MediaBlob, content_type: str) -> str:
        await self._request(
            "POST",
            f"/storage/v1/object/{self.bucket}/{quote(path)}",
            content=blob.data,
            headers={"Content-Type": content_type, "x-upsert": "true"},
        )
        url = self.public_url(path)
        logger.info("Uploaded %d bytes to %s", blob.size, url)
        return url


class SupabaseResponseStore(_SupabaseClient, BaseResponseStore):
    """Inserts rows into the ``responses`` table through PostgREST."""

    table = "responses"

    async def insert_response(self, record: ResponseRecord) -> dict:
        resp = await self._request(
            "POST",
            f"/rest/v1/{self.table}",
            json=record.model_dump(),
            headers={"Prefer": "return=representation"},
        )
        rows = resp.json()
        row = rows[0] if isinstance(rows, list) and rows else rows
        logger.info("Saved response for question %s", record.question_id)
        return row or {}
