from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from ocr_uploader.core.config import settings
from ocr_uploader.core.errors import StorageUploadError
from ocr_uploader.services.storage.base import BaseObjectStorage

logger = logging.getLogger(__name__)


class SupabaseStorageClient(BaseObjectStorage):
    """Upload/download files through the Supabase storage REST API."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        bucket: str | None = None,
        prefix: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.supabase_key
        self.bucket = bucket or settings.storage_bucket
        self.prefix = (prefix if prefix is not None else settings.storage_prefix).strip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout or settings.request_timeout_seconds)

    def object_path(self, file_name: str) -> str:
        name = file_name.replace("\\", "/").rsplit("/", 1)[-1]
        return f"{self.prefix}/{name}" if self.prefix else name

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    async def put(self, path: str, data: bytes, *, content_type: str | None = None) -> str:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(path)}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "apikey": self.api_key,
            "Content-Type": content_type or "application/octet-stream",
        }
        try:
            response = await self._client.post(url, content=data, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Storage upload of %s failed: %s", path, exc)
            raise StorageUploadError(detail=str(exc)) from exc

        # Existing objects are never overwritten; a duplicate name is rejected upstream.
        if not response.is_success:
            logger.error("Storage rejected %s with HTTP %d: %s", path, response.status_code, response.text)
            raise StorageUploadError(detail=response.text)

        public_url = self.public_url(path)
        logger.info("Stored %d bytes at %s", len(data), public_url)
        return public_url

    async def download(self, url: str) -> bytes:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            logger.error("Download of %s failed: %s", url, exc)
            raise StorageUploadError(f"Could not download file: {exc}", detail=str(exc)) from exc

        if not response.is_success:
            logger.error("Download of %s returned HTTP %d", url, response.status_code)
            raise StorageUploadError(
                f"Could not download file: HTTP {response.status_code}",
                detail=response.text,
            )
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()
