from __future__ import annotations

import logging
import mimetypes
from typing import Any

import httpx

from ocr_uploader.core.config import settings
from ocr_uploader.core.errors import UpstreamRejected, UpstreamUnavailable
from ocr_uploader.schemas.ocr import JobStatusReport
from ocr_uploader.services.extraction.base import BaseExtractionGateway
from ocr_uploader.services.extraction.envelope import decode_envelope, require_str

logger = logging.getLogger(__name__)


class LlamaParseGateway(BaseExtractionGateway):
    """Adapter over the LlamaParse parsing API (upload, job status, markdown result)."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.llamaparse_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.llamaparse_api_key
        self._client = http_client or httpx.AsyncClient(timeout=timeout or settings.request_timeout_seconds)

    async def submit(self, file_bytes: bytes, file_name: str) -> str:
        content_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"
        response = await self._request(
            "POST",
            "/parsing/upload",
            files={"file": (file_name, file_bytes, content_type)},
        )
        # The job id may come wrapped as a JSON string under "data".
        payload = decode_envelope(response.text, envelope_key="data")
        job_id = require_str(payload, "id")
        logger.info("Submitted %s to extraction service, job_id=%s", file_name, job_id)
        return job_id

    async def poll_status(self, job_id: str) -> JobStatusReport:
        response = await self._request("GET", f"/parsing/job/{job_id}")
        payload = decode_envelope(response.text)
        if isinstance(payload.get("status"), dict):
            # Proxied shape: {"status": {"id": ..., "status": "..."}}
            payload = payload["status"]
        raw_status = require_str(payload, "status")
        logger.debug("Job %s status=%s", job_id, raw_status)
        return JobStatusReport(raw_status=raw_status, payload=payload)

    async def fetch_result(self, job_id: str) -> str:
        response = await self._request("GET", f"/parsing/job/{job_id}/result/markdown")
        # Plain text body that is itself a JSON object with a "markdown" field.
        payload = decode_envelope(response.text)
        text = require_str(payload, "markdown", allow_empty=True)
        logger.info("Fetched result for job %s (%d chars)", job_id, len(text))
        return text

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Extraction service unreachable: %s %s (%s)", method, url, exc)
            raise UpstreamUnavailable(f"{method} {path} failed: {exc}", detail=str(exc)) from exc

        if not response.is_success:
            body = response.text
            logger.error(
                "Extraction service rejected %s %s with HTTP %d: %s",
                method,
                path,
                response.status_code,
                body,
            )
            raise UpstreamRejected(response.status_code, body)
        return response
