from typing import Protocol, runtime_checkable

from ocr_uploader.schemas.ocr import JobStatusReport


@runtime_checkable
class BaseExtractionGateway(Protocol):
    async def submit(self, file_bytes: bytes, file_name: str) -> str:
        """Upload a document and return the job identifier assigned upstream."""
        ...

    async def poll_status(self, job_id: str) -> JobStatusReport:
        """Fetch the current raw status of a job. One round trip, no retries."""
        ...

    async def fetch_result(self, job_id: str) -> str:
        """Retrieve the extracted text of a job already reported as successful."""
        ...
