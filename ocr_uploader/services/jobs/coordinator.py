from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

from ocr_uploader.core.config import settings
from ocr_uploader.core.errors import InvalidSubmission, JobAlreadyActive, OcrUploaderError
from ocr_uploader.schemas.jobs import Job, JobOutcome, JobPhase, OutcomeStatus
from ocr_uploader.services.extraction.base import BaseExtractionGateway
from ocr_uploader.services.store.base import BaseResultStore

logger = logging.getLogger(__name__)

MSG_NO_ACTIVE_JOB = "Upload a file"
MSG_STILL_RUNNING = "Still processing..."
MSG_COMPLETED = "Processing complete!"
MSG_FAILED = "Processing failed"


class StatusClass(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    RUNNING = "running"


def classify_status(raw_status: str, *, success_literal: str, failure_literal: str) -> StatusClass:
    """Exact, case-sensitive match; any other literal means the job is still running."""

    if raw_status == success_literal:
        return StatusClass.SUCCESS
    if raw_status == failure_literal:
        return StatusClass.FAILURE
    return StatusClass.RUNNING


class JobCoordinator:
    """Tracks a single extraction job from submission to its terminal outcome.

    Polling is driven by the caller: each ``check_job`` performs one status
    round trip and either leaves the job in place or finishes it. All
    operations are serialized on one lock so overlapping requests cannot
    lose an update to the active slot.
    """

    def __init__(
        self,
        *,
        gateway: BaseExtractionGateway,
        store: BaseResultStore,
        success_literal: str | None = None,
        failure_literal: str | None = None,
        reject_concurrent_jobs: bool | None = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self.success_literal = success_literal or settings.status_success_literal
        self.failure_literal = failure_literal or settings.status_failure_literal
        self.reject_concurrent_jobs = (
            settings.reject_concurrent_jobs if reject_concurrent_jobs is None else reject_concurrent_jobs
        )
        self._job: Job | None = None
        self._lock = asyncio.Lock()

    @property
    def phase(self) -> JobPhase:
        return self._job.phase if self._job else JobPhase.NONE

    async def active_job(self) -> Job | None:
        async with self._lock:
            return self._job

    async def begin_job(self, source_file_ref: str, file_bytes: bytes, file_name: str) -> str:
        if not source_file_ref or not source_file_ref.strip():
            raise InvalidSubmission("A source file reference is required")
        if not file_bytes:
            raise InvalidSubmission("Uploaded file is empty", detail={"file_name": file_name})

        async with self._lock:
            self._ensure_admissible()
            return await self._submit(source_file_ref, file_bytes, file_name)

    async def begin_upload(
        self,
        file_bytes: bytes,
        file_name: str,
        store_source: Callable[[], Awaitable[str]],
    ) -> tuple[str, str]:
        """Store the source file and submit it, returning ``(job_id, file_ref)``.

        ``store_source`` runs under the lock and only once the submission is
        admitted, so a refused upload never writes to storage. If storing
        fails, the job already in the slot is kept.
        """

        if not file_bytes:
            raise InvalidSubmission("Uploaded file is empty", detail={"file_name": file_name})

        async with self._lock:
            self._ensure_admissible()
            source_file_ref = await store_source()
            if not source_file_ref or not source_file_ref.strip():
                raise InvalidSubmission("Storage returned no file reference", detail={"file_name": file_name})
            job_id = await self._submit(source_file_ref, file_bytes, file_name)
            return job_id, source_file_ref

    def _ensure_admissible(self) -> None:
        if self.reject_concurrent_jobs and self._job is not None and self._job.phase.is_active:
            raise JobAlreadyActive(self._job.job_id)

    async def _submit(self, source_file_ref: str, file_bytes: bytes, file_name: str) -> str:
        if self._job is not None and self._job.phase.is_active:
            # No cancellation is sent upstream; the old job keeps running there.
            logger.warning(
                "Abandoning job %s (%s) in phase %s for a new submission",
                self._job.job_id,
                self._job.source_file_ref,
                self._job.phase.value,
            )
        self._job = None

        job_id = await self._gateway.submit(file_bytes, file_name)
        self._job = Job(job_id=job_id, source_file_ref=source_file_ref, file_name=file_name)
        logger.info("Job %s submitted for %s", job_id, source_file_ref)
        return job_id

    async def check_job(self) -> JobOutcome:
        async with self._lock:
            if self._job is None:
                return JobOutcome(status=OutcomeStatus.NO_ACTIVE_JOB, message=MSG_NO_ACTIVE_JOB)

            job = self._job.advance(JobPhase.POLLING)
            self._job = job

            try:
                report = await self._gateway.poll_status(job.job_id)
            except OcrUploaderError as exc:
                return self._fail(job, exc)

            verdict = classify_status(
                report.raw_status,
                success_literal=self.success_literal,
                failure_literal=self.failure_literal,
            )

            if verdict is StatusClass.RUNNING:
                logger.info("Job %s still running (status=%s)", job.job_id, report.raw_status)
                return JobOutcome(
                    status=OutcomeStatus.STILL_RUNNING,
                    message=MSG_STILL_RUNNING,
                    job_id=job.job_id,
                    file_ref=job.source_file_ref,
                    raw_status=report.raw_status,
                )

            if verdict is StatusClass.FAILURE:
                return self._fail(job, raw_status=report.raw_status)

            try:
                text = await self._gateway.fetch_result(job.job_id)
                result_id = await self._store.append(job.source_file_ref, text)
            except OcrUploaderError as exc:
                return self._fail(job, exc, raw_status=report.raw_status)

            finished = job.advance(JobPhase.SUCCEEDED)
            logger.info("Job %s %s, result id=%s", finished.job_id, finished.phase.value, result_id)
            self._job = None
            return JobOutcome(
                status=OutcomeStatus.COMPLETED,
                message=MSG_COMPLETED,
                job_id=job.job_id,
                file_ref=job.source_file_ref,
                raw_status=report.raw_status,
                extracted_text=text,
                result_id=result_id,
            )

    def _fail(self, job: Job, error: OcrUploaderError | None = None, *, raw_status: str | None = None) -> JobOutcome:
        finished = job.advance(JobPhase.FAILED)
        if error is not None:
            logger.warning("Job %s %s: %s (%s)", finished.job_id, finished.phase.value, error, error.kind.value)
        else:
            logger.warning("Job %s %s with upstream status %s", finished.job_id, finished.phase.value, raw_status)
        self._job = None
        return JobOutcome(
            status=OutcomeStatus.FAILED,
            message=error.user_message if error is not None else MSG_FAILED,
            job_id=job.job_id,
            file_ref=job.source_file_ref,
            raw_status=raw_status,
            error_kind=error.kind if error is not None else None,
        )
