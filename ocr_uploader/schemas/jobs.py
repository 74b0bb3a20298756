from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ocr_uploader.core.errors import ErrorKind


class JobPhase(str, Enum):
    NONE = "NONE"
    SUBMITTED = "SUBMITTED"
    POLLING = "POLLING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_active(self) -> bool:
        return self in (JobPhase.SUBMITTED, JobPhase.POLLING)


class Job(BaseModel):
    """One in-flight extraction request. Phase changes produce a new value."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    source_file_ref: str
    file_name: str | None = None
    phase: JobPhase = JobPhase.SUBMITTED
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def advance(self, phase: JobPhase) -> "Job":
        return self.model_copy(update={"phase": phase})


class OutcomeStatus(str, Enum):
    NO_ACTIVE_JOB = "no_active_job"
    STILL_RUNNING = "still_running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobOutcome(BaseModel):
    status: OutcomeStatus
    message: str
    job_id: str | None = None
    file_ref: str | None = None
    raw_status: str | None = None
    extracted_text: str | None = None
    result_id: int | None = None
    error_kind: ErrorKind | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (OutcomeStatus.COMPLETED, OutcomeStatus.FAILED)
