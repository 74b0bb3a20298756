"""Error taxonomy for the upload/extract/persist flow.

Every error carries an ``ErrorKind`` so callers can pick the single
user-facing message for its category while the diagnostic ``detail``
(raw upstream body, driver message) only goes to the logs.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UPSTREAM_REJECTED = "upstream_rejected"
    MALFORMED_PAYLOAD = "malformed_payload"
    PERSISTENCE_ERROR = "persistence_error"
    STORAGE_UPLOAD_FAILED = "storage_upload_failed"
    INVALID_SUBMISSION = "invalid_submission"
    JOB_ALREADY_ACTIVE = "job_already_active"


USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.UPSTREAM_UNAVAILABLE: "Extraction service is unreachable",
    ErrorKind.UPSTREAM_REJECTED: "Extraction service rejected the request",
    ErrorKind.MALFORMED_PAYLOAD: "Invalid OCR response",
    ErrorKind.PERSISTENCE_ERROR: "Error saving result",
    ErrorKind.STORAGE_UPLOAD_FAILED: "Upload failed",
    ErrorKind.INVALID_SUBMISSION: "Upload a file",
    ErrorKind.JOB_ALREADY_ACTIVE: "A document is already being processed",
}


def user_message_for(kind: ErrorKind) -> str:
    return USER_MESSAGES[kind]


class OcrUploaderError(Exception):
    """Base class for all errors raised by this service.

    Attributes:
        kind: Category used for classification and user messages
        detail: Diagnostic context for logs, never shown verbatim to users
    """

    kind: ErrorKind

    def __init__(self, message: str | None = None, *, detail: Any = None) -> None:
        super().__init__(message or user_message_for(self.kind))
        self.detail = detail

    @property
    def user_message(self) -> str:
        return user_message_for(self.kind)


class UpstreamUnavailable(OcrUploaderError):
    """The extraction service could not be reached (transport failure)."""

    kind = ErrorKind.UPSTREAM_UNAVAILABLE


class UpstreamRejected(OcrUploaderError):
    """The extraction service answered with a non-success status code."""

    kind = ErrorKind.UPSTREAM_REJECTED

    def __init__(self, status_code: int, body: str, message: str | None = None) -> None:
        super().__init__(message or f"Extraction service responded with HTTP {status_code}", detail=body)
        self.status_code = status_code
        self.body = body


class MalformedPayload(OcrUploaderError):
    """A response body did not match the expected (nested) envelope."""

    kind = ErrorKind.MALFORMED_PAYLOAD


class PersistenceError(OcrUploaderError):
    kind = ErrorKind.PERSISTENCE_ERROR


class StorageUploadError(OcrUploaderError):
    kind = ErrorKind.STORAGE_UPLOAD_FAILED


class InvalidSubmission(OcrUploaderError, ValueError):
    kind = ErrorKind.INVALID_SUBMISSION


class JobAlreadyActive(OcrUploaderError):
    """Raised only when concurrent submissions are configured to be refused."""

    kind = ErrorKind.JOB_ALREADY_ACTIVE

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job {job_id} is still in flight", detail={"job_id": job_id})
        self.job_id = job_id
