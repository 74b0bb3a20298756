import logging
import mimetypes
from typing import Final

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from ocr_uploader.api.deps import CoordinatorDep, ResultStoreDep, StorageDep
from ocr_uploader.core.errors import (
    InvalidSubmission,
    JobAlreadyActive,
    OcrUploaderError,
    PersistenceError,
    StorageUploadError,
)
from ocr_uploader.schemas.jobs import Job, JobOutcome
from ocr_uploader.schemas.ocr import ExtractionResult, UploadResponse, UrlSubmission
from ocr_uploader.services.jobs.coordinator import JobCoordinator

router = APIRouter(prefix="/ocr", tags=["ocr"])

logger = logging.getLogger(__name__)
ALLOWED_CONTENT_TYPES: Final[set[str]] = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "application/pdf",
}


def _submission_error(exc: OcrUploaderError, file_name: str) -> HTTPException:
    if isinstance(exc, InvalidSubmission):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, JobAlreadyActive):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.user_message)
    if isinstance(exc, StorageUploadError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.user_message)
    logger.error("Submitting %s failed: %s (detail=%s)", file_name, exc, exc.detail)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="OCR processing failed")


async def _begin(coordinator: JobCoordinator, file_url: str, payload: bytes, file_name: str) -> UploadResponse:
    try:
        job_id = await coordinator.begin_job(file_url, payload, file_name)
    except OcrUploaderError as exc:
        raise _submission_error(exc, file_name) from exc

    return UploadResponse(job_id=job_id, file_url=file_url)


@router.post(
    "/upload",
    summary="Store a document and submit it for extraction",
    response_model=UploadResponse,
)
async def upload_document(
    coordinator: CoordinatorDep,
    storage: StorageDep,
    file: UploadFile = File(..., description="Document image or PDF"),
) -> UploadResponse:
    content_type = (file.content_type or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported file type: {file.content_type}",
        )

    try:
        payload = await file.read()
    except Exception as exc:  # pragma: no cover - upload IO errors are rare
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to read uploaded file.",
        ) from exc

    if not payload:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty.",
        )

    file_name = file.filename or "document.pdf"

    async def store_source() -> str:
        return await storage.put(storage.object_path(file_name), payload, content_type=content_type)

    try:
        job_id, file_url = await coordinator.begin_upload(payload, file_name, store_source)
    except OcrUploaderError as exc:
        raise _submission_error(exc, file_name) from exc

    return UploadResponse(job_id=job_id, file_url=file_url)


@router.post(
    "/url",
    summary="Submit an already stored document by URL",
    response_model=UploadResponse,
)
async def submit_by_url(
    body: UrlSubmission,
    coordinator: CoordinatorDep,
    storage: StorageDep,
) -> UploadResponse:
    try:
        payload = await storage.download(body.url)
    except StorageUploadError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not download file") from exc

    file_name = body.file_name or body.url.rsplit("/", 1)[-1] or "document.pdf"
    if mimetypes.guess_type(file_name)[0] is None:
        file_name = "document.pdf"
    return await _begin(coordinator, body.url, payload, file_name)


@router.post(
    "/check",
    summary="Poll the active job once",
    response_model=JobOutcome,
)
async def check_status(coordinator: CoordinatorDep) -> JobOutcome:
    """Failures come back as an outcome, not an HTTP error."""

    return await coordinator.check_job()


@router.get("/job", summary="Currently tracked job", response_model=Job | None)
async def active_job(coordinator: CoordinatorDep) -> Job | None:
    return await coordinator.active_job()


@router.get(
    "/results",
    summary="Stored extraction results",
    response_model=list[ExtractionResult],
)
async def list_results(store: ResultStoreDep) -> list[ExtractionResult]:
    try:
        return await store.list_all()
    except PersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.user_message) from exc
