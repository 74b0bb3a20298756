from fastapi import APIRouter

from ocr_uploader.core.config import settings
from ocr_uploader.schemas.common import HealthResponse
from ocr_uploader.state import global_state

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        environment=settings.app_env,
        coordinator_ready=global_state.coordinator is not None,
    )
