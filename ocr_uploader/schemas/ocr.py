from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JobStatusReport(BaseModel):
    raw_status: str = Field(..., description="Status literal exactly as reported upstream")
    payload: dict[str, Any] = Field(default_factory=dict)


class ExtractionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    file_ref: str
    extracted_text: str
    created_at: datetime | None = None


class UploadResponse(BaseModel):
    job_id: str
    file_url: str
    message: str = "File uploaded."


class UrlSubmission(BaseModel):
    url: str = Field(..., min_length=1, description="Public URL of an already stored file")
    file_name: str | None = None
