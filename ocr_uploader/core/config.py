from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_env: str = "dev"
    log_level: str = "info"
    log_dir: str = "logs"

    llamaparse_base_url: str = "https://api.cloud.llamaindex.ai/api"
    llamaparse_api_key: str = ""

    supabase_url: str = "http://localhost:54321"
    supabase_key: str = ""
    storage_bucket: str = "uploads"
    storage_prefix: str = "docs"

    database_url: str = "sqlite+aiosqlite:///./ocr_results.db"
    request_timeout_seconds: float = 60.0

    # Upstream vocabulary, compared case-sensitively.
    status_success_literal: str = "SUCCESS"
    status_failure_literal: str = "failed"
    reject_concurrent_jobs: bool = False

    @field_validator("llamaparse_base_url", "supabase_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        """Normalize base URLs so paths can be appended with a single slash."""

        return value.strip().rstrip("/")

    @field_validator("storage_prefix")
    @classmethod
    def _strip_prefix_slashes(cls, value: str) -> str:
        return value.strip().strip("/")

    @field_validator("status_success_literal", "status_failure_literal")
    @classmethod
    def _ensure_literal_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Status literals must not be blank")
        return value


settings = Settings()
