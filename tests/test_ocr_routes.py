from __future__ import annotations

import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from ocr_uploader.core.errors import StorageUploadError, UpstreamUnavailable
from ocr_uploader.main import app
from ocr_uploader.schemas.ocr import JobStatusReport
from ocr_uploader.services.extraction.envelope import decode_envelope, require_str
from ocr_uploader.services.jobs.coordinator import JobCoordinator
from ocr_uploader.services.store.sql_store import SqlResultStore
from ocr_uploader.state import global_state

STORAGE_BASE = "https://storage.test/storage/v1/object/public/uploads"


class FakeStorage:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.objects: dict[str, bytes] = {}

    def object_path(self, file_name: str) -> str:
        return f"docs/{file_name}"

    async def put(self, path: str, data: bytes, *, content_type: str | None = None) -> str:
        if self.fail:
            raise StorageUploadError(detail="bucket not found")
        if path in self.objects:
            raise StorageUploadError(detail="The resource already exists")
        self.objects[path] = data
        return f"{STORAGE_BASE}/{path}"

    async def download(self, url: str) -> bytes:
        path = url.removeprefix(f"{STORAGE_BASE}/")
        if path not in self.objects:
            raise StorageUploadError(detail="404")
        return self.objects[path]


class ScriptedGateway:
    """Speaks the wire shapes of the parsing service through the envelope decoder."""

    def __init__(self, statuses: list[str], markdown: str = "Hello World") -> None:
        self.statuses = statuses
        self.markdown = markdown
        self.submit_error: Exception | None = None
        self.submitted: list[str] = []

    async def submit(self, file_bytes: bytes, file_name: str) -> str:
        if self.submit_error:
            raise self.submit_error
        self.submitted.append(file_name)
        body = json.dumps({"data": json.dumps({"id": f"job-{len(self.submitted)}"})})
        return require_str(decode_envelope(body, envelope_key="data"), "id")

    async def poll_status(self, job_id: str) -> JobStatusReport:
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return JobStatusReport(raw_status=status)

    async def fetch_result(self, job_id: str) -> str:
        body = json.dumps({"markdown": self.markdown})
        return require_str(decode_envelope(body), "markdown")


@pytest_asyncio.fixture
async def store():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    result_store = SqlResultStore(engine=engine)
    await result_store.init_schema()
    yield result_store
    await result_store.dispose()


@pytest.fixture
def wire(monkeypatch, store):
    def _wire(
        gateway: ScriptedGateway,
        storage: FakeStorage | None = None,
        *,
        reject_concurrent_jobs: bool = False,
    ) -> FakeStorage:
        storage = storage or FakeStorage()
        coordinator = JobCoordinator(
            gateway=gateway,
            store=store,
            success_literal="SUCCESS",
            failure_literal="failed",
            reject_concurrent_jobs=reject_concurrent_jobs,
        )
        monkeypatch.setattr(global_state, "gateway", gateway)
        monkeypatch.setattr(global_state, "storage", storage)
        monkeypatch.setattr(global_state, "result_store", store)
        monkeypatch.setattr(global_state, "coordinator", coordinator)
        return storage

    return _wire


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.asyncio
async def test_upload_check_and_list_scenario(wire) -> None:
    gateway = ScriptedGateway(statuses=["PENDING", "SUCCESS"])
    wire(gateway)

    async with _client() as client:
        uploaded = await client.post(
            "/api/ocr/upload",
            files={"file": ("doc.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert uploaded.status_code == 200
        body = uploaded.json()
        assert body["job_id"] == "job-1"
        assert body["file_url"] == f"{STORAGE_BASE}/docs/doc.pdf"
        assert body["message"] == "File uploaded."

        active = await client.get("/api/ocr/job")
        assert active.json()["job_id"] == "job-1"
        assert active.json()["phase"] == "SUBMITTED"

        first = await client.post("/api/ocr/check")
        assert first.json()["status"] == "still_running"
        assert first.json()["message"] == "Still processing..."

        second = await client.post("/api/ocr/check")
        assert second.json()["status"] == "completed"
        assert second.json()["extracted_text"] == "Hello World"

        third = await client.post("/api/ocr/check")
        assert third.json()["status"] == "no_active_job"

        assert (await client.get("/api/ocr/job")).json() is None

        results = await client.get("/api/ocr/results")

    assert results.status_code == 200
    rows = results.json()
    assert len(rows) == 1
    assert rows[0]["file_ref"] == f"{STORAGE_BASE}/docs/doc.pdf"
    assert rows[0]["extracted_text"] == "Hello World"


@pytest.mark.asyncio
async def test_failed_job_is_reported_as_outcome(wire) -> None:
    wire(ScriptedGateway(statuses=["failed"]))

    async with _client() as client:
        await client.post("/api/ocr/upload", files={"file": ("scan.png", b"png", "image/png")})
        checked = await client.post("/api/ocr/check")
        results = await client.get("/api/ocr/results")

    assert checked.status_code == 200
    assert checked.json()["status"] == "failed"
    assert checked.json()["message"] == "Processing failed"
    assert results.json() == []


@pytest.mark.asyncio
async def test_unsupported_content_type_is_rejected(wire) -> None:
    gateway = ScriptedGateway(statuses=["PENDING"])
    wire(gateway)

    async with _client() as client:
        response = await client.post("/api/ocr/upload", files={"file": ("notes.txt", b"hi", "text/plain")})

    assert response.status_code == 415
    assert gateway.submitted == []


@pytest.mark.asyncio
async def test_empty_upload_is_rejected(wire) -> None:
    wire(ScriptedGateway(statuses=["PENDING"]))

    async with _client() as client:
        response = await client.post("/api/ocr/upload", files={"file": ("doc.pdf", b"", "application/pdf")})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_storage_failure_returns_bad_gateway(wire) -> None:
    gateway = ScriptedGateway(statuses=["PENDING"])
    wire(gateway, FakeStorage(fail=True))

    async with _client() as client:
        response = await client.post("/api/ocr/upload", files={"file": ("doc.pdf", b"%PDF", "application/pdf")})

    assert response.status_code == 502
    assert response.json()["detail"] == "Upload failed"
    assert gateway.submitted == []


@pytest.mark.asyncio
async def test_extraction_service_failure_hides_raw_detail(wire) -> None:
    gateway = ScriptedGateway(statuses=["PENDING"])
    gateway.submit_error = UpstreamUnavailable("connect timeout to parser", detail="raw socket error")
    wire(gateway)

    async with _client() as client:
        response = await client.post("/api/ocr/upload", files={"file": ("doc.pdf", b"%PDF", "application/pdf")})
        active = await client.get("/api/ocr/job")

    assert response.status_code == 502
    assert response.json()["detail"] == "OCR processing failed"
    assert active.json() is None


@pytest.mark.asyncio
async def test_submit_by_url_uses_stored_file(wire) -> None:
    gateway = ScriptedGateway(statuses=["PENDING"])
    storage = wire(gateway)
    storage.objects["docs/report.pdf"] = b"%PDF"

    async with _client() as client:
        response = await client.post("/api/ocr/url", json={"url": f"{STORAGE_BASE}/docs/report.pdf"})
        missing = await client.post("/api/ocr/url", json={"url": f"{STORAGE_BASE}/docs/nope.pdf"})

    assert response.status_code == 200
    assert response.json()["file_url"] == f"{STORAGE_BASE}/docs/report.pdf"
    assert gateway.submitted == ["report.pdf"]
    assert missing.status_code == 502


@pytest.mark.asyncio
async def test_routes_unavailable_before_startup(monkeypatch) -> None:
    monkeypatch.setattr(global_state, "coordinator", None)

    async with _client() as client:
        response = await client.post("/api/ocr/check")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_refused_upload_returns_conflict_and_keeps_stored_file(wire) -> None:
    gateway = ScriptedGateway(statuses=["PENDING"])
    storage = wire(gateway, reject_concurrent_jobs=True)

    async with _client() as client:
        first = await client.post("/api/ocr/upload", files={"file": ("doc.pdf", b"ORIGINAL", "application/pdf")})
        second = await client.post("/api/ocr/upload", files={"file": ("doc.pdf", b"REPLACED", "application/pdf")})
        active = await client.get("/api/ocr/job")

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["detail"] == "A document is already being processed"
    assert storage.objects == {"docs/doc.pdf": b"ORIGINAL"}
    assert gateway.submitted == ["doc.pdf"]
    assert active.json()["job_id"] == "job-1"


@pytest.mark.asyncio
async def test_duplicate_name_fails_upload_without_disturbing_active_job(wire) -> None:
    gateway = ScriptedGateway(statuses=["PENDING"])
    storage = wire(gateway)

    async with _client() as client:
        await client.post("/api/ocr/upload", files={"file": ("doc.pdf", b"ORIGINAL", "application/pdf")})
        second = await client.post("/api/ocr/upload", files={"file": ("doc.pdf", b"REPLACED", "application/pdf")})
        active = await client.get("/api/ocr/job")

    assert second.status_code == 502
    assert second.json()["detail"] == "Upload failed"
    assert storage.objects == {"docs/doc.pdf": b"ORIGINAL"}
    assert active.json()["job_id"] == "job-1"
