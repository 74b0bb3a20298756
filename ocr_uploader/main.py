import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from ocr_uploader.api.routes.health import router as health_router
from ocr_uploader.api.routes.ocr import router as ocr_router
from ocr_uploader.services.extraction.llamaparse import LlamaParseGateway
from ocr_uploader.services.jobs.coordinator import JobCoordinator
from ocr_uploader.services.storage.supabase import SupabaseStorageClient
from ocr_uploader.services.store.sql_store import SqlResultStore
from ocr_uploader.state import global_state

from ocr_uploader.core.logging import setup_logging

# Configure logging before the app exists so import-time messages are captured.
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting OCR Uploader...")

    logger.info("Connecting result store...")
    result_store = SqlResultStore()
    await result_store.init_schema()
    global_state.result_store = result_store

    gateway = LlamaParseGateway()
    storage = SupabaseStorageClient()
    global_state.gateway = gateway
    global_state.storage = storage
    global_state.coordinator = JobCoordinator(gateway=gateway, store=result_store)

    logger.info("System ready!")
    yield
    logger.info("Shutting down service...")

    global_state.coordinator = None
    global_state.gateway = None
    global_state.storage = None
    global_state.result_store = None
    await gateway.aclose()
    await storage.aclose()
    await result_store.dispose()


app = FastAPI(title="OCR Uploader", lifespan=lifespan)

app.include_router(health_router, prefix="/api")
app.include_router(ocr_router, prefix="/api")
