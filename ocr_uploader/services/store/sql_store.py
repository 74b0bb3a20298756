from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ocr_uploader.core.config import settings
from ocr_uploader.core.errors import PersistenceError
from ocr_uploader.schemas.ocr import ExtractionResult
from ocr_uploader.services.store.base import BaseResultStore
from ocr_uploader.services.store.models import Base, OcrResultModel

logger = logging.getLogger(__name__)


class SqlResultStore(BaseResultStore):
    """Result store backed by the ``ocr_results`` table through SQLAlchemy's async engine."""

    def __init__(self, *, database_url: str | None = None, engine: AsyncEngine | None = None) -> None:
        self._engine = engine or create_async_engine(database_url or settings.database_url)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def init_schema(self) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not create result tables: {exc}", detail=str(exc)) from exc

    async def append(self, file_ref: str, extracted_text: str) -> int:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    record = OcrResultModel(file_url=file_ref, extracted_text=extracted_text)
                    session.add(record)
                    await session.flush()
                    record_id = record.id
        except SQLAlchemyError as exc:
            logger.error("Failed to store result for %s: %s", file_ref, exc)
            raise PersistenceError(f"Could not store result: {exc}", detail=str(exc)) from exc

        logger.info("Stored extraction result id=%s for %s", record_id, file_ref)
        return record_id

    async def list_all(self) -> list[ExtractionResult]:
        try:
            async with self._session_factory() as session:
                rows = (await session.scalars(select(OcrResultModel).order_by(OcrResultModel.id))).all()
        except SQLAlchemyError as exc:
            logger.error("Failed to list results: %s", exc)
            raise PersistenceError(f"Could not list results: {exc}", detail=str(exc)) from exc

        return [
            ExtractionResult(
                id=row.id,
                file_ref=row.file_url,
                extracted_text=row.extracted_text,
                created_at=row.created_at,
            )
            for row in rows
        ]

    async def dispose(self) -> None:
        await self._engine.dispose()
