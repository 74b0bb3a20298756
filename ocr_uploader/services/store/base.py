from typing import Protocol, runtime_checkable

from ocr_uploader.schemas.ocr import ExtractionResult


@runtime_checkable
class BaseResultStore(Protocol):
    async def append(self, file_ref: str, extracted_text: str) -> int:
        """Persist one completed extraction and return its id."""
        ...

    async def list_all(self) -> list[ExtractionResult]:
        """Return a snapshot of every stored extraction."""
        ...
