from typing import Protocol, runtime_checkable


@runtime_checkable
class BaseObjectStorage(Protocol):
    def object_path(self, file_name: str) -> str:
        """Map an upload name to its key inside the bucket."""
        ...

    async def put(self, path: str, data: bytes, *, content_type: str | None = None) -> str:
        """Store ``data`` under ``path`` and return its public URL."""
        ...

    async def download(self, url: str) -> bytes:
        """Fetch a previously stored file by its public URL."""
        ...
