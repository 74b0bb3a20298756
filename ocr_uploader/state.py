from ocr_uploader.services.extraction.base import BaseExtractionGateway
from ocr_uploader.services.jobs.coordinator import JobCoordinator
from ocr_uploader.services.storage.base import BaseObjectStorage
from ocr_uploader.services.store.base import BaseResultStore


class AppState:
    gateway: BaseExtractionGateway | None = None
    storage: BaseObjectStorage | None = None
    result_store: BaseResultStore | None = None
    coordinator: JobCoordinator | None = None


global_state = AppState()
