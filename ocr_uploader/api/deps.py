from typing import Annotated
from fastapi import Depends, HTTPException
from ocr_uploader.services.jobs.coordinator import JobCoordinator
from ocr_uploader.services.storage.base import BaseObjectStorage
from ocr_uploader.services.store.base import BaseResultStore
from ocr_uploader.state import global_state


async def get_coordinator() -> JobCoordinator:
    if not global_state.coordinator:
        raise HTTPException(status_code=503, detail="Job coordinator not initialized")
    return global_state.coordinator


async def get_storage() -> BaseObjectStorage:
    if not global_state.storage:
        raise HTTPException(status_code=503, detail="Storage client not initialized")
    return global_state.storage


async def get_result_store() -> BaseResultStore:
    if not global_state.result_store:
        raise HTTPException(status_code=503, detail="Result store not initialized")
    return global_state.result_store


CoordinatorDep = Annotated[JobCoordinator, Depends(get_coordinator)]
StorageDep = Annotated[BaseObjectStorage, Depends(get_storage)]
ResultStoreDep = Annotated[BaseResultStore, Depends(get_result_store)]
