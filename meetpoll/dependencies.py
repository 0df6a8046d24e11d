"""Dependency injection for FastAPI endpoints.

The record store is built once, on first use, behind a lock and kept in
``meetpoll.state``. Configuration problems surface from ``get_store`` as
``StoreNotConfiguredError`` (503) on every request until fixed.

Usage in controllers:
    from meetpoll.dependencies import Service

    @router.get("/schedules")
    async def list_schedules(service: Service):
        return await service.list_schedules()
"""

import logging
from typing import Annotated

from fastapi import Depends

from meetpoll import state
from meetpoll.config import get_settings
from meetpoll.db import RecordStore, open_store
from meetpoll.service import ScheduleService

logger = logging.getLogger(__name__)


async def get_store() -> RecordStore:
    """Get the record store, opening it on first use.

    Raises:
        StoreNotConfiguredError: If the selected backend is missing settings.

    Returns:
        The shared RecordStore instance.
    """
    if state.store is not None:
        return state.store
    async with state.store_lock:
        if state.store is None:
            logger.info("Opening record store on first use")
            state.store = await open_store(get_settings())
    return state.store


def get_optional_store() -> RecordStore | None:
    """Get the record store if it has been opened, or None."""
    return state.store


Store = Annotated[RecordStore, Depends(get_store)]
OptionalStore = Annotated[RecordStore | None, Depends(get_optional_store)]


def get_schedule_service(store: Store) -> ScheduleService:
    settings = get_settings().store
    return ScheduleService(
        store,
        schedule_list_limit=settings.schedule_list_limit,
        response_list_limit=settings.response_list_limit,
    )


Service = Annotated[ScheduleService, Depends(get_schedule_service)]
