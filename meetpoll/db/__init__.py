"""Record store backends.

``open_store`` builds the backend selected by ``STORE_BACKEND`` and opens it.
Configuration problems surface here as ``StoreNotConfiguredError``.
"""

import logging

from meetpoll.config import Settings
from meetpoll.db.base import (
    PARTICIPANT_RESPONSE,
    SCHEDULE,
    ParticipantResponseRecord,
    RecordStore,
    ScheduleRecord,
)

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> RecordStore:
    backend = settings.store.backend
    if backend == "memory":
        from meetpoll.db.memory import MemoryRecordStore

        return MemoryRecordStore()
    if backend == "data_api":
        from meetpoll.db.data_api import DataApiRecordStore

        return DataApiRecordStore(settings.data_api)
    from meetpoll.db.postgres import PostgresRecordStore

    return PostgresRecordStore(settings.postgres)


async def open_store(settings: Settings) -> RecordStore:
    store = create_store(settings)
    await store.open()
    logger.info("Record store ready (backend=%s)", store.name)
    return store


__all__ = [
    "PARTICIPANT_RESPONSE",
    "SCHEDULE",
    "ParticipantResponseRecord",
    "RecordStore",
    "ScheduleRecord",
    "create_store",
    "open_store",
]
