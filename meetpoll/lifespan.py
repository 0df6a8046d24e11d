"""Lifespan management for the FastAPI application.

Startup tries to open the record store eagerly so the first request does not
pay for it; if that fails the error is logged and left for the first request
that needs the store to raise again.
"""

import logging
from dataclasses import dataclass

from meetpoll import state
from meetpoll.config import get_settings
from meetpoll.db import RecordStore, open_store

logger = logging.getLogger(__name__)


@dataclass
class LifespanResources:
    """Container for resources initialized during lifespan."""

    store: RecordStore | None = None
    store_error: str | None = None


async def init_store() -> tuple[RecordStore | None, str | None]:
    """Open the configured record store.

    Returns:
        The store and None, or None and the reason it could not be opened.
    """
    try:
        return await open_store(get_settings()), None
    except Exception as e:
        logger.warning("Record store not available at startup: %s", e)
        return None, str(e)


async def setup_resources() -> LifespanResources:
    resources = LifespanResources()
    if get_settings().store.eager_init:
        resources.store, resources.store_error = await init_store()
    if resources.store is not None:
        state.store = resources.store
    return resources


async def cleanup_resources(resources: LifespanResources) -> None:
    """Close the store, including one opened lazily after startup."""
    store = state.store or resources.store
    if store is not None:
        try:
            await store.close()
        except Exception as e:
            logger.warning("Failed to close record store: %s", e)
    state.store = None
