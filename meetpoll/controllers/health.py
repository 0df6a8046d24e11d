from fastapi import APIRouter
from typing import Dict

from meetpoll.config import get_settings
from meetpoll.dependencies import OptionalStore

router = APIRouter()


@router.get("/health")
async def health(store: OptionalStore) -> Dict[str, str]:
    store_status = "not_initialized"
    if store is not None:
        store_status = "healthy" if await store.ping() else "unhealthy"

    return {"status": "ok", "store": get_settings().store.backend, "store_status": store_status}
