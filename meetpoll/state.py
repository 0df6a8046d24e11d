import asyncio
from typing import Optional

from meetpoll.db import RecordStore

# Global runtime state, filled by the lifespan or on first use
store: Optional[RecordStore] = None
store_lock: asyncio.Lock = asyncio.Lock()
