import os
import sys
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from meetpoll import state
from meetpoll.config import clear_settings_cache
from meetpoll.db.memory import MemoryRecordStore


class FakeClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(seconds=1)
        return current


@pytest.fixture
def memory_store():
    return MemoryRecordStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "memory")
    clear_settings_cache()

    import meetpoll.main as main

    with TestClient(main.app) as c:
        assert isinstance(state.store, MemoryRecordStore)
        yield c
    clear_settings_cache()
