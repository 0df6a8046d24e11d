"""Record store interface.

The schedule service talks to storage only through ``RecordStore``: list with
equality filters and a limit, get by id, create, and update. Records are plain
dicts keyed by the snake_case field names below; timestamps travel as ISO-8601
strings and ``answers`` as a JSON object.
"""

import abc
import secrets
import string
from typing import Any, TypedDict

SCHEDULE = "Schedule"
PARTICIPANT_RESPONSE = "ParticipantResponse"


class ScheduleRecord(TypedDict, total=False):
    id: str
    title: str
    description: str | None
    candidates: list[str]
    created_at: str
    updated_at: str | None


class ParticipantResponseRecord(TypedDict, total=False):
    id: str
    schedule_id: str
    name: str
    normalized_name: str
    comment: str | None
    answers: dict[str, str]
    created_at: str | None
    updated_at: str | None


MODEL_FIELDS: dict[str, tuple[str, ...]] = {
    SCHEDULE: ("id", "title", "description", "candidates", "created_at", "updated_at"),
    PARTICIPANT_RESPONSE: (
        "id",
        "schedule_id",
        "name",
        "normalized_name",
        "comment",
        "answers",
        "created_at",
        "updated_at",
    ),
}


def generate_record_id(length: int = 10) -> str:
    chars = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(chars) for _ in range(length))


def check_fields(model: str, fields: dict[str, Any] | None) -> dict[str, Any]:
    """Reject unknown models and field names before they reach a backend."""
    if model not in MODEL_FIELDS:
        raise ValueError(f"unknown model: {model}")
    fields = dict(fields or {})
    unknown = set(fields) - set(MODEL_FIELDS[model])
    if unknown:
        raise ValueError(f"unknown {model} fields: {', '.join(sorted(unknown))}")
    return fields


class RecordStore(abc.ABC):
    """Base class for record store backends.

    Backends raise ``StoreError`` for failures reported by the underlying
    store. Subclasses must implement the four record operations; ``open``,
    ``close`` and ``ping`` default to no-ops.
    """

    name: str = "store"

    async def open(self) -> None:
        return

    async def close(self) -> None:
        return

    async def ping(self) -> bool:
        return True

    @abc.abstractmethod
    async def list(
        self,
        model: str,
        *,
        filters: dict[str, Any] | None = None,
        limit: int,
    ) -> list[dict[str, Any]]:
        """Return at most ``limit`` records whose fields equal every filter value."""

    @abc.abstractmethod
    async def get(self, model: str, record_id: str) -> dict[str, Any] | None:
        """Return the record with ``record_id`` or None."""

    @abc.abstractmethod
    async def create(self, model: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Insert a record, assigning its id, and return it."""

    @abc.abstractmethod
    async def update(self, model: str, record_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Replace the given fields of an existing record and return it."""
