"""In-process record store for local development and tests."""

import copy
import logging
from typing import Any

from meetpoll.db.base import MODEL_FIELDS, RecordStore, check_fields, generate_record_id
from meetpoll.errors import StoreError

logger = logging.getLogger(__name__)


class MemoryRecordStore(RecordStore):
    name = "memory"

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, dict[str, Any]]] = {model: {} for model in MODEL_FIELDS}

    async def list(self, model, *, filters=None, limit):
        filters = check_fields(model, filters)
        result = []
        for record in self._tables[model].values():
            if len(result) >= limit:
                break
            if all(record.get(key) == value for key, value in filters.items()):
                result.append(copy.deepcopy(record))
        return result

    async def get(self, model, record_id):
        check_fields(model, None)
        record = self._tables[model].get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def create(self, model, fields):
        fields = check_fields(model, fields)
        table = self._tables[model]
        record_id = generate_record_id()
        while record_id in table:
            record_id = generate_record_id()
        record = {key: None for key in MODEL_FIELDS[model]}
        record.update(copy.deepcopy(fields))
        record["id"] = record_id
        table[record_id] = record
        logger.debug("Created %s id=%s", model, record_id)
        return copy.deepcopy(record)

    async def update(self, model, record_id, fields):
        fields = check_fields(model, fields)
        fields.pop("id", None)
        record = self._tables[model].get(record_id)
        if record is None:
            raise StoreError(f"{model} {record_id} does not exist")
        record.update(copy.deepcopy(fields))
        return copy.deepcopy(record)

    def count(self, model: str) -> int:
        return len(self._tables[model])
