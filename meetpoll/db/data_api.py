"""Record store backed by a hosted GraphQL data API.

The API exposes one model per record kind with the usual generated
operations: ``get<Model>``, ``list<Model>s`` (with ``filter``, ``limit`` and
``nextToken``), ``create<Model>`` and ``update<Model>``. Field names on the
wire are camelCase and JSON fields (``answers``) travel as JSON strings.

Requests authenticate with the shared API key, sent as ``x-api-key`` in
``apiKey`` mode and as the ``Authorization`` header in every other mode.
"""

import json
import logging
from typing import Any

import httpx
from pydantic.alias_generators import to_camel, to_snake

from meetpoll.config import DataApiSettings
from meetpoll.db.base import MODEL_FIELDS, RecordStore, check_fields
from meetpoll.errors import StoreError

logger = logging.getLogger(__name__)

JSON_FIELDS = {"answers"}

# Items scanned per list request; matches are trimmed to the caller's limit.
PAGE_SIZE = 100


def _selection(model: str) -> str:
    return " ".join(to_camel(field) for field in MODEL_FIELDS[model])


def _to_wire(fields: dict[str, Any]) -> dict[str, Any]:
    wire = {}
    for key, value in fields.items():
        if key in JSON_FIELDS and value is not None:
            value = json.dumps(value)
        wire[to_camel(key)] = value
    return wire


def _from_wire(item: dict[str, Any]) -> dict[str, Any]:
    record = {}
    for key, value in item.items():
        key = to_snake(key)
        if key in JSON_FIELDS and isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                value = {}
        record[key] = value
    return record


def _plural(model: str) -> str:
    return f"{model}s"


class DataApiRecordStore(RecordStore):
    name = "data_api"

    def __init__(
        self,
        settings: DataApiSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings.require()
        self._settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _headers(self) -> dict[str, str]:
        if self._settings.auth_mode == "apiKey":
            return {"x-api-key": self._settings.api_key}
        return {"Authorization": self._settings.api_key}

    async def open(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            headers=self._headers(),
            timeout=self._settings.timeout_sec,
            transport=self._transport,
        )
        logger.info(
            "Data API client ready (endpoint=%s, region=%s, auth_mode=%s)",
            self._settings.graphql_endpoint,
            self._settings.region,
            self._settings.auth_mode,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        try:
            await self._execute("query Ping { __typename }", {})
            return True
        except StoreError as e:
            logger.warning("Data API health check failed: %s", e)
            return False

    async def _execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        if self._client is None:
            await self.open()
        try:
            response = await self._client.post(
                self._settings.graphql_endpoint,
                json={"query": query, "variables": variables},
            )
        except httpx.HTTPError as e:
            raise StoreError(f"Data API request failed: {e}") from e
        try:
            result = response.json()
        except ValueError:
            result = None

        if not result:
            if response.is_error:
                raise StoreError(f"Data API request failed with status {response.status_code}")
            raise StoreError("Data store returned no result")
        errors = result.get("errors") or []
        if errors:
            raise StoreError.from_messages([error.get("message") for error in errors])
        return result.get("data") or {}

    async def list(self, model, *, filters=None, limit):
        filters = check_fields(model, filters)
        operation = f"list{_plural(model)}"
        query = (
            f"query List($filter: Model{model}FilterInput, $limit: Int, $nextToken: String) "
            f"{{ {operation}(filter: $filter, limit: $limit, nextToken: $nextToken) "
            f"{{ items {{ {_selection(model)} }} nextToken }} }}"
        )
        variables: dict[str, Any] = {"limit": max(limit, PAGE_SIZE)}
        if filters:
            variables["filter"] = {to_camel(k): {"eq": v} for k, v in filters.items()}

        # The API applies the limit before the filter, so keep paging until
        # enough matches arrive or the table is exhausted.
        items: list[dict[str, Any]] = []
        while True:
            page = (await self._execute(query, variables)).get(operation) or {}
            items.extend(_from_wire(item) for item in page.get("items") or [] if item)
            token = page.get("nextToken")
            if len(items) >= limit or not token:
                break
            variables["nextToken"] = token
        return items[:limit]

    async def get(self, model, record_id):
        check_fields(model, None)
        operation = f"get{model}"
        query = (
            f"query Get($id: ID!) {{ {operation}(id: $id) {{ {_selection(model)} }} }}"
        )
        item = (await self._execute(query, {"id": record_id})).get(operation)
        return _from_wire(item) if item else None

    async def _mutate(self, action: str, model: str, fields: dict[str, Any]) -> dict[str, Any]:
        operation = f"{action}{model}"
        input_type = f"{action.capitalize()}{model}Input"
        query = (
            f"mutation Mutate($input: {input_type}!) "
            f"{{ {operation}(input: $input) {{ {_selection(model)} }} }}"
        )
        item = (await self._execute(query, {"input": _to_wire(fields)})).get(operation)
        if not item:
            raise StoreError(f"Failed to {action} {model}")
        return _from_wire(item)

    async def create(self, model, fields):
        fields = check_fields(model, fields)
        fields.pop("id", None)
        return await self._mutate("create", model, fields)

    async def update(self, model, record_id, fields):
        fields = check_fields(model, fields)
        fields["id"] = record_id
        return await self._mutate("update", model, fields)

