import json
import os
from unittest.mock import patch

import httpx
import pytest

from meetpoll.config import DataApiSettings
from meetpoll.db import PARTICIPANT_RESPONSE, SCHEDULE
from meetpoll.db.data_api import DataApiRecordStore
from meetpoll.errors import StoreError, StoreNotConfiguredError

ENV = {
    "AMPLIFY_DATA_GRAPHQL_ENDPOINT": "https://example.invalid/graphql",
    "AMPLIFY_DATA_REGION": "us-east-1",
    "AMPLIFY_DATA_API_KEY": "da2-secret",
}


def _settings(**overrides) -> DataApiSettings:
    with patch.dict(os.environ, {**ENV, **overrides}, clear=True):
        return DataApiSettings()


def _store(handler, **overrides) -> tuple[DataApiRecordStore, list[dict]]:
    calls: list[dict] = []

    def record(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        calls.append({"headers": request.headers, **body})
        return handler(body)

    store = DataApiRecordStore(_settings(**overrides), transport=httpx.MockTransport(record))
    return store, calls


def _ok(data: dict) -> httpx.Response:
    return httpx.Response(200, json={"data": data})


class TestConfiguration:
    def test_missing_env_fails_fast(self):
        with patch.dict(os.environ, {"AMPLIFY_DATA_REGION": "us-east-1"}, clear=True):
            settings = DataApiSettings()
        with pytest.raises(StoreNotConfiguredError) as exc_info:
            DataApiRecordStore(settings)
        assert "AMPLIFY_DATA_GRAPHQL_ENDPOINT" in exc_info.value.detail
        assert "AMPLIFY_DATA_API_KEY" in exc_info.value.detail
        assert "AMPLIFY_DATA_REGION" not in exc_info.value.detail
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_api_key_header(self):
        store, calls = _store(lambda body: _ok({"getSchedule": None}))
        await store.get(SCHEDULE, "s1")
        await store.close()
        assert calls[0]["headers"]["x-api-key"] == "da2-secret"

    @pytest.mark.asyncio
    async def test_other_auth_mode_uses_authorization_header(self):
        store, calls = _store(lambda body: _ok({"getSchedule": None}), AMPLIFY_DATA_AUTH_MODE="lambda")
        await store.get(SCHEDULE, "s1")
        await store.close()
        assert calls[0]["headers"]["authorization"] == "da2-secret"
        assert "x-api-key" not in calls[0]["headers"]


class TestOperations:
    @pytest.mark.asyncio
    async def test_get_maps_fields(self):
        item = {
            "id": "r1",
            "scheduleId": "s1",
            "name": "Alice",
            "normalizedName": "alice",
            "comment": None,
            "answers": json.dumps({"2025-01-01T10:00:00.000Z": "maybe"}),
            "createdAt": "2025-01-01T00:00:00.000Z",
            "updatedAt": "2025-01-02T00:00:00.000Z",
        }
        store, calls = _store(lambda body: _ok({"getParticipantResponse": item}))

        record = await store.get(PARTICIPANT_RESPONSE, "r1")

        assert record["schedule_id"] == "s1"
        assert record["normalized_name"] == "alice"
        assert record["answers"] == {"2025-01-01T10:00:00.000Z": "maybe"}
        assert calls[0]["variables"] == {"id": "r1"}
        assert "getParticipantResponse(id: $id)" in calls[0]["query"]

    @pytest.mark.asyncio
    async def test_get_missing(self):
        store, _ = _store(lambda body: _ok({"getSchedule": None}))
        assert await store.get(SCHEDULE, "nope") is None

    @pytest.mark.asyncio
    async def test_list_sends_equality_filter_and_follows_pages(self):
        pages = [
            {"items": [], "nextToken": "t1"},
            {"items": [{"id": "r1", "scheduleId": "s1"}], "nextToken": "t2"},
        ]
        store, calls = _store(lambda body: _ok({"listParticipantResponses": pages.pop(0)}))

        records = await store.list(
            PARTICIPANT_RESPONSE,
            filters={"schedule_id": "s1", "normalized_name": "alice"},
            limit=1,
        )

        assert records == [{"id": "r1", "schedule_id": "s1"}]
        assert len(calls) == 2
        assert calls[0]["variables"]["filter"] == {
            "scheduleId": {"eq": "s1"},
            "normalizedName": {"eq": "alice"},
        }
        assert calls[1]["variables"]["nextToken"] == "t1"
        assert calls[0]["variables"]["limit"] == 100

    @pytest.mark.asyncio
    async def test_list_scans_full_pages_and_trims_to_limit(self):
        items = [{"id": f"s{i}", "title": "Sync"} for i in range(3)]
        store, calls = _store(
            lambda body: _ok({"listSchedules": {"items": items, "nextToken": "more"}})
        )

        records = await store.list(SCHEDULE, limit=2)

        assert [r["id"] for r in records] == ["s0", "s1"]
        assert len(calls) == 1
        assert calls[0]["variables"]["limit"] == 100

    @pytest.mark.asyncio
    async def test_list_page_grows_with_large_limit(self):
        store, calls = _store(lambda body: _ok({"listSchedules": {"items": [], "nextToken": None}}))

        assert await store.list(SCHEDULE, limit=500) == []
        assert calls[0]["variables"]["limit"] == 500

    @pytest.mark.asyncio
    async def test_create_serializes_json_fields(self):
        def handler(body):
            return _ok({"createParticipantResponse": {"id": "new", **body["variables"]["input"]}})

        store, calls = _store(handler)

        record = await store.create(
            PARTICIPANT_RESPONSE,
            {"schedule_id": "s1", "name": "Alice", "answers": {"x": "available"}},
        )

        sent = calls[0]["variables"]["input"]
        assert sent["scheduleId"] == "s1"
        assert sent["answers"] == json.dumps({"x": "available"})
        assert "CreateParticipantResponseInput!" in calls[0]["query"]
        assert record["id"] == "new"
        assert record["answers"] == {"x": "available"}

    @pytest.mark.asyncio
    async def test_update_sends_id(self):
        store, calls = _store(lambda body: _ok({"updateSchedule": {"id": "s1", "title": "New"}}))

        record = await store.update(SCHEDULE, "s1", {"title": "New"})

        assert calls[0]["variables"]["input"] == {"title": "New", "id": "s1"}
        assert record["title"] == "New"


class TestErrors:
    @pytest.mark.asyncio
    async def test_graphql_errors_are_joined(self):
        store, _ = _store(
            lambda body: httpx.Response(
                200,
                json={"data": None, "errors": [{"message": "Unauthorized"}, {"message": "Throttled"}]},
            )
        )
        with pytest.raises(StoreError) as exc_info:
            await store.get(SCHEDULE, "s1")
        assert exc_info.value.detail == "Unauthorized, Throttled"

    @pytest.mark.asyncio
    async def test_errors_without_messages(self):
        store, _ = _store(lambda body: httpx.Response(200, json={"errors": [{}]}))
        with pytest.raises(StoreError) as exc_info:
            await store.get(SCHEDULE, "s1")
        assert exc_info.value.detail == "Data store request failed"

    @pytest.mark.asyncio
    async def test_empty_result(self):
        store, _ = _store(lambda body: httpx.Response(200, content=b""))
        with pytest.raises(StoreError) as exc_info:
            await store.get(SCHEDULE, "s1")
        assert exc_info.value.detail == "Data store returned no result"

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        store, _ = _store(lambda body: httpx.Response(502, content=b"bad gateway"))
        with pytest.raises(StoreError) as exc_info:
            await store.get(SCHEDULE, "s1")
        assert "502" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_ping(self):
        store, _ = _store(lambda body: _ok({"__typename": "Query"}))
        assert await store.ping() is True

        failing, _ = _store(lambda body: httpx.Response(500))
        assert await failing.ping() is False
