"""Tests for standardized error handling."""

from fastapi import FastAPI
from fastapi.testclient import TestClient


class TestAPIErrors:
    def test_not_found_error_defaults(self):
        from meetpoll.errors import NotFoundError

        error = NotFoundError()
        assert error.status_code == 404
        assert error.code == "not_found"
        assert error.detail == "Resource not found"

    def test_error_with_context(self):
        from meetpoll.errors import BadRequestError

        error = BadRequestError(detail="Bad input", field="title")
        assert error.detail == "Bad input"
        assert error.context == {"field": "title"}

    def test_schedule_errors(self):
        from meetpoll.errors import (
            InvalidCandidateError,
            MissingNameError,
            MissingTitleError,
            NoCandidatesError,
            ScheduleNotFoundError,
        )

        assert MissingTitleError().detail == "Title is required"
        assert NoCandidatesError().detail == "Provide at least one candidate date/time"
        assert MissingNameError().detail == "Participant name is required"
        assert InvalidCandidateError("soon").detail == "Invalid candidate date: soon"
        assert ScheduleNotFoundError().detail == "Schedule not found"
        assert {MissingTitleError.status_code, NoCandidatesError.status_code} == {400}
        assert ScheduleNotFoundError.status_code == 404

    def test_store_error_from_messages(self):
        from meetpoll.errors import StoreError

        assert StoreError.from_messages(["a", None, "b"]).detail == "a, b"
        assert StoreError.from_messages([]).detail == "Data store request failed"
        assert StoreError.status_code == 500


class TestErrorResponse:
    def test_minimal_response(self):
        from meetpoll.errors import ScheduleNotFoundError

        data = ScheduleNotFoundError().to_response().model_dump(exclude_none=True)
        assert data == {"error": "Schedule not found"}

    def test_response_with_context(self):
        from meetpoll.errors import StoreNotConfiguredError

        data = StoreNotConfiguredError(missing=["X"]).to_response().model_dump(exclude_none=True)
        assert data == {"error": "Data store is not configured", "context": {"missing": ["X"]}}


class TestExceptionHandlers:
    def test_api_error_handler_integration(self):
        from meetpoll.errors import MissingTitleError, register_exception_handlers

        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/test-bad-request")
        async def test_endpoint():
            raise MissingTitleError()

        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/test-bad-request")

        assert response.status_code == 400
        assert response.json() == {"error": "Title is required"}

    def test_request_validation_renders_as_bad_request(self):
        from pydantic import BaseModel

        from meetpoll.errors import register_exception_handlers

        class Body(BaseModel):
            count: int

        app = FastAPI()
        register_exception_handlers(app)

        @app.post("/items")
        async def create_item(body: Body):
            return body

        client = TestClient(app, raise_server_exceptions=False)

        response = client.post("/items", json={"count": "many"})
        assert response.status_code == 400
        assert response.json() == {
            "error": "count: Input should be a valid integer, unable to parse string as an integer"
        }

        response = client.post(
            "/items", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "JSON decode error"}
