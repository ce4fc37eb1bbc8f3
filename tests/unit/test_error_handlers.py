"""Tests for API error handling and exception classes."""

import asyncio
import json

import pytest
from unittest.mock import MagicMock

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.exceptions import (
    ClinicdeskException,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    DownstreamError,
)
from api.error_handlers import (
    create_error_response,
    clinicdesk_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    register_error_handlers,
)


class SyncTestClient:
    """Synchronous wrapper around httpx AsyncClient for testing."""

    def __init__(self, app):
        self.app = app
        self.transport = ASGITransport(app=app)
        self.base_url = "http://testserver"

    def _run_async(self, coro):
        """Run async coroutine synchronously."""
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(coro)
        finally:
            loop.close()

    async def _request(self, method: str, url: str, **kwargs):
        """Make async request."""
        async with AsyncClient(transport=self.transport, base_url=self.base_url) as client:
            response = await client.request(method, url, **kwargs)
            return response

    def get(self, url: str, **kwargs):
        return self._run_async(self._request("GET", url, **kwargs))

    def post(self, url: str, **kwargs):
        return self._run_async(self._request("POST", url, **kwargs))


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestExceptionClasses:
    """Tests for custom exception classes."""

    def test_base_exception_defaults(self):
        """ClinicdeskException has correct default values."""
        exc = ClinicdeskException()
        assert exc.message == "An unexpected error occurred"
        assert exc.error_code == "INTERNAL_ERROR"
        assert exc.details == {}
        assert exc.status_code == 500

    def test_to_dict(self):
        """to_dict returns the error object."""
        exc = ClinicdeskException(
            message="Test error",
            error_code="TEST_CODE",
            details={"field": "value"},
        )
        assert exc.to_dict() == {
            "code": "TEST_CODE",
            "message": "Test error",
            "details": {"field": "value"},
        }

    def test_to_dict_no_details(self):
        """to_dict omits details when empty."""
        assert "details" not in ClinicdeskException(message="Test error").to_dict()

    @pytest.mark.parametrize(
        "exc_class,status_code,error_code",
        [
            (ValidationError, 400, "VALIDATION_ERROR"),
            (AuthenticationError, 401, "AUTHENTICATION_FAILED"),
            (AuthorizationError, 403, "FORBIDDEN"),
            (NotFoundError, 404, "NOT_FOUND"),
            (DownstreamError, 500, "DOWNSTREAM_FAILURE"),
        ],
    )
    def test_subclass_defaults(self, exc_class, status_code, error_code):
        exc = exc_class()
        assert exc.status_code == status_code
        assert exc.error_code == error_code
        assert isinstance(exc, ClinicdeskException)

    def test_custom_code(self):
        """Services pass domain-specific codes."""
        exc = ValidationError("Invalid plan type", error_code="INVALID_PLAN")
        assert exc.error_code == "INVALID_PLAN"
        assert str(exc) == "Invalid plan type"


class TestErrorHandlerFunctions:
    """Tests for error handler functions."""

    def test_create_error_response_basic(self):
        """create_error_response returns the failure envelope."""
        assert create_error_response(code="TEST_CODE", message="Test message") == {
            "success": False,
            "error": {"code": "TEST_CODE", "message": "Test message"},
        }

    def test_create_error_response_with_details(self):
        result = create_error_response(
            code="TEST_CODE", message="Test message", details={"key": "value"}
        )
        assert result["error"]["details"] == {"key": "value"}

    def test_clinicdesk_exception_handler(self):
        request = MagicMock()
        request.url.path = "/api/v1/workspaces"
        exc = NotFoundError(message="Profile not found", error_code="PROFILE_NOT_FOUND")

        response = _run(clinicdesk_exception_handler(request, exc))

        assert response.status_code == 404
        assert json.loads(response.body) == {
            "success": False,
            "error": {"code": "PROFILE_NOT_FOUND", "message": "Profile not found"},
        }

    def test_http_exception_handler(self):
        """HTTPExceptions from dependencies use the same envelope."""
        request = MagicMock()
        request.url.path = "/api/test"
        exc = StarletteHTTPException(status_code=403, detail="Not a member")

        response = _run(http_exception_handler(request, exc))

        assert response.status_code == 403
        body = json.loads(response.body)
        assert body["success"] is False
        assert body["error"] == {"code": "FORBIDDEN", "message": "Not a member"}

    def test_http_exception_handler_unknown_status(self):
        request = MagicMock()
        request.url.path = "/api/test"
        exc = StarletteHTTPException(status_code=418, detail="I'm a teapot")

        response = _run(http_exception_handler(request, exc))

        assert response.status_code == 418
        assert json.loads(response.body)["error"]["code"] == "ERROR"

    def test_unhandled_exception_handler(self):
        """Internal details are not exposed."""
        request = MagicMock()
        request.url.path = "/api/test"

        response = _run(unhandled_exception_handler(request, RuntimeError("db password")))

        assert response.status_code == 500
        assert json.loads(response.body) == {
            "success": False,
            "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"},
        }


class TestErrorHandlerIntegration:
    """Integration tests using FastAPI app with error handlers."""

    @pytest.fixture
    def app(self):
        app = FastAPI()
        register_error_handlers(app)

        class Body(BaseModel):
            name: str

        @app.get("/not-found")
        async def raise_not_found():
            raise NotFoundError(message="Workspace not found")

        @app.get("/downstream")
        async def raise_downstream():
            raise DownstreamError("Failed to create subscription", error_code="SUBSCRIPTION_CREATE_FAILED")

        @app.get("/http-exception")
        async def raise_http():
            from fastapi import HTTPException
            raise HTTPException(status_code=401, detail="Missing authentication credentials")

        @app.post("/validated")
        async def validated(body: Body):
            return {"name": body.name}

        return app

    @pytest.fixture
    def client(self, app):
        return SyncTestClient(app)

    def test_not_found_error_response(self, client):
        response = client.get("/not-found")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": {"code": "NOT_FOUND", "message": "Workspace not found"},
        }

    def test_downstream_error_response(self, client):
        response = client.get("/downstream")
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "SUBSCRIPTION_CREATE_FAILED"

    def test_http_exception_response(self, client):
        response = client.get("/http-exception")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"

    def test_request_validation_is_400(self, client):
        """Body validation failures are client errors with field details."""
        response = client.post("/validated", json={})
        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "VALIDATION_ERROR"
        assert data["error"]["details"]["errors"][0]["field"] == "body.name"
