"""Shared fixtures for integration tests.

Routes run against the real FastAPI app with the session dependency bound
to the per-test SQLite engine and the Stripe gateway replaced by FakeGateway.
"""

import asyncio
from typing import Any, Callable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlmodel import Session

from api.auth.jwt import create_access_token
from api.main import app
from api.routes.v1.dependencies import get_gateway
from clinicdesk.db.engine import get_session_dependency
from clinicdesk.db.models import Profile


class SyncClient:
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

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        """Make async request."""
        async with AsyncClient(transport=self.transport, base_url=self.base_url) as client:
            response = await client.request(method, url, **kwargs)
            return response

    def get(self, url: str, **kwargs):
        return self._run_async(self._request("GET", url, **kwargs))

    def post(self, url: str, **kwargs):
        return self._run_async(self._request("POST", url, **kwargs))

    def put(self, url: str, **kwargs):
        return self._run_async(self._request("PUT", url, **kwargs))

    def delete(self, url: str, **kwargs):
        return self._run_async(self._request("DELETE", url, **kwargs))

    def patch(self, url: str, **kwargs):
        return self._run_async(self._request("PATCH", url, **kwargs))


@pytest.fixture
def client(test_engine, gateway):
    """Client for the app, wired to the test database and fake gateway."""

    def _session_override():
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[get_session_dependency] = _session_override
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield SyncClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[[Profile], dict[str, str]]:
    """Bearer headers for a profile."""

    def _headers(profile: Profile) -> dict[str, str]:
        token = create_access_token(profile.id, email=profile.email)
        return {"Authorization": f"Bearer {token}"}

    return _headers
