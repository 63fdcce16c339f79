"""API test fixtures — in-process app + httpx client, no socket.

Invariants:
    - Every client talks to a fresh FastAPI app built by create_app and
      populated by initialize_request_router, exactly like a live service
    - FakeService records log() calls instead of gating on verbose

Design Decisions:
    - httpx ASGITransport over a live uvicorn server: fast, deterministic,
      the transport is exercised separately in tests/test_service.py
"""

from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from restapi_service.api.app_factory import create_app
from restapi_service.api.request_router import initialize_request_router
from restapi_service.core.options import ServiceOptions, allow_all


class FakeService:
    """ServiceHandle stand-in that keeps every log line."""

    def __init__(self, authorizer=allow_all, verbose=False, log_errors=False):
        self.app = None
        self.authorizer = authorizer
        self.port = 0
        self.verbose = verbose
        self.log_errors = log_errors
        self.logged: list[tuple[str, dict[str, Any]]] = []

    def log(self, message: str, **extra: Any) -> None:
        self.logged.append((message, extra))

    def statuses(self) -> list[int]:
        return [e["status_code"] for _, e in self.logged if "status_code" in e]


@pytest.fixture
async def make_client():
    """Factory: (routes, **options) -> (AsyncClient, FakeService)."""
    clients: list[AsyncClient] = []

    async def _make(routes, authorizer=allow_all, log_errors=False, cors=None):
        service = FakeService(authorizer, log_errors=log_errors)
        options = ServiceOptions(auth=authorizer, log_errors=log_errors, cors=cors or {})
        service.app = create_app(options, service)
        initialize_request_router(service, routes)
        client = AsyncClient(
            transport=ASGITransport(app=service.app), base_url="http://test",
        )
        clients.append(client)
        return client, service

    yield _make

    for client in clients:
        await client.aclose()
