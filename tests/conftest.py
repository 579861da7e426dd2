"""Shared fixtures: an in-memory DasBudget server behind ``httpx.MockTransport``."""
from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio
from tenacity import wait_none

from dasbudget.config import ClientConfig
from dasbudget.core import DasBudget, RecordingObserver

IDENTITY_HOST = "securetoken.googleapis.com"

Route = Union[Dict[str, Any], List[Any], Callable[[httpx.Request], httpx.Response]]


def make_tx(tx_id: str, created_at: float, **extra: Any) -> Dict[str, Any]:
    """Transaction payload as the server returns it."""
    payload = {
        "id": tx_id,
        "created_at": datetime.fromtimestamp(created_at, tz=timezone.utc).isoformat(),
        "name": f"Purchase {tx_id}",
        "amount": "-12.50",
    }
    payload.update(extra)
    return payload


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDasServer:
    """Records every request and answers from canned pages and routes."""

    def __init__(self) -> None:
        self.token_requests: List[httpx.Request] = []
        self.api_requests: List[httpx.Request] = []
        self.token_status = 200
        self.token_error: Optional[Exception] = None
        self.token_payload: Optional[Dict[str, Any]] = None
        self.expires_in = 3600
        self.issued = 0
        self.pages: Dict[int, List[Dict[str, Any]]] = {}
        self.total = 0
        self.page_failures: Dict[int, int] = {}
        self.routes: Dict[Tuple[str, str], Route] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == IDENTITY_HOST:
            return self._token(request)

        self.api_requests.append(request)
        if request.url.path == "/api/transaction" and request.method == "GET":
            page = int(request.url.params["page"])
            if page in self.page_failures:
                return httpx.Response(self.page_failures[page], json={"error": "boom"})
            return httpx.Response(
                200,
                json={
                    "transactions": self.pages.get(page, []),
                    "total": self.total,
                    "page": page,
                    "limit": int(request.url.params["limit"]),
                },
            )

        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)

    def _token(self, request: httpx.Request) -> httpx.Response:
        self.token_requests.append(request)
        if self.token_error is not None:
            raise self.token_error
        if self.token_status != 200:
            return httpx.Response(self.token_status, json={"error": {"message": "INVALID_REFRESH_TOKEN"}})
        if self.token_payload is not None:
            return httpx.Response(200, json=self.token_payload)
        self.issued += 1
        return httpx.Response(
            200,
            json={
                "access_token": f"token-{self.issued}",
                "expires_in": str(self.expires_in),
                "user_id": "user-1",
            },
        )

    def api_paths(self) -> List[str]:
        return [request.url.path for request in self.api_requests]

    def requested_pages(self) -> List[int]:
        return [
            int(request.url.params["page"])
            for request in self.api_requests
            if request.url.path == "/api/transaction"
        ]


@pytest.fixture
def server() -> FakeDasServer:
    return FakeDasServer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(refresh_token="refresh-secret", api_key="api-key")


@pytest_asyncio.fixture
async def http(server: FakeDasServer):
    async with httpx.AsyncClient(transport=httpx.MockTransport(server.handler)) as client:
        yield client


@pytest.fixture
def make_client(http, config, clock, observer) -> Callable[..., DasBudget]:
    def _make(**overrides: Any) -> DasBudget:
        client_config = config.model_copy(update=overrides) if overrides else config
        return DasBudget(
            client_config,
            http=http,
            observer=observer,
            clock=clock,
            retry_wait=wait_none(),
        )

    return _make


@pytest.fixture
def client(make_client) -> DasBudget:
    return make_client()


@pytest.fixture
def clean_env(monkeypatch):
    """Process environment without any DASBUDGET_* variables; restored afterwards."""
    environ = {key: value for key, value in os.environ.items() if not key.startswith("DASBUDGET_")}
    monkeypatch.setattr(os, "environ", environ)
    return environ
