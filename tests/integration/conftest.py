"""Integration test fixtures.

The full FastAPI app runs in-process; every outbound HTTP call goes through
an httpx.MockTransport standing in for the Ollama mesh.
"""

import json
from typing import Callable, Optional

import httpx
import pytest
import structlog
from fastapi.testclient import TestClient

from inference_gateway.main import create_app


class FakeOllama:
    """Minimal Ollama stand-in: one handler per (host:port, path); unknown routes refuse to connect."""

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def route(
        self,
        host: str,
        path: str,
        handler: Callable[[httpx.Request], httpx.Response],
        port: int = 11434,
    ) -> None:
        self.routes[(f"{host}:{port}", path)] = handler

    def json_body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler: Optional[Callable] = self.routes.get(
            (f"{request.url.host}:{request.url.port}", request.url.path)
        )
        if handler is None:
            raise httpx.ConnectError("no route to host", request=request)
        return handler(request)


@pytest.fixture
def fake_ollama() -> FakeOllama:
    fake = FakeOllama()
    fake.route("localhost", "/api/version", lambda r: httpx.Response(200, json={"version": "0.5.0"}))
    return fake


@pytest.fixture
def api_client(test_settings, fake_ollama):
    """TestClient over a fresh app; the lifespan runs inside the with block."""
    app = create_app(test_settings, transport=httpx.MockTransport(fake_ollama))
    with TestClient(app) as client:
        yield client
    structlog.reset_defaults()
