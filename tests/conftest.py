"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and API tests.
No test talks to a live server: HTTP goes through httpx.MockTransport.
"""

import json
from typing import Any, Callable, Dict, Optional

import httpx
import pytest

from inference_gateway.config import Settings
from inference_gateway.models.chat_models import NodeDescriptor
from inference_gateway.models.enums import CacheBackend, LoadBalancingMode


LOCAL_URL = "http://localhost:11434"
REMOTE_URL = "http://studio.local:11434"


@pytest.fixture
def remote_node() -> NodeDescriptor:
    return NodeDescriptor(id="n1", name="studio", url=REMOTE_URL, api_key="secret")


@pytest.fixture
def test_settings(remote_node: NodeDescriptor) -> Settings:
    """Test settings with safe defaults for local testing.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            settings = test_settings.model_copy(update={"CACHE_ENABLED": False})
    """
    return Settings(
        # === Application ===
        APP_NAME="Streaming Inference Gateway (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Ollama ===
        OLLAMA_BASE_URL=LOCAL_URL,
        MODEL_NAME="llama3.1:8b",
        REQUEST_TIMEOUT=10.0,

        # === Generation ===
        CONTEXT_WINDOW=4096,
        TEMPERATURE=0.7,
        REPEAT_PENALTY=1.1,
        SYSTEM_PROMPT="You are a test assistant.",

        # === Mesh ===
        REMOTE_NODES=[remote_node],
        LOAD_BALANCING=LoadBalancingMode.ROUND_ROBIN,
        DISCOVERY_TIMEOUT=0.2,

        # === Retry ===
        MAX_RETRIES=2,
        INITIAL_BACKOFF=0.0,

        # === Cache ===
        CACHE_ENABLED=True,
        CACHE_BACKEND=CacheBackend.MEMORY,
        CACHE_CAPACITY_CHARS=10_000,

        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


def ndjson(*objects: Dict[str, Any]) -> bytes:
    """Encode objects as a newline-delimited JSON body."""
    return ("\n".join(json.dumps(o) for o in objects) + "\n").encode("utf-8")


def chat_lines(*contents: str, done_extra: Optional[Dict[str, Any]] = None) -> bytes:
    """Build an /api/chat streaming body: one line per content piece plus a terminal line."""
    lines = [
        {"message": {"role": "assistant", "content": c}, "done": False} for c in contents
    ]
    final = {
        "done": True,
        "total_duration": 2_000_000_000,
        "load_duration": 100_000_000,
        "prompt_eval_count": 12,
        "eval_count": 20,
        "eval_duration": 1_000_000_000,
    }
    final.update(done_extra or {})
    lines.append(final)
    return ndjson(*lines)


@pytest.fixture
def mock_transport() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.MockTransport]:
    """Factory fixture wrapping a request handler in httpx.MockTransport.

    Usage:
        def test_something(mock_transport):
            transport = mock_transport(lambda request: httpx.Response(200, json={}))
    """
    def _create(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
        return httpx.MockTransport(handler)

    return _create


class FragmentRecorder:
    """Callable stand-in for on_fragment that records every call."""

    def __init__(self):
        self.calls: list[tuple[Optional[str], Optional[str], bool]] = []

    def __call__(self, answer: Optional[str], thought: Optional[str], is_thinking: bool) -> None:
        self.calls.append((answer, thought, is_thinking))

    @property
    def answer(self) -> str:
        return "".join(a for a, _, _ in self.calls if a)

    @property
    def thought(self) -> str:
        return "".join(t for _, t, _ in self.calls if t)


@pytest.fixture
def recorder() -> FragmentRecorder:
    return FragmentRecorder()


@pytest.fixture
def chat_body() -> Callable[..., bytes]:
    """The chat_lines helper as a fixture: chat_body("Hel", "lo") -> NDJSON bytes."""
    return chat_lines


@pytest.fixture
def ndjson_body() -> Callable[..., bytes]:
    return ndjson
