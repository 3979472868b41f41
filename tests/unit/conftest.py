"""Unit test fixtures (mocks and stubs).

Provides mock objects for testing without external dependencies.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from inference_gateway.llm.prompt_builder import PromptBuilder


@pytest.fixture
def mock_async_redis():
    """Mock AsyncRedis client for unit tests (async)."""
    mock = AsyncMock()
    mock.get = AsyncMock(return_value=None)
    mock.setex = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=1)
    mock.aclose = AsyncMock(return_value=None)

    async def _scan_iter(match=None):
        for key in mock.stored_keys:
            yield key

    mock.stored_keys = []
    mock.scan_iter = MagicMock(side_effect=_scan_iter)
    return mock


@pytest.fixture
def prompt_builder() -> PromptBuilder:
    """PromptBuilder over the packaged templates, no safety margin surprises."""
    return PromptBuilder()
