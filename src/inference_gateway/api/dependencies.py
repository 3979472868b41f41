"""
FastAPI dependency injection for the gateway.

Expensive resources (HTTP client pool, cache store, log sink) are owned by a
GatewayServices container created in the app lifespan and closed at
shutdown; dependencies only hand them out.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import httpx
from fastapi import Request

from inference_gateway.config import Settings
from inference_gateway.llm.ollama_client import OllamaClient
from inference_gateway.llm.prompt_builder import PromptBuilder
from inference_gateway.llm.short_tasks import ShortTaskRunner
from inference_gateway.logging_config import LogSink
from inference_gateway.mesh import MeshInventory
from inference_gateway.models.enums import CacheBackend
from inference_gateway.orchestrator import GenerationOrchestrator
from inference_gateway.persistence.cache_store import CacheStore, build_cache_store
from inference_gateway.persistence.redis_client import RedisClient
from inference_gateway.routing.discovery import NodeDiscovery
from inference_gateway.routing.resolver import EndpointResolver


@lru_cache()
def get_settings() -> Settings:
    """
    Get settings singleton.

    Returns:
        Settings instance
    """
    return Settings()


@dataclass
class GatewayServices:
    """Explicitly owned gateway resources with init/teardown."""

    settings: Settings
    client: OllamaClient
    cache: CacheStore
    orchestrator: GenerationOrchestrator
    short_tasks: ShortTaskRunner
    discovery: NodeDiscovery
    inventory: MeshInventory
    log_sink: LogSink
    redis_client: Optional[RedisClient] = None

    @classmethod
    def create(
        cls,
        settings: Settings,
        log_sink: Optional[LogSink] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "GatewayServices":
        """
        Build every component from settings.

        Args:
            settings: Application settings
            log_sink: Sink already attached to logging (a new one if None)
            transport: Optional httpx transport shared by all HTTP calls
        """
        client = OllamaClient(
            base_url=settings.OLLAMA_BASE_URL,
            timeout=settings.REQUEST_TIMEOUT,
            max_retries=settings.MAX_RETRIES,
            initial_backoff=settings.INITIAL_BACKOFF,
            transport=transport,
        )

        redis_client = None
        redis = None
        if settings.CACHE_BACKEND == CacheBackend.REDIS:
            redis_client = RedisClient(settings)
            redis = redis_client.get_async_client()
        cache = build_cache_store(settings, redis=redis)

        prompt_builder = PromptBuilder(safety_margin=settings.CONTEXT_SAFETY_MARGIN)
        return cls(
            settings=settings,
            client=client,
            cache=cache,
            orchestrator=GenerationOrchestrator(
                client=client,
                prompt_builder=prompt_builder,
                cache=cache,
                resolver=EndpointResolver(),
            ),
            short_tasks=ShortTaskRunner(client, prompt_builder, settings),
            discovery=NodeDiscovery(timeout=settings.DISCOVERY_TIMEOUT, transport=transport),
            inventory=MeshInventory(client),
            log_sink=log_sink or LogSink(),
            redis_client=redis_client,
        )

    async def close(self) -> None:
        await self.client.close()
        await self.cache.close()
        if self.redis_client is not None:
            await self.redis_client.close()


def get_services(request: Request) -> GatewayServices:
    """Return the services container attached to the running app."""
    return request.app.state.services
