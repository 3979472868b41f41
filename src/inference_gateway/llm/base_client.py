"""
Abstract base client for inference backends.

Defines the narrow protocol-adapter interface the orchestrator depends on.
Everything that knows the shape of a specific server's JSON (Ollama today)
lives behind this interface, so alternate backends can be substituted
without touching the orchestrator.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, AsyncIterator, Dict, Optional

import structlog

from inference_gateway.models.chat_models import ChatChunk, InferenceRequest, ModelInfo


logger = structlog.get_logger(__name__)


class BaseLLMClient(ABC):
    """
    Abstract base class for inference backend clients.

    Responsibilities:
    - Open streaming chat requests against any node URL
    - Translate the backend's wire format into ChatChunk objects
    - Run short, non-streaming generations (titles, summaries, plans)
    - Provide health check and model listing

    Does NOT handle:
    - Routing (that's EndpointResolver's job)
    - Failover, caching, tag parsing (that's GenerationOrchestrator's job)
    """

    def __init__(self, base_url: str, timeout: float = 300.0, **kwargs):
        """
        Initialize base client.

        Args:
            base_url: Default node URL (the local endpoint)
            timeout: Request timeout in seconds
            **kwargs: Additional provider-specific config
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.extra_config = kwargs

        logger.info(
            "Initialized LLM client",
            client_class=self.__class__.__name__,
            base_url=self.base_url,
            timeout=timeout,
        )

    @abstractmethod
    def open_chat_stream(
        self,
        request: InferenceRequest,
        base_url: Optional[str] = None,
        auth_header: Optional[str] = None,
    ) -> AbstractAsyncContextManager[AsyncIterator[ChatChunk]]:
        """
        Open a streaming chat request.

        Entering the context manager sends the request and checks the
        status, so connection and HTTP failures surface on entry (this is
        what the orchestrator's failover catches). The yielded iterator then
        produces ChatChunk objects until the terminal chunk (``done=True``).

        Malformed protocol lines are skipped, never raised.

        Raises (on entry):
            LLMConnectionError: Node unreachable
            ModelNotFoundError: Model unknown on the node
            AuthenticationError: Credentials rejected
            LLMGenerationError: Any other non-success status
        """

    @abstractmethod
    async def generate(
        self,
        model: str,
        prompt: str,
        options: Optional[Dict[str, Any]] = None,
        format: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> str:
        """
        Run a short, non-streaming completion and return its text.

        Goes through the retrying transport.
        """

    @abstractmethod
    async def list_models(self, base_url: Optional[str] = None) -> list[ModelInfo]:
        """List models available on a node."""

    @abstractmethod
    async def health_check(
        self,
        base_url: Optional[str] = None,
        auth_header: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Check whether a node is reachable.

        Should be a lightweight call. Must NOT raise; returns False on error.
        """

    async def close(self):
        """
        Close client connections and cleanup resources.

        Default implementation does nothing. Subclasses should override if
        they hold persistent connections.
        """
        logger.debug("Closing LLM client", client_class=self.__class__.__name__)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"base_url={self.base_url}, "
            f"timeout={self.timeout}s)"
        )
