"""
Ollama client implementation of the gateway's protocol adapter.

Communicates with the Ollama API using one shared httpx AsyncClient for every
node in the mesh (URLs are absolute, so a single pool serves all nodes).

API Endpoints:
- POST /api/chat: Streaming chat (NDJSON), the main generation path
- POST /api/generate: Short non-streaming completions, model unload
- POST /api/pull: Model provisioning (NDJSON progress)
- GET /api/tags: List available models
- GET /api/version: Lightweight health check
"""

import json
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import httpx
import structlog

from inference_gateway.llm.base_client import BaseLLMClient
from inference_gateway.llm.exceptions import (
    AuthenticationError,
    GatewayError,
    LLMConnectionError,
    LLMGenerationError,
    ModelNotFoundError,
    ProtocolParseError,
)
from inference_gateway.llm.transport import RetryingTransport
from inference_gateway.mesh import determine_capabilities
from inference_gateway.models.chat_models import (
    ChatChunk,
    GenerationStats,
    InferenceRequest,
    ModelInfo,
)


logger = structlog.get_logger(__name__)

PULL_PROGRESS_LOG_INTERVAL = 2.0  # seconds


def parse_chat_line(line: str) -> Optional[ChatChunk]:
    """
    Translate one /api/chat NDJSON line into a ChatChunk.

    Returns None for blank lines.

    Raises:
        ProtocolParseError: Line is not a JSON object
        LLMGenerationError: Server reported an error mid-stream
    """
    if not line.strip():
        return None
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise ProtocolParseError(
            "Invalid NDJSON line from Ollama",
            details={"line": line[:200], "parse_error": str(e)},
        ) from e
    if not isinstance(data, dict):
        raise ProtocolParseError(
            "NDJSON line is not an object", details={"line": line[:200]}
        )
    if data.get("error"):
        raise LLMGenerationError(
            f"Ollama error: {data['error']}", details={"error": data["error"]}
        )

    message = data.get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    done = bool(data.get("done"))
    return ChatChunk(
        content=content or None,
        done=done,
        stats=GenerationStats.from_done_message(data) if done else None,
    )


def _raise_for_status(response: httpx.Response, model: str, url: str) -> None:
    status = response.status_code
    if response.is_success:
        return
    if status == 404:
        raise ModelNotFoundError(
            f"Model not found: {model}", details={"model": model, "url": url}
        )
    if status == 401:
        raise AuthenticationError(
            "Authentication failed", details={"url": url, "status": status}
        )
    raise LLMGenerationError(
        f"HTTP {status}", details={"url": url, "status": status}
    )


class OllamaClient(BaseLLMClient):
    """
    Ollama-specific client using httpx for async HTTP communication.

    Features:
    - Streaming chat over NDJSON with line buffering across network chunks
    - Short calls through RetryingTransport (bounded exponential backoff)
    - Connection pooling via one persistent AsyncClient
    - Model provisioning with throttled progress logging
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        timeout: float = 300.0,
        max_retries: int = 2,
        initial_backoff: float = 0.5,
        connection_limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs,
    ):
        """
        Initialize Ollama client.

        Args:
            base_url: Default (local) Ollama server URL
            timeout: Request timeout in seconds
            max_retries: Retries for short, non-streaming calls
            initial_backoff: First retry backoff in seconds
            connection_limits: httpx connection pool limits
            transport: Optional httpx transport (tests use httpx.MockTransport)
            **kwargs: Additional config
        """
        super().__init__(base_url, timeout, **kwargs)

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=20,
                keepalive_expiry=30.0,
            )

        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self._connection_limits = connection_limits
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._retrying: Optional[RetryingTransport] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                transport=self._transport,
                follow_redirects=True,
            )
            self._retrying = None
            logger.debug("Created new httpx AsyncClient")
        return self._client

    @property
    def transport(self) -> RetryingTransport:
        client = self._get_client()
        if self._retrying is None:
            self._retrying = RetryingTransport(
                client,
                max_retries=self.max_retries,
                initial_backoff=self.initial_backoff,
            )
        return self._retrying

    def _url(self, base_url: Optional[str], path: str) -> str:
        return f"{(base_url or self.base_url).rstrip('/')}{path}"

    @asynccontextmanager
    async def open_chat_stream(
        self,
        request: InferenceRequest,
        base_url: Optional[str] = None,
        auth_header: Optional[str] = None,
    ) -> AsyncIterator[AsyncIterator[ChatChunk]]:
        """
        POST /api/chat with ``stream: true``.

        Payload:
        {
            "model": "llama3.1:8b",
            "messages": [{"role": "system", "content": "..."}, ...],
            "stream": true,
            "options": {"num_ctx": 4096, "temperature": 0.7, "repeat_penalty": 1.1}
        }

        Response lines:
        {"message": {"role": "assistant", "content": "Hel"}, "done": false}
        ...
        {"done": true, "total_duration": ..., "load_duration": ...,
         "prompt_eval_count": ..., "eval_count": ..., "eval_duration": ...}
        """
        url = self._url(base_url, "/api/chat")
        headers = {"Content-Type": "application/json"}
        if auth_header:
            headers["Authorization"] = auth_header

        client = self._get_client()
        try:
            async with client.stream(
                "POST", url, json=request.to_payload(), headers=headers
            ) as response:
                if not response.is_success:
                    await response.aread()
                    _raise_for_status(response, request.model, url)
                yield self._iter_chunks(response)
        except httpx.TransportError as e:
            raise LLMConnectionError(
                f"Network error: {e}",
                details={"url": url, "error_type": type(e).__name__},
            ) from e

    async def _iter_chunks(self, response: httpx.Response) -> AsyncIterator[ChatChunk]:
        async for line in response.aiter_lines():
            try:
                chunk = parse_chat_line(line)
            except ProtocolParseError as e:
                logger.debug("Skipping malformed stream line", source="InferenceEngine", **e.details)
                continue
            if chunk is not None:
                yield chunk

    async def generate(
        self,
        model: str,
        prompt: str,
        options: Optional[Dict[str, Any]] = None,
        format: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> str:
        """
        POST /api/generate with ``stream: false``; returns ``response``.
        """
        payload: Dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "stream": False,
        }
        if options:
            payload["options"] = options
        if format:
            payload["format"] = format

        response = await self.transport.send(
            "POST", self._url(base_url, "/api/generate"), json=payload
        )
        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise LLMGenerationError(
                "Invalid JSON response from Ollama",
                details={"parse_error": str(e)},
            ) from e
        return data.get("response") or ""

    async def list_models(self, base_url: Optional[str] = None) -> list[ModelInfo]:
        """
        List all available models via GET /api/tags.

        Response: {"models": [{"name": "...", "size": 4661224676, "digest": "...",
                   "details": {"family": "llama", "parameter_size": "8.0B",
                               "quantization_level": "Q4_0"}}]}
        """
        response = await self.transport.send("GET", self._url(base_url, "/api/tags"))
        data = response.json()
        models = []
        for entry in data.get("models", []):
            details = entry.get("details") or {}
            name = entry["name"]
            models.append(
                ModelInfo(
                    name=name,
                    size_bytes=entry.get("size"),
                    digest=entry.get("digest"),
                    family=details.get("family") or "Unknown",
                    parameter_size=details.get("parameter_size") or "?",
                    quantization_level=details.get("quantization_level") or "?",
                    capabilities=determine_capabilities(name),
                )
            )
        logger.debug("Listed available models", source="Ollama", count=len(models))
        return models

    async def list_model_names(
        self,
        base_url: Optional[str] = None,
        auth_header: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> list[str]:
        """Single-shot GET /api/tags returning just the names (for remote inventory)."""
        headers = {"Authorization": auth_header} if auth_header else None
        client = self._get_client()
        kwargs: Dict[str, Any] = {"headers": headers}
        if timeout is not None:
            kwargs["timeout"] = timeout
        response = await client.get(self._url(base_url, "/api/tags"), **kwargs)
        response.raise_for_status()
        return [m["name"] for m in response.json().get("models", [])]

    async def health_check(
        self,
        base_url: Optional[str] = None,
        auth_header: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Check server health via GET /api/version.

        Returns True if server responds 2xx, False otherwise.
        """
        headers = {"Authorization": auth_header} if auth_header else None
        try:
            client = self._get_client()
            response = await client.get(
                self._url(base_url, "/api/version"),
                headers=headers,
                timeout=timeout if timeout is not None else 5.0,
            )
            return response.is_success
        except httpx.HTTPError as e:
            logger.debug("Health check failed", source="Network", url=base_url or self.base_url, error=str(e))
            return False

    async def provision_model(self, model_name: str, base_url: Optional[str] = None) -> bool:
        """
        Pull a model via POST /api/pull, streaming progress.

        Streaming avoids timeouts on multi-gigabyte downloads. Starting the
        pull goes through the retrying transport; progress is logged at most
        every PULL_PROGRESS_LOG_INTERVAL seconds. An ``error`` field in any
        progress line fails the pull.

        Returns:
            True if the pull completed, False otherwise (never raises)
        """
        url = self._url(base_url, "/api/pull")
        logger.info(f"Provisioning missing model: {model_name} on {base_url or self.base_url}", source="Provisioner")
        try:
            async with self.transport.stream(
                "POST",
                url,
                json={"name": model_name, "stream": True},
                timeout=httpx.Timeout(self.timeout, read=None),
            ) as response:
                last_log = 0.0
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        progress = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if progress.get("error"):
                        raise LLMGenerationError(
                            str(progress["error"]), details={"model": model_name}
                        )
                    now = time.monotonic()
                    if progress.get("status") and now - last_log > PULL_PROGRESS_LOG_INTERVAL:
                        percent = None
                        if progress.get("completed") and progress.get("total"):
                            percent = round(progress["completed"] / progress["total"] * 100)
                        logger.info(
                            f"[{model_name}] {progress['status']}",
                            source="Provisioner",
                            percent=percent,
                        )
                        last_log = now

            logger.info(f"Successfully pulled {model_name}", source="Provisioner")
            return True
        except (GatewayError, httpx.HTTPError) as e:
            logger.error(f"Failed to auto-provision {model_name}", source="Provisioner", error=str(e))
            return False

    async def unload_model(self, model_name: str, base_url: Optional[str] = None) -> bool:
        """Ask the server to evict a model from memory (``keep_alive: 0``)."""
        logger.info(f"Requesting unload of model: {model_name}", source="MemoryManager")
        try:
            client = self._get_client()
            await client.post(
                self._url(base_url, "/api/generate"),
                json={"model": model_name, "keep_alive": 0},
            )
            return True
        except httpx.HTTPError as e:
            logger.error("Failed to unload model", source="MemoryManager", error=str(e))
            return False

    async def close(self):
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed Ollama client connection")
