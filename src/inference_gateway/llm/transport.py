"""
Retrying HTTP transport for short calls and for opening long downloads.

Wraps an httpx.AsyncClient with bounded exponential backoff and fail-fast
error classification:

- 404 -> ModelNotFoundError, never retried
- 401 -> AuthenticationError, never retried
- any other non-2xx status or httpx.TransportError -> retried up to
  ``max_retries`` times, backoff doubling each attempt, then
  TransientNetworkError

``stream()`` applies the same policy only until response headers arrive;
once the body is being read, failures are the caller's to handle.

The long-lived streaming chat call does NOT go through here; it has its own
one-shot remote-to-local failover in the orchestrator.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

import httpx
import structlog

from inference_gateway.llm.exceptions import (
    AuthenticationError,
    ModelNotFoundError,
    TransientNetworkError,
)
from inference_gateway.monitoring.metrics import transport_retries_total


logger = structlog.get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


class RetryingTransport:
    """
    HTTP request wrapper with bounded exponential backoff.

    Attributes:
        client: Shared httpx.AsyncClient (owned by the caller)
        max_retries: Default number of retries after the first attempt
        initial_backoff: Default first sleep in seconds
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_retries: int = 2,
        initial_backoff: float = 0.5,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.client = client
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self._sleep = sleep

    async def send(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[Any] = None,
        max_retries: Optional[int] = None,
        initial_backoff: Optional[float] = None,
    ) -> httpx.Response:
        """
        Send a request, retrying transient failures.

        Args:
            method: HTTP method
            url: Absolute URL
            json: Optional JSON body
            headers: Optional extra headers
            timeout: Per-attempt timeout (client default if None)
            max_retries: Override default retries
            initial_backoff: Override default first backoff

        Returns:
            Successful httpx.Response (2xx), body already read

        Raises:
            ModelNotFoundError: Server answered 404
            AuthenticationError: Server answered 401
            TransientNetworkError: Retries exhausted
        """
        return await self._send_with_retry(
            method, url, json, headers, timeout, max_retries, initial_backoff, stream=False
        )

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[Any] = None,
        max_retries: Optional[int] = None,
        initial_backoff: Optional[float] = None,
    ) -> AsyncIterator[httpx.Response]:
        """
        Open a streaming response, retrying until a 2xx status line arrives.

        The yielded response has an unread body and is closed on exit.
        Raises the same errors as send().
        """
        response = await self._send_with_retry(
            method, url, json, headers, timeout, max_retries, initial_backoff, stream=True
        )
        try:
            yield response
        finally:
            await response.aclose()

    async def _send_with_retry(
        self,
        method: str,
        url: str,
        json: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, str]],
        timeout: Optional[Any],
        max_retries: Optional[int],
        initial_backoff: Optional[float],
        stream: bool,
    ) -> httpx.Response:
        retries_left = self.max_retries if max_retries is None else max_retries
        backoff = self.initial_backoff if initial_backoff is None else initial_backoff
        attempt = 0
        request_kwargs: Dict[str, Any] = {"json": json, "headers": headers}
        if timeout is not None:
            request_kwargs["timeout"] = timeout

        while True:
            attempt += 1
            request = self.client.build_request(method, url, **request_kwargs)
            try:
                response = await self.client.send(request, stream=stream)
            except httpx.TransportError as e:
                last_error: Exception = e
                error_message = f"Network error: {e}"
            else:
                if response.is_success:
                    return response
                if stream:
                    await response.aclose()
                if response.status_code == 404:
                    raise ModelNotFoundError(
                        "Model not found",
                        details={"url": url, "status": 404},
                    )
                if response.status_code == 401:
                    raise AuthenticationError(
                        "Authentication failed",
                        details={"url": url, "status": 401},
                    )

                last_error = httpx.HTTPStatusError(
                    f"HTTP {response.status_code}",
                    request=response.request,
                    response=response,
                )
                error_message = f"HTTP {response.status_code} - {response.reason_phrase}"

            if retries_left <= 0:
                logger.warning(
                    "Request failed, retries exhausted",
                    source="Network",
                    url=url,
                    attempts=attempt,
                    error=error_message,
                )
                raise TransientNetworkError(
                    error_message,
                    details={"url": url, "attempts": attempt},
                ) from last_error

            logger.debug(
                f"Retrying request to {url}... ({retries_left} left)",
                source="Network",
                url=url,
                attempt=attempt,
                backoff=backoff,
                error=error_message,
            )
            transport_retries_total.inc()
            await self._sleep(backoff)
            retries_left -= 1
            backoff *= 2
