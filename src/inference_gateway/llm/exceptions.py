"""
Custom exceptions for the gateway's LLM client layer.

These exceptions let the transport, the orchestrator and the API layer
distinguish failure modes and apply the right recovery:

- Fail fast (never retried): ModelNotFoundError, AuthenticationError
- Retried with backoff, then surfaced: TransientNetworkError
- Silent: GenerationCancelled (no error fragment, no stats)
- Skipped: ProtocolParseError (one bad NDJSON line never aborts a stream)
"""


class GatewayError(Exception):
    """
    Base exception for all gateway errors.

    All gateway-specific exceptions inherit from this to allow catching
    any of them with a single except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LLMConnectionError(GatewayError):
    """
    Raised when unable to reach an inference node.

    Includes network errors, timeouts, DNS failures, etc.
    """
    pass


class TransientNetworkError(LLMConnectionError):
    """
    Raised when a retryable failure persists after all retries.

    Covers non-success statuses other than 401/404 and transport-level
    exceptions. The last underlying cause is chained as __cause__.
    """
    pass


class LLMGenerationError(GatewayError):
    """Raised when the inference server reports an error during generation."""
    pass


class ModelNotFoundError(LLMGenerationError):
    """
    Raised on HTTP 404 from the inference server.

    Retrying cannot change the outcome, so this is never retried.
    """
    pass


class ProtocolParseError(LLMGenerationError):
    """
    Raised for a malformed line in a newline-delimited JSON stream.

    Stream readers catch this, log it and move on to the next line.
    """
    pass


class AuthenticationError(GatewayError):
    """Raised on HTTP 401 (bad or missing API key). Never retried."""
    pass


class GenerationCancelled(GatewayError):
    """Raised when the caller cancels a generation mid-stream."""
    pass


class CacheCapacityError(GatewayError):
    """
    Raised by a cache backend when a write does not fit.

    Internal to the cache store: put() handles it and never lets it escape.
    """
    pass
