"""
FastAPI exception handlers for structured error responses.

Maps gateway exceptions from the non-streaming routes to HTTP status codes.
The streaming /chat route never raises: its failures arrive in-band as
inline fragments.
"""

from datetime import datetime, timezone

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse

from inference_gateway.llm.exceptions import (
    AuthenticationError,
    GatewayError,
    LLMConnectionError,
    ModelNotFoundError,
)

logger = structlog.get_logger(__name__)


def _error_body(error: str, exc: GatewayError) -> dict:
    return {
        "error": error,
        "message": exc.message,
        "details": exc.details,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def model_not_found_handler(request: Request, exc: ModelNotFoundError) -> JSONResponse:
    """
    Handle unknown models.

    Maps to 404 Not Found.
    """
    logger.warning("Model not found", source="Ollama", details=exc.details)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=_error_body("model_not_found", exc),
    )


async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    """
    Handle rejected node credentials.

    Maps to 401 Unauthorized.
    """
    logger.warning("Node rejected credentials", source="Network", details=exc.details)
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content=_error_body("authentication_failed", exc),
    )


async def connection_error_handler(request: Request, exc: LLMConnectionError) -> JSONResponse:
    """
    Handle unreachable nodes (including exhausted retries).

    Maps to 503 Service Unavailable (temporary failure).
    """
    logger.error("LLM connection error", source="Network", error=exc.message, details=exc.details)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_error_body("llm_unavailable", exc),
    )


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """
    Handle any other gateway error.

    Maps to 502 Bad Gateway (upstream misbehaved).
    """
    logger.error("Gateway error", error=exc.message, error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content=_error_body("upstream_error", exc),
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    ModelNotFoundError: model_not_found_handler,
    AuthenticationError: authentication_error_handler,
    LLMConnectionError: connection_error_handler,
    GatewayError: gateway_error_handler,
}
