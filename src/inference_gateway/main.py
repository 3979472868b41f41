"""
FastAPI application entry point for the Streaming Inference Gateway.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from inference_gateway.api.dependencies import GatewayServices, get_settings
from inference_gateway.api.error_handlers import EXCEPTION_HANDLERS
from inference_gateway.api.middleware import RequestTracingMiddleware
from inference_gateway.api.routes import router
from inference_gateway.config import Settings
from inference_gateway.logging_config import LogSink, configure_logging

logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use (environment-derived if None)
        transport: Optional httpx transport for every outbound call
    """
    settings = settings or get_settings()
    log_sink = LogSink()
    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT, sink=log_sink)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Application startup",
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
            ollama_base_url=settings.OLLAMA_BASE_URL,
            model=settings.MODEL_NAME,
            remote_nodes=len(settings.REMOTE_NODES),
            cache_backend=settings.CACHE_BACKEND.value if settings.CACHE_ENABLED else None,
        )
        services = GatewayServices.create(settings, log_sink=log_sink, transport=transport)
        app.state.services = services

        if await services.client.health_check(base_url=settings.OLLAMA_BASE_URL):
            logger.info("Ollama connection successful", source="Ollama")
        else:
            logger.warning("Ollama not reachable at startup", source="Ollama")

        logger.info("Application startup complete")
        try:
            yield
        finally:
            logger.info("Application shutdown")
            await services.close()
            logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.APP_NAME,
        description="Streaming chat gateway over a mesh of Ollama nodes",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Request tracing middleware (must be first for request_id in all logs)
    app.add_middleware(RequestTracingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for exc_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exc_class, handler)

    app.include_router(router)

    if settings.PROMETHEUS_ENABLED:
        Instrumentator().instrument(app).expose(app)

    @app.get("/")
    async def root():
        """Root endpoint with API documentation links."""
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics" if settings.PROMETHEUS_ENABLED else None,
        }

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "inference_gateway.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,  # Only for development
    )
