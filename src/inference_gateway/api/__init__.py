"""
FastAPI API routes and endpoints.

- routes.py: POST /chat (NDJSON stream), models, mesh, short tasks, health
- dependencies.py: Settings and the GatewayServices container
- models.py: API-specific request/response models
- error_handlers.py: Exception handlers for structured error responses
- middleware.py: Request id tracing
"""

from inference_gateway.api import dependencies, error_handlers, models
from inference_gateway.api.routes import router

__all__ = [
    "router",
    "dependencies",
    "error_handlers",
    "models",
]
