"""
API-specific request and response models for FastAPI endpoints.

These wrap the core gateway models (HistoryMessage, ModelInfo, TaskStep,
...) with HTTP-level request shapes.
"""

from typing import Optional

from pydantic import BaseModel, Field

from inference_gateway.models.chat_models import (
    HistoryMessage,
    NodeDescriptor,
    TaskStep,
)


class ChatRequest(BaseModel):
    """Body of POST /chat. The response is an NDJSON fragment stream."""

    message: str = Field(description="Current user message")
    history: list[HistoryMessage] = Field(
        default_factory=list, description="Prior turns, oldest first"
    )
    long_term_memory: Optional[str] = Field(
        default=None, description="Project summary carried across sessions"
    )
    persona: Optional[str] = Field(
        default=None, description="Overrides the configured system prompt"
    )
    images: list[str] = Field(
        default_factory=list, description="Base64 images attached to the message"
    )
    model: Optional[str] = Field(
        default=None,
        description="Model override, optionally node-prefixed",
        examples=["llama3.1:8b", "studio/qwen2.5:14b"],
    )
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)


class TitleRequest(BaseModel):
    message: str = Field(min_length=1)


class TitleResponse(BaseModel):
    title: str


class SummaryRequest(BaseModel):
    text: str


class SummaryResponse(BaseModel):
    summary: str


class PlanRequest(BaseModel):
    goal: str = Field(min_length=1)


class PlanResponse(BaseModel):
    steps: list[TaskStep]


class ModelActionRequest(BaseModel):
    """Body of POST /models/pull and POST /models/unload."""

    name: str = Field(min_length=1)
    node_url: Optional[str] = Field(
        default=None, description="Target node; defaults to the local endpoint"
    )


class ModelActionResponse(BaseModel):
    name: str
    success: bool


class ScanResponse(BaseModel):
    """Result of a mesh scan."""

    discovered: list[NodeDescriptor] = Field(
        description="Live nodes not already configured"
    )
    nodes: list[NodeDescriptor] = Field(
        description="Configured nodes merged with the discovered ones"
    )


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(description="ok or degraded", examples=["ok", "degraded"])
    version: str
    ollama_reachable: bool
    remote_nodes: int = Field(ge=0)
