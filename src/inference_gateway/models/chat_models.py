"""
Data models for the chat request/response cycle and the node mesh.

Request-side models are frozen: an InferenceRequest is built once per call
and never mutated afterwards. RoutingDecision is also frozen but is never
cached; a fresh one is computed for every request.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from inference_gateway.models.enums import (
    LogLevel,
    MeshRole,
    ModelCapability,
    Role,
    Sender,
    TaskStatus,
)


class ChatMessage(BaseModel):
    """A single model-visible chat turn in wire format."""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    images: Optional[list[str]] = Field(
        default=None, description="Base64-encoded image attachments"
    )

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.images:
            payload["images"] = list(self.images)
        return payload


class HistoryMessage(BaseModel):
    """A conversation turn as held by the chat UI (input to budgeting)."""
    model_config = ConfigDict(frozen=True)

    text: str
    sender: Sender
    images: Optional[list[str]] = None


class InferenceOptions(BaseModel):
    """Sampling and context options forwarded to the inference server."""
    model_config = ConfigDict(frozen=True)

    context_window: int = Field(..., gt=0, description="num_ctx")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    repeat_penalty: float = Field(default=1.1, ge=1.0)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "num_ctx": self.context_window,
            "temperature": self.temperature,
            "repeat_penalty": self.repeat_penalty,
        }


class InferenceRequest(BaseModel):
    """Complete, immutable streaming chat request for a single call."""
    model_config = ConfigDict(frozen=True)

    model: str
    messages: list[ChatMessage]
    options: InferenceOptions

    @property
    def has_images(self) -> bool:
        return any(m.images for m in self.messages)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [m.to_wire() for m in self.messages],
            "stream": True,
            "options": self.options.to_wire(),
        }


class NodeDescriptor(BaseModel):
    """
    An inference node in the mesh.

    ``name`` doubles as the routing prefix: ``"<name>/<model>"`` targets
    this node explicitly.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    url: str
    api_key: Optional[str] = None

    @property
    def auth_header(self) -> Optional[str]:
        return f"Bearer {self.api_key}" if self.api_key else None

    @property
    def normalized_address(self) -> str:
        return normalize_address(self.url)


def normalize_address(url: str) -> str:
    """Strip scheme and trailing slash, lower-case: 'http://A:1/' -> 'a:1'."""
    cleaned = url.strip().rstrip("/").lower()
    if "://" in cleaned:
        cleaned = cleaned.split("://", 1)[1]
    return cleaned


class RoutingDecision(BaseModel):
    """Where a single request goes. Recomputed on every call."""
    model_config = ConfigDict(frozen=True)

    target_url: str
    auth_header: Optional[str] = None
    is_remote: bool = False
    model: str = Field(..., description="Downstream model name, node prefix stripped")
    node_name: Optional[str] = None


class GenerationStats(BaseModel):
    """Final statistics of a completed (non-aborted) generation."""

    total_duration_ms: float = Field(..., ge=0)
    load_duration_ms: float = Field(..., ge=0)
    prompt_tokens: int = Field(..., ge=0)
    completion_tokens: int = Field(..., ge=0)
    completion_duration_ms: float = Field(..., ge=0)
    tokens_per_second: float = Field(..., ge=0)

    @classmethod
    def from_done_message(cls, data: Dict[str, Any]) -> "GenerationStats":
        """Derive stats from the terminal protocol message (durations in ns)."""
        eval_count = int(data.get("eval_count") or 0)
        eval_duration_ns = float(data.get("eval_duration") or 0)
        tps = eval_count / (eval_duration_ns / 1e9) if eval_duration_ns > 0 else 0.0
        return cls(
            total_duration_ms=float(data.get("total_duration") or 0) / 1e6,
            load_duration_ms=float(data.get("load_duration") or 0) / 1e6,
            prompt_tokens=int(data.get("prompt_eval_count") or 0),
            completion_tokens=eval_count,
            completion_duration_ms=eval_duration_ns / 1e6,
            tokens_per_second=tps,
        )

    @classmethod
    def instant(cls, completion_tokens: int) -> "GenerationStats":
        """Synthetic stats for a response served from cache."""
        return cls(
            total_duration_ms=10,
            load_duration_ms=0,
            prompt_tokens=0,
            completion_tokens=completion_tokens,
            completion_duration_ms=10,
            tokens_per_second=9999,
        )


class ChatChunk(BaseModel):
    """
    Backend-neutral unit produced by a chat protocol adapter.

    ``stats`` is only set on the terminal chunk (``done=True``).
    """
    model_config = ConfigDict(frozen=True)

    content: Optional[str] = None
    done: bool = False
    stats: Optional[GenerationStats] = None


class ModelInfo(BaseModel):
    """A model available on an inference node."""

    name: str
    size_bytes: Optional[int] = None
    digest: Optional[str] = None
    family: str = "Unknown"
    parameter_size: str = "?"
    quantization_level: str = "?"
    capabilities: list[ModelCapability] = Field(
        default_factory=lambda: [ModelCapability.GENERAL]
    )
    role: MeshRole = MeshRole.GENERAL

    @property
    def size_gb(self) -> Optional[float]:
        if self.size_bytes is None:
            return None
        return round(self.size_bytes / (1024 ** 3), 1)


class MeshNodeStatus(BaseModel):
    """Liveness and inventory of a configured remote node."""

    id: str
    name: str
    url: str
    online: bool
    model_count: Optional[int] = None
    capabilities: list[ModelCapability] = Field(
        default_factory=lambda: [ModelCapability.GENERAL]
    )
    role: MeshRole = MeshRole.GENERAL


class TaskStep(BaseModel):
    """One step of an agent execution plan."""

    id: str
    description: str
    status: TaskStatus = TaskStatus.PENDING
    result: Optional[str] = None


class LogEvent(BaseModel):
    """A structured log event delivered to log sink subscribers."""

    timestamp: datetime
    level: LogLevel
    message: str
    source: str = "System"
    details: Optional[Dict[str, Any]] = None
