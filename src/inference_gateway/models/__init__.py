"""
Pydantic data models for the Streaming Inference Gateway.

Includes:
- Enums (Role, Sender, LoadBalancingMode, CacheBackend, Channel, MeshRole, ...)
- Request models (ChatMessage, HistoryMessage, InferenceOptions, InferenceRequest)
- Mesh models (NodeDescriptor, RoutingDecision, ModelInfo, MeshNodeStatus)
- Result models (ChatChunk, GenerationStats, TaskStep, LogEvent)
"""

from inference_gateway.models.enums import (
    CacheBackend,
    Channel,
    LoadBalancingMode,
    LogLevel,
    MeshRole,
    ModelCapability,
    Role,
    Sender,
    TaskStatus,
)
from inference_gateway.models.chat_models import (
    ChatChunk,
    ChatMessage,
    GenerationStats,
    HistoryMessage,
    InferenceOptions,
    InferenceRequest,
    LogEvent,
    MeshNodeStatus,
    ModelInfo,
    NodeDescriptor,
    RoutingDecision,
    TaskStep,
    normalize_address,
)

__all__ = [
    # Enums
    "CacheBackend",
    "Channel",
    "LoadBalancingMode",
    "LogLevel",
    "MeshRole",
    "ModelCapability",
    "Role",
    "Sender",
    "TaskStatus",
    # Request models
    "ChatMessage",
    "HistoryMessage",
    "InferenceOptions",
    "InferenceRequest",
    # Mesh models
    "NodeDescriptor",
    "RoutingDecision",
    "ModelInfo",
    "MeshNodeStatus",
    "normalize_address",
    # Result models
    "ChatChunk",
    "GenerationStats",
    "TaskStep",
    "LogEvent",
]
