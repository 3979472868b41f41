"""
Enumerations for gateway data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class Role(str, Enum):
    """Wire-level chat role sent to the inference server."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Sender(str, Enum):
    """
    Author of a conversation turn as recorded by the chat UI.

    SYSTEM turns are transient UI notices and are never sent to the model.
    """

    USER = "USER"
    ASSISTANT = "ASSISTANT"
    SYSTEM = "SYSTEM"


class LoadBalancingMode(str, Enum):
    """
    Mesh load balancing mode.

    Only RANDOM offloads generic requests to remote nodes; ROUND_ROBIN is
    accepted for configuration compatibility and behaves like local-first.
    """

    ROUND_ROBIN = "ROUND_ROBIN"
    RANDOM = "RANDOM"


class CacheBackend(str, Enum):
    """Storage backend for the response cache."""

    MEMORY = "memory"
    REDIS = "redis"


class Channel(str, Enum):
    """Output channel of the stream tag parser."""

    ANSWER = "answer"
    THOUGHT = "thought"


class ModelCapability(str, Enum):
    """Capabilities inferred from a model name."""

    GENERAL = "GENERAL"
    CODER = "CODER"
    VISION = "VISION"
    MATH = "MATH"
    EMBEDDING = "EMBEDDING"


class TaskStatus(str, Enum):
    """Status of a single agent plan step."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class LogLevel(str, Enum):
    """Level of a LogEvent delivered to log sink subscribers."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class MeshRole(str, Enum):
    """
    Role a model or mesh node plays, as shown in the mesh inventory.

    Derived from CODER_MODEL / CREATIVE_MODEL and from name heuristics.
    """

    GENERAL = "GENERAL"
    CODER = "CODER"
    CREATIVE = "CREATIVE"
