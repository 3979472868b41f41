"""
Configuration settings for the Streaming Inference Gateway.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development. REMOTE_NODES is read as a JSON list:

    REMOTE_NODES='[{"id": "n1", "name": "studio", "url": "http://mac-studio.local:11434"}]'
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

from inference_gateway.models.enums import CacheBackend, LoadBalancingMode
from inference_gateway.models.chat_models import NodeDescriptor


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Streaming Inference Gateway"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # === Ollama Configuration ===
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    MODEL_NAME: str = "llama3.1:8b"
    REQUEST_TIMEOUT: float = 300.0  # seconds, streaming reads can be long

    # === Generation Parameters ===
    CONTEXT_WINDOW: int = 4096
    TEMPERATURE: float = 0.7
    REPEAT_PENALTY: float = 1.1
    SYSTEM_PROMPT: str = "You are a helpful, concise assistant."
    CONTEXT_SAFETY_MARGIN: int = 400  # tokens reserved for the model's answer

    # === Mesh / Routing ===
    REMOTE_NODES: list[NodeDescriptor] = []
    LOAD_BALANCING: LoadBalancingMode = LoadBalancingMode.ROUND_ROBIN
    OFFLOAD_PROBABILITY: float = 0.3
    DISCOVERY_TIMEOUT: float = 2.5  # seconds per probe
    CODER_MODEL: Optional[str] = None
    CREATIVE_MODEL: Optional[str] = None

    # === Retry (short, non-streaming calls only) ===
    MAX_RETRIES: int = 2
    INITIAL_BACKOFF: float = 0.5  # seconds, doubled on every attempt

    # === Response Cache ===
    CACHE_ENABLED: bool = True
    CACHE_BACKEND: CacheBackend = CacheBackend.MEMORY
    CACHE_CAPACITY_CHARS: int = 5_000_000
    CACHE_TTL_SECONDS: int = 3600
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 20

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True
