"""
LLM client abstraction, streaming primitives and implementations.

Components:
- BaseLLMClient: Protocol adapter interface the orchestrator depends on
- OllamaClient: Implementation for the Ollama inference server
- RetryingTransport: Bounded exponential backoff for short calls
- StreamTagParser: Incremental <think>/</think> channel splitter
- budget_history: Context window budgeting
- PromptBuilder: Jinja2 prompt templates and request assembly
- ShortTaskRunner: Titles, summaries and agent plans
- text_utils: Token estimation and response cleanup
- exceptions: Gateway error taxonomy
"""

from inference_gateway.llm.base_client import BaseLLMClient
from inference_gateway.llm.context_budget import budget_history
from inference_gateway.llm.exceptions import (
    AuthenticationError,
    CacheCapacityError,
    GatewayError,
    GenerationCancelled,
    LLMConnectionError,
    LLMGenerationError,
    ModelNotFoundError,
    ProtocolParseError,
    TransientNetworkError,
)
from inference_gateway.llm.ollama_client import OllamaClient
from inference_gateway.llm.prompt_builder import PromptBuilder
from inference_gateway.llm.short_tasks import ShortTaskRunner
from inference_gateway.llm.stream_parser import Fragment, StreamTagParser
from inference_gateway.llm.text_utils import estimate_tokens
from inference_gateway.llm.transport import RetryingTransport

__all__ = [
    "BaseLLMClient",
    "OllamaClient",
    "RetryingTransport",
    "StreamTagParser",
    "Fragment",
    "budget_history",
    "PromptBuilder",
    "ShortTaskRunner",
    "estimate_tokens",
    "GatewayError",
    "LLMConnectionError",
    "TransientNetworkError",
    "LLMGenerationError",
    "ModelNotFoundError",
    "ProtocolParseError",
    "AuthenticationError",
    "GenerationCancelled",
    "CacheCapacityError",
]
