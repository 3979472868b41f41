"""
Streaming Inference Gateway for local LLM inference servers.

Turns a user message into a live, token-streamed response while:
- Routing across a mesh of inference nodes (explicit prefix or random offload)
- Failing over from a dead remote node to the local endpoint
- Splitting <think>...</think> reasoning traces out of the token stream
- Caching deterministic completions

Architecture: httpx async clients + structlog + pluggable cache (memory/Redis)
"""

__version__ = "0.1.0"
