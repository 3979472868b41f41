"""
Response cache persistence.

- cache_store.py: CacheStore interface, in-memory and Redis backends
- redis_client.py: Instance-owned Redis connection pooling

Storage Strategy:
- Key: "gateway_cache_" + sha256(model, prompt, options projection)
- Value: complete response text, never partial
- Overflow: purge all gateway-owned entries, retry the write once, else drop
"""

from inference_gateway.persistence.cache_store import (
    CACHE_PREFIX,
    CacheStore,
    InMemoryCacheStore,
    RedisCacheStore,
    build_cache_store,
    make_cache_key,
)
from inference_gateway.persistence.redis_client import RedisClient

__all__ = [
    "CACHE_PREFIX",
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "RedisClient",
    "build_cache_store",
    "make_cache_key",
]
