"""
Content-addressed response cache.

Keys are ``gateway_cache_<sha256>`` over (model, prompt, options projection).
Values are complete response strings: a key is either absent or holds a
finished response, never a partial one.

Caching is an optimization, never a correctness requirement, so ``put``
never raises: on capacity overflow it purges every gateway-owned entry and
retries once; if that also fails (or anything else goes wrong) the write is
dropped and logged.
"""

import hashlib
import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import structlog
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError, ResponseError

from inference_gateway.config import Settings
from inference_gateway.llm.exceptions import CacheCapacityError
from inference_gateway.models.enums import CacheBackend

logger = structlog.get_logger(__name__)

CACHE_PREFIX = "gateway_cache_"


def make_cache_key(model: str, prompt: str, options: Optional[Dict[str, Any]] = None) -> str:
    """
    Deterministic cache key.

    Options are serialized with sorted keys so dict ordering never changes
    the key.
    """
    data = json.dumps(
        {"model": model, "prompt": prompt, "options": options or {}},
        sort_keys=True,
        ensure_ascii=False,
    )
    return CACHE_PREFIX + hashlib.sha256(data.encode("utf-8")).hexdigest()


class CacheStore(ABC):
    """
    Base class for response cache backends.

    Subclasses implement ``get``, ``_write`` and ``purge``; ``put`` holds the
    shared overflow policy.
    """

    make_key = staticmethod(make_cache_key)

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored completion, or None (also on backend errors)."""

    @abstractmethod
    async def _write(self, key: str, value: str) -> None:
        """Store a value; raise CacheCapacityError when it does not fit."""

    @abstractmethod
    async def purge(self) -> int:
        """Remove every gateway-owned entry; return how many were removed."""

    async def put(self, key: str, value: str) -> bool:
        """
        Store a completion. Never raises.

        Returns:
            True if the value was stored
        """
        try:
            await self._write(key, value)
            return True
        except CacheCapacityError:
            logger.warning("Cache full, clearing old entries", source="Cache")
        except Exception as e:
            logger.error("Cache write failed", source="Cache", error=str(e))
            return False

        try:
            await self.purge()
            await self._write(key, value)
            return True
        except Exception as e:
            logger.warning("Cache write dropped after purge", source="Cache", error=str(e), size=len(value))
            return False

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryCacheStore(CacheStore):
    """
    Process-local cache bounded by total stored characters.

    A lock guards the dict so concurrent writers never corrupt it;
    concurrent writes to one key are last-write-wins.
    """

    def __init__(self, capacity_chars: int = 5_000_000):
        self.capacity_chars = capacity_chars
        self._entries: Dict[str, str] = {}
        self._size = 0
        self._lock = threading.Lock()

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._entries.get(key)

    async def _write(self, key: str, value: str) -> None:
        with self._lock:
            previous = len(self._entries.get(key, ""))
            new_size = self._size - previous + len(value)
            if new_size > self.capacity_chars:
                raise CacheCapacityError(
                    "Cache capacity exceeded",
                    details={"capacity": self.capacity_chars, "requested": len(value)},
                )
            self._entries[key] = value
            self._size = new_size

    async def purge(self) -> int:
        with self._lock:
            owned = [k for k in self._entries if k.startswith(CACHE_PREFIX)]
            for k in owned:
                self._size -= len(self._entries.pop(k))
            return len(owned)

    def __len__(self) -> int:
        return len(self._entries)


class RedisCacheStore(CacheStore):
    """
    Redis-backed cache shared between gateway processes.

    Entries expire after ``ttl_seconds``. A Redis OOM response is treated
    as a capacity overflow.
    """

    def __init__(self, redis: AsyncRedis, ttl_seconds: int = 3600):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(key)
        except RedisError as e:
            logger.warning("Cache read failed", source="Cache", error=str(e))
            return None

    async def _write(self, key: str, value: str) -> None:
        try:
            await self.redis.setex(name=key, time=self.ttl_seconds, value=value)
        except ResponseError as e:
            if "OOM" in str(e):
                raise CacheCapacityError("Redis out of memory", details={"error": str(e)}) from e
            raise

    async def purge(self) -> int:
        removed = 0
        async for key in self.redis.scan_iter(match=f"{CACHE_PREFIX}*"):
            removed += await self.redis.delete(key)
        return removed

    async def close(self) -> None:
        await self.redis.aclose()


def build_cache_store(settings: Settings, redis: Optional[AsyncRedis] = None) -> CacheStore:
    """Create the configured cache backend."""
    if settings.CACHE_BACKEND == CacheBackend.REDIS:
        if redis is None:
            raise ValueError("Redis cache backend requires a Redis client")
        return RedisCacheStore(redis, ttl_seconds=settings.CACHE_TTL_SECONDS)
    return InMemoryCacheStore(capacity_chars=settings.CACHE_CAPACITY_CHARS)
