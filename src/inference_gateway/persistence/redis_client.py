"""
Redis client with connection pooling for the response cache.

Uses redis-py asyncio with a connection pool owned by a RedisClient
instance (created at startup, closed at shutdown) rather than a
process-wide singleton.
"""

from typing import Optional

import structlog
from redis.asyncio import ConnectionPool as AsyncConnectionPool
from redis.asyncio import Redis as AsyncRedis

from inference_gateway.config import Settings

logger = structlog.get_logger(__name__)


class RedisClient:
    """
    Owner of an async Redis connection pool.

    Usage:
        redis_client = RedisClient(settings)
        redis = redis_client.get_async_client()
        ...
        await redis_client.close()
    """

    def __init__(self, settings: Settings):
        self.url = settings.REDIS_URL
        self.max_connections = settings.REDIS_MAX_CONNECTIONS
        self._pool: Optional[AsyncConnectionPool] = None

    def get_async_client(self) -> AsyncRedis:
        """
        Get asynchronous Redis client backed by this instance's pool.

        Returns:
            AsyncRedis client instance
        """
        if self._pool is None:
            self._pool = AsyncConnectionPool.from_url(
                self.url,
                max_connections=self.max_connections,
                decode_responses=True,  # Auto-decode bytes to str
                socket_timeout=5,
                socket_connect_timeout=5,
                retry_on_timeout=True,
            )
            logger.info("Initialized Redis async connection pool", source="Cache")

        return AsyncRedis(connection_pool=self._pool)

    async def close(self):
        """Close the connection pool (cleanup on shutdown)."""
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
            logger.info("Closed Redis async connection pool", source="Cache")
