"""
Authcore Cache Manager
Redis key-value store used for short-lived secrets such as password reset tokens.
"""

from typing import Optional

import redis.asyncio as redis

from authcore.utils.errors import ServiceUnavailableError
from authcore.utils.logger import get_logger

logger = get_logger(__name__)


class CacheManager:
    """
    Thin async wrapper over a Redis connection.

    Values are stored as strings with an optional TTL in seconds.
    """

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.client: Optional[redis.Redis] = None
        self._connected = False

    async def connect(self) -> None:
        """Initialize Redis connection"""
        try:
            self.client = redis.from_url(
                self.redis_url, encoding="utf-8", decode_responses=True
            )
            await self.client.ping()
            self._connected = True
            logger.info("Connected to Redis")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            self._connected = False
            raise

    async def close(self) -> None:
        """Close Redis connection"""
        if self.client:
            await self.client.aclose()
            self._connected = False
            logger.info("Redis connection closed")

    async def health_check(self) -> bool:
        """
        Check if Redis connection is healthy.

        Returns:
            True if healthy, False otherwise
        """
        try:
            if not self.client:
                return False
            await self.client.ping()
            return True
        except Exception as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    def _require_client(self) -> redis.Redis:
        if self.client is None:
            raise ServiceUnavailableError("Cache")
        return self.client

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Store a value, expiring after ttl_seconds when given"""
        await self._require_client().set(key, value, ex=ttl_seconds)

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None"""
        return await self._require_client().get(key)

    async def delete(self, key: str) -> bool:
        """Remove a key; True if it existed"""
        removed = await self._require_client().delete(key)
        return removed > 0
