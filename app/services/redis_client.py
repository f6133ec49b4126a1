"""Redis client for caching."""
import json
import logging
from typing import Any, Optional

from redis import asyncio as aioredis

from app.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis client wrapper with caching utilities.

    Every operation degrades to a miss on connection problems so callers
    never have to care whether Redis is running.
    """

    def __init__(self):
        self.client = aioredis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password,
            decode_responses=True,
        )

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        try:
            value = await self.client.get(key)
            if value:
                return json.loads(value)
            return None
        except Exception as e:
            logger.warning(f"Redis GET error: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with optional TTL."""
        try:
            serialized = json.dumps(value)
            if ttl:
                await self.client.setex(key, ttl, serialized)
            else:
                await self.client.set(key, serialized)
            return True
        except Exception as e:
            logger.warning(f"Redis SET error: {e}")
            return False

    async def close(self) -> None:
        """Close the connection pool."""
        try:
            await self.client.aclose()
        except Exception as e:
            logger.warning(f"Redis close error: {e}")


# Global Redis client instance
redis_client = RedisClient()
