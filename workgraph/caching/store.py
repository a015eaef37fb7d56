"""Durable key/value tier for the item cache.

Values are JSON strings. Implementations raise on failure; CacheManager is
the layer that logs and swallows.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class DurableStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        pass

    @abstractmethod
    async def delete(self, *keys: str) -> None:
        pass

    async def close(self) -> None:
        return None


class RedisDurableStore(DurableStore):
    """Durable tier on Redis via redis.asyncio."""

    def __init__(self, url: Optional[str] = None, client=None):
        if client is None:
            if not url:
                raise ValueError("RedisDurableStore needs a REDIS_URL or a client")
            client = redis.from_url(url, decode_responses=True)
        self.client = client

    async def get(self, key: str) -> Optional[str]:
        value = await self.client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        await self.client.set(key, value, ex=ttl_seconds)

    async def delete(self, *keys: str) -> None:
        if keys:
            await self.client.delete(*keys)

    async def close(self) -> None:
        await self.client.aclose()
