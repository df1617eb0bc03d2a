"""
Key/value backing for drafts, availability snapshots, history and addresses.

Only get/set/delete with a per-key TTL are used, so any Redis-compatible
server works.
"""

from __future__ import annotations

import logging
from typing import Protocol

import redis.asyncio as aioredis
from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class RedisKeyValueStore:
    """KeyValueStore on top of redis.asyncio with a lazily opened connection."""

    def __init__(self, url: str):
        self.url = url
        self._client: Redis | None = None

    async def connect(self) -> Redis:
        if self._client is None:
            self._client = aioredis.from_url(
                self.url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
            )
            logger.info("Connected to redis at %s", self.url)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    async def get(self, key: str) -> str | None:
        client = await self.connect()
        return await client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        client = await self.connect()
        await client.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        client = await self.connect()
        await client.delete(key)
