"""
Cache for directory listings.

Caching is purely an optimization: if the backend is missing or unreachable, reads miss and writes are dropped.
"""

import logging
from typing import Protocol
from urllib.parse import quote

import redis.asyncio as aioredis
from redis.exceptions import RedisError

LISTING_TTL_SECONDS = 60 * 60  # 1 hour
CLEAR_BATCH_SIZE = 500


class Cache(Protocol):
    enabled: bool

    async def get(self, key: str) -> bytes | None: ...

    async def set(self, key: str, value: bytes, ttl: int = LISTING_TTL_SECONDS) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...

    async def close(self) -> None: ...


def listing_cache_key(bucket: str, prefix: str, cursor: str | None, limit: int | None) -> str:
    """
    Key under which one page of a listing is cached. Identical requests map to identical keys.
    Prefix and cursor are percent-encoded, so neither can contain the '@' or '+' separators.
    """
    return f"s3://{bucket}/{quote(prefix)}@{quote(cursor or '', safe='')}+{limit or 0}"


class NullCache:
    """Used when no cache is configured. Never stores anything."""

    enabled = False

    async def get(self, key: str) -> bytes | None:
        return None

    async def set(self, key: str, value: bytes, ttl: int = LISTING_TTL_SECONDS) -> None:
        pass

    async def delete(self, key: str) -> None:
        pass

    async def clear(self) -> None:
        pass

    async def close(self) -> None:
        pass


class RedisCache:
    """
    Cache backed by redis. All keys are stored under the given namespace,
    so clear() only removes entries written by this server.
    """

    enabled = True

    def __init__(self, client: aioredis.Redis, namespace: str):
        self._client = client
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str) -> "RedisCache":
        return cls(aioredis.Redis.from_url(url), namespace)

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> bytes | None:
        try:
            return await self._client.get(self._key(key))
        except (RedisError, OSError) as e:
            logging.warning(f"Cache get failed for {key}: {e}")
            return None

    async def set(self, key: str, value: bytes, ttl: int = LISTING_TTL_SECONDS) -> None:
        try:
            await self._client.set(self._key(key), value, ex=ttl)
        except (RedisError, OSError) as e:
            logging.warning(f"Cache set failed for {key}: {e}")

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._key(key))
        except (RedisError, OSError) as e:
            logging.warning(f"Cache delete failed for {key}: {e}")

    async def clear(self) -> None:
        try:
            batch: list[str] = []
            async for key in self._client.scan_iter(match=f"{self.namespace}:*", count=CLEAR_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= CLEAR_BATCH_SIZE:
                    await self._client.delete(*batch)
                    batch = []
            if batch:
                await self._client.delete(*batch)
        except (RedisError, OSError) as e:
            logging.warning(f"Cache clear failed for namespace {self.namespace}: {e}")

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except (RedisError, OSError) as e:
            logging.warning(f"Error closing cache connection: {e}")


def create_cache(redis_url: str | None, namespace: str) -> Cache:
    if not redis_url:
        logging.info("REDIS_URL is not defined. Redis caching will be disabled.")
        return NullCache()
    return RedisCache.from_url(redis_url, namespace)
