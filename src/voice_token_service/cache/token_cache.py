"""
voice_token_service.cache.token_cache

Identity → token cache with a fixed expiry per entry.

Responsibilities:
- Redis-backed cache (`GET key`, `SET key value EX seconds`) for deployments.
- Process-local in-memory cache with an injectable clock for tests/local runs.
- Wrap every backend failure in `CacheUnavailableError` so callers handle one error type.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from voice_token_service.errors import CacheUnavailableError
from voice_token_service.observability.logging import get_logger

log = get_logger(__name__)

MEMORY_SCHEME = "memory://"


class TokenCache(Protocol):
    async def get(self, identity: str) -> str | None: ...

    async def set(self, identity: str, token: str, ttl_seconds: int) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisTokenCache:
    def __init__(self, client: Redis, *, key_prefix: str = "") -> None:
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, *, key_prefix: str = "") -> RedisTokenCache:
        # Connections are opened lazily; a down Redis only fails the requests that need it.
        client = Redis.from_url(url, decode_responses=True)
        return cls(client, key_prefix=key_prefix)

    def _key(self, identity: str) -> str:
        return f"{self._key_prefix}{identity}"

    async def get(self, identity: str) -> str | None:
        try:
            return await self._client.get(self._key(identity))
        except (RedisError, OSError) as e:
            raise CacheUnavailableError(f"cache get failed: {e}") from e

    async def set(self, identity: str, token: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(self._key(identity), token, ex=ttl_seconds)
        except (RedisError, OSError) as e:
            raise CacheUnavailableError(f"cache set failed: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError):
            return False

    async def close(self) -> None:
        await self._client.aclose()


class MemoryTokenCache:
    """
    Same contract as Redis for a single process. Expired entries are dropped on read.
    """

    def __init__(self, *, key_prefix: str = "", clock: Callable[[], float] = time.monotonic) -> None:
        self._key_prefix = key_prefix
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    def _key(self, identity: str) -> str:
        return f"{self._key_prefix}{identity}"

    async def get(self, identity: str) -> str | None:
        key = self._key(identity)
        entry = self._entries.get(key)
        if entry is None:
            return None
        token, expires_at = entry
        if self._clock() > expires_at:
            del self._entries[key]
            return None
        return token

    async def set(self, identity: str, token: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._entries[self._key(identity)] = (token, self._clock() + ttl_seconds)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def create_token_cache(url: str, *, key_prefix: str = "") -> TokenCache:
    if url.startswith(MEMORY_SCHEME):
        log.info("token_cache_backend", backend="memory")
        return MemoryTokenCache(key_prefix=key_prefix)
    log.info("token_cache_backend", backend="redis")
    return RedisTokenCache.from_url(url, key_prefix=key_prefix)


# --- Module Notes -----------------------------------------------------------
# Entries are only ever overwritten or expired; there is no delete path.
