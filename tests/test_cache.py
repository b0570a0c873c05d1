from __future__ import annotations

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from voice_token_service.cache.token_cache import (
    MemoryTokenCache,
    RedisTokenCache,
    create_token_cache,
)
from voice_token_service.errors import CacheUnavailableError


class RecordingRedis:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.store: dict[str, str] = {}
        self.set_calls: list[tuple[str, str, int]] = []

    async def get(self, key: str) -> str | None:
        if self.fail:
            raise RedisConnectionError("Connection refused")
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int) -> bool:
        if self.fail:
            raise RedisConnectionError("Connection refused")
        self.set_calls.append((key, value, ex))
        self.store[key] = value
        return True

    async def ping(self) -> bool:
        if self.fail:
            raise RedisConnectionError("Connection refused")
        return True


@pytest.mark.asyncio
async def test_memory_entry_visible_for_full_ttl_then_expires(cache, clock) -> None:
    await cache.set("alice", "tok", 300)

    clock.advance(300)
    assert await cache.get("alice") == "tok"

    clock.advance(1)
    assert await cache.get("alice") is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_memory_set_overwrites_and_restarts_ttl(cache, clock) -> None:
    await cache.set("alice", "old", 300)
    clock.advance(200)
    await cache.set("alice", "new", 300)
    clock.advance(200)

    assert await cache.get("alice") == "new"
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_memory_rejects_non_positive_ttl(cache) -> None:
    with pytest.raises(ValueError):
        await cache.set("alice", "tok", 0)


@pytest.mark.asyncio
async def test_redis_cache_uses_prefixed_key_and_expiry() -> None:
    client = RecordingRedis()
    cache = RedisTokenCache(client, key_prefix="voice:")  # type: ignore[arg-type]

    await cache.set("alice", "tok", 300)

    assert client.set_calls == [("voice:alice", "tok", 300)]
    assert await cache.get("alice") == "tok"
    assert await cache.get("bob") is None


@pytest.mark.asyncio
async def test_redis_errors_surface_as_cache_unavailable() -> None:
    cache = RedisTokenCache(RecordingRedis(fail=True))  # type: ignore[arg-type]

    with pytest.raises(CacheUnavailableError):
        await cache.get("alice")
    with pytest.raises(CacheUnavailableError):
        await cache.set("alice", "tok", 300)
    assert await cache.ping() is False


def test_create_token_cache_selects_backend() -> None:
    assert isinstance(create_token_cache("memory://"), MemoryTokenCache)
    assert isinstance(create_token_cache("redis://localhost:6379/0"), RedisTokenCache)
