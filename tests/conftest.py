"""
tests.conftest

Shared fixtures: deterministic clocks, a recording signer stub, thread-backed worker pools,
and an in-process HTTP client bound to the app lifespan.
"""

from __future__ import annotations

import threading
from collections.abc import AsyncIterator, Callable, Iterator
from contextlib import asynccontextmanager

import httpx
import pytest
from fastapi import FastAPI

from voice_token_service.cache.token_cache import MemoryTokenCache
from voice_token_service.errors import CacheUnavailableError
from voice_token_service.settings import Settings
from voice_token_service.signing.pool import SigningWorkerPool, create_signing_pool
from voice_token_service.signing.protocol import SignRequest


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class BrokenCache:
    """
    Cache whose backend is down: every operation fails like an unreachable Redis.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def get(self, identity: str) -> str | None:
        self.calls.append("get")
        raise CacheUnavailableError("cache get failed: connection refused")

    async def set(self, identity: str, token: str, ttl_seconds: int) -> None:
        self.calls.append("set")
        raise CacheUnavailableError("cache set failed: connection refused")

    async def ping(self) -> bool:
        return False

    async def close(self) -> None:
        return None


class RecordingSigner:
    """
    Stands in for the Twilio signer. Thread-safe because thread workers call it concurrently.
    """

    def __init__(self, result: Callable[[SignRequest, int], str] | None = None) -> None:
        self._lock = threading.Lock()
        self._result = result or (lambda request, n: f"signed-{request.identity}-{n}")
        self.requests: list[SignRequest] = []
        self.threads: list[str] = []

    def __call__(self, request: SignRequest) -> str:
        with self._lock:
            self.requests.append(request)
            self.threads.append(threading.current_thread().name)
            n = len(self.requests)
        return self._result(request, n)

    @property
    def identities(self) -> list[str]:
        return [r.identity for r in self.requests]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def signer() -> RecordingSigner:
    return RecordingSigner()


@pytest.fixture
def make_signer() -> type[RecordingSigner]:
    return RecordingSigner


@pytest.fixture
def cache(clock: FakeClock) -> MemoryTokenCache:
    return MemoryTokenCache(clock=clock)


@pytest.fixture
def broken_cache() -> BrokenCache:
    return BrokenCache()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        env="test",
        worker_mode="thread",
        max_workers=2,
        sign_timeout_seconds=2.0,
        twilio_account_sid="AC" + "0" * 32,
        twilio_api_key="SK" + "0" * 32,
        twilio_api_secret="s" * 32,
        twilio_twiml_app_sid="AP" + "0" * 32,
    )


@pytest.fixture
def make_pool() -> Iterator[Callable[..., SigningWorkerPool]]:
    pools: list[SigningWorkerPool] = []

    def _make(signer: Callable[[SignRequest], str], *, size: int = 2, timeout: float = 2.0) -> SigningWorkerPool:
        pool = create_signing_pool(size=size, mode="thread", timeout_seconds=timeout, signer=signer)
        pool.start()
        pools.append(pool)
        return pool

    yield _make
    for pool in pools:
        pool.stop()


@pytest.fixture
def serve():
    @asynccontextmanager
    async def _serve(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
        # httpx ASGITransport does not run the lifespan; drive it explicitly.
        async with app.router.lifespan_context(app):
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
                yield client

    return _serve


# --- Module Notes -----------------------------------------------------------
# Tests never spawn processes except `test_pool.py::test_process_worker_signs_real_token`.
