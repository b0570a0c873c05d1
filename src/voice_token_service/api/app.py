"""
voice_token_service.api.app

FastAPI app factory for the voice token service.

Responsibilities:
- Build the FastAPI application and register routers, middleware, and error handlers.
- Start and stop shared infrastructure (signing worker pool, token cache) in the lifespan.
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voice_token_service import __version__
from voice_token_service.api.routers.health import router as health_router
from voice_token_service.api.routers.token import router as token_router
from voice_token_service.cache.token_cache import TokenCache, create_token_cache
from voice_token_service.errors import register_error_handlers
from voice_token_service.observability.logging import configure_logging, get_logger
from voice_token_service.observability.middleware import (
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)
from voice_token_service.ratelimit import SlidingWindowRateLimiter
from voice_token_service.services.token_service import TokenService
from voice_token_service.settings import Settings
from voice_token_service.signing.pool import SigningWorkerPool, create_signing_pool

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    token_cache: TokenCache | None = None,
    pool: SigningWorkerPool | None = None,
) -> FastAPI:
    """
    `token_cache` and `pool` are injectable for tests; when omitted they are built from
    settings at startup and owned (closed/stopped) by the app.
    """

    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json_logs=settings.env != "dev",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, port=settings.port)
        owned_cache = token_cache is None
        owned_pool = pool is None
        signing_pool = (
            pool
            if pool is not None
            else create_signing_pool(
                size=settings.max_workers,
                mode=settings.worker_mode,
                timeout_seconds=settings.sign_timeout_seconds,
            )
        )
        # A pool that cannot boot aborts startup; the cache is built only after it is up.
        signing_pool.start()
        cache = (
            token_cache
            if token_cache is not None
            else create_token_cache(settings.redis_url, key_prefix=settings.cache_key_prefix)
        )
        if not await cache.ping():
            # Not fatal: requests that need the cache fail (or degrade) individually.
            log.warning("token_cache_unreachable")

        app.state.token_cache = cache
        app.state.signing_pool = signing_pool
        app.state.token_service = TokenService(settings=settings, cache=cache, pool=signing_pool)
        try:
            yield
        finally:
            if owned_pool:
                signing_pool.stop()
            if owned_cache:
                await cache.close()
            log.info("shutdown")

    app = FastAPI(
        title="Voice Token Service",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiter = SlidingWindowRateLimiter(
        limit=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )

    # Last added runs first: request context wraps everything, including CORS preflights.
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    register_error_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(token_router)

    return app


# --- Module Notes -----------------------------------------------------------
# Business logic stays in `services.token_service`; this file only wires things together.
