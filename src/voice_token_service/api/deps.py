"""
voice_token_service.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Expose the app-scoped settings, token service, and rate limiter stored on app.state.
- Enforce the `/token` request budget per client IP.
"""

from __future__ import annotations

from fastapi import Depends, Request, Response

from voice_token_service.errors import RateLimitExceededError
from voice_token_service.observability.logging import get_logger
from voice_token_service.observability.middleware import client_ip
from voice_token_service.ratelimit import SlidingWindowRateLimiter
from voice_token_service.services.token_service import TokenService
from voice_token_service.settings import Settings

log = get_logger(__name__)


def settings_from_app(request: Request) -> Settings:
    # Settings passed to `create_app` win over the env-cached instance (tests rely on this).
    return request.app.state.settings  # type: ignore[attr-defined]


def token_service_from_app(request: Request) -> TokenService:
    # Built during app lifespan startup in `voice_token_service.api.app.create_app`.
    return request.app.state.token_service  # type: ignore[attr-defined]


def rate_limiter_from_app(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.rate_limiter  # type: ignore[attr-defined]


async def enforce_token_rate_limit(
    request: Request,
    response: Response,
    limiter: SlidingWindowRateLimiter = Depends(rate_limiter_from_app),
) -> None:
    decision = limiter.check(client_ip(request))
    if not decision.allowed:
        log.warning("rate_limited", retry_after_seconds=decision.retry_after_seconds)
        raise RateLimitExceededError(retry_after_seconds=decision.retry_after_seconds)
    response.headers["RateLimit-Limit"] = str(decision.limit)
    response.headers["RateLimit-Remaining"] = str(decision.remaining)
