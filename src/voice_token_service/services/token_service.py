"""
voice_token_service.services.token_service

Token issuance use case: cache lookup, signing on miss, cache population.

Responsibilities:
- Serve a cached token when one is live for the identity (the signer is not called).
- Dispatch a sign request to the worker pool on a miss and cache the result.
- Derive the cache TTL, capped by the token's own expiry.
- Apply the configured cache failure policy (fail the request, or degrade to signing fresh).
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

import jwt

from voice_token_service.cache.token_cache import TokenCache
from voice_token_service.errors import CacheUnavailableError, SigningFailedError
from voice_token_service.observability.logging import get_logger
from voice_token_service.settings import Settings
from voice_token_service.signing.pool import SigningWorkerPool

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TokenIssue:
    token: str
    identity: str
    cached: bool


class TokenService:
    def __init__(
        self,
        *,
        settings: Settings,
        cache: TokenCache,
        pool: SigningWorkerPool,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._cache = cache
        self._pool = pool
        self._clock = clock

    @property
    def degrade_on_cache_failure(self) -> bool:
        return self._settings.cache_failure_mode == "degrade"

    async def issue(self, *, identity: str) -> TokenIssue:
        cached = await self._cache_get(identity)
        if cached:
            log.info("token_cache_hit", identity=identity)
            return TokenIssue(token=cached, identity=identity, cached=True)

        token = await self._pool.dispatch(
            identity=identity,
            credentials=self._settings.signing_credentials(),
            ttl_seconds=self._settings.grant_ttl_seconds,
        )
        if not token:
            # Nothing is cached for a failed signing.
            raise SigningFailedError(f"signing failed for identity {identity!r}")

        ttl = self.cache_ttl_for(token)
        if ttl > 0:
            await self._cache_set(identity, token, ttl)
        else:
            log.warning("token_not_cached", identity=identity, reason="expires_within_skew")
        log.info("token_signed", identity=identity, cache_ttl_seconds=ttl)
        return TokenIssue(token=token, identity=identity, cached=False)

    def cache_ttl_for(self, token: str) -> int:
        """
        Cache lifetime for a freshly signed token.

        The configured TTL is the ceiling. When alignment is on and the token carries an
        `exp` claim, the entry must also expire `expiry_skew_seconds` before the token does.
        A result <= 0 means the token should not be cached at all.
        """

        ttl = self._settings.token_cache_ttl_seconds
        if not self._settings.align_cache_ttl_with_token:
            return ttl
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            return ttl
        exp = claims.get("exp")
        if not isinstance(exp, (int, float)):
            return ttl
        remaining = int(exp - self._clock()) - self._settings.expiry_skew_seconds
        return min(ttl, remaining)

    async def _cache_get(self, identity: str) -> str | None:
        try:
            return await self._cache.get(identity)
        except CacheUnavailableError as e:
            if not self.degrade_on_cache_failure:
                raise
            log.warning("token_cache_error", op="get", error=str(e))
            return None

    async def _cache_set(self, identity: str, token: str, ttl: int) -> None:
        try:
            await self._cache.set(identity, token, ttl)
        except CacheUnavailableError as e:
            if not self.degrade_on_cache_failure:
                raise
            log.warning("token_cache_error", op="set", error=str(e))


# --- Module Notes -----------------------------------------------------------
# Two concurrent misses for one identity both sign and both write; last write wins.
