"""
voice_token_service.ratelimit

Per-client request budget over a sliding time window.

Responsibilities:
- Track request timestamps per key (client IP) and reject once the window budget is spent.
- Report remaining budget and a retry hint for response headers.
"""

from __future__ import annotations

import math
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int = 0


class SlidingWindowRateLimiter:
    """
    In-process limiter. Each replica keeps its own counters, so a deployment with R
    replicas admits up to R * limit requests per client per window.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._events: dict[str, deque[float]] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._events)

    def check(self, key: str) -> RateLimitDecision:
        if self.limit <= 0:
            # Non-positive limit disables limiting.
            return RateLimitDecision(allowed=True, limit=self.limit, remaining=0)

        now = self._clock()
        window_start = now - self.window_seconds
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(window_start)
            self._last_sweep = now

        bucket = self._events.setdefault(key, deque())
        while bucket and bucket[0] <= window_start:
            bucket.popleft()

        if len(bucket) >= self.limit:
            retry_after = math.ceil(bucket[0] + self.window_seconds - now)
            return RateLimitDecision(
                allowed=False,
                limit=self.limit,
                remaining=0,
                retry_after_seconds=max(retry_after, 1),
            )

        bucket.append(now)
        return RateLimitDecision(allowed=True, limit=self.limit, remaining=self.limit - len(bucket))

    def reset(self) -> None:
        self._events.clear()

    def _sweep(self, window_start: float) -> None:
        # Drop clients whose newest request already left the window.
        idle = [key for key, bucket in self._events.items() if not bucket or bucket[-1] <= window_start]
        for key in idle:
            del self._events[key]


# --- Module Notes -----------------------------------------------------------
# Only `/token` is limited; the health probe must stay reachable for orchestrators.
