from __future__ import annotations

import inspect

from voice_token_service.api.deps import enforce_token_rate_limit
from voice_token_service.ratelimit import SlidingWindowRateLimiter


def test_budget_is_per_key_and_window(clock) -> None:
    limiter = SlidingWindowRateLimiter(limit=3, window_seconds=900, clock=clock)

    decisions = [limiter.check("10.0.0.1") for _ in range(4)]

    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions] == [2, 1, 0, 0]
    assert decisions[-1].retry_after_seconds == 900
    assert limiter.check("10.0.0.2").allowed


def test_window_slides(clock) -> None:
    limiter = SlidingWindowRateLimiter(limit=2, window_seconds=60, clock=clock)
    limiter.check("ip")
    clock.advance(30)
    limiter.check("ip")

    assert not limiter.check("ip").allowed
    clock.advance(30)
    # The first request has left the window; the second still counts.
    assert limiter.check("ip").allowed
    assert not limiter.check("ip").allowed


def test_non_positive_limit_disables_limiting(clock) -> None:
    limiter = SlidingWindowRateLimiter(limit=0, window_seconds=60, clock=clock)

    assert all(limiter.check("ip").allowed for _ in range(1_000))


def test_idle_clients_are_evicted_after_the_window(clock) -> None:
    limiter = SlidingWindowRateLimiter(limit=5, window_seconds=60, clock=clock)
    for i in range(1_000):
        limiter.check(f"10.0.{i // 256}.{i % 256}")
    assert len(limiter) == 1_000

    clock.advance(61)
    limiter.check("10.9.9.9")

    assert len(limiter) == 1


def test_active_client_survives_eviction(clock) -> None:
    limiter = SlidingWindowRateLimiter(limit=2, window_seconds=60, clock=clock)
    limiter.check("idle")
    clock.advance(30)
    limiter.check("busy")
    clock.advance(31)

    limiter.check("new")

    assert len(limiter) == 2
    assert limiter.check("busy").remaining == 0


def test_rate_limit_dependency_runs_on_the_event_loop() -> None:
    # A sync dependency would run in the threadpool and race on the shared counters.
    assert inspect.iscoroutinefunction(enforce_token_rate_limit)
