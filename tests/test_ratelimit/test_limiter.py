"""Tests for agency_chat.ratelimit.limiter."""

from __future__ import annotations

import asyncio

import pytest

from agency_chat.protocols.ratelimit import RateLimiter
from agency_chat.ratelimit.limiter import SlidingWindowRateLimiter


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestAdmit:
    """Per-session window accounting."""

    def test_protocol_compliance(self) -> None:
        assert isinstance(SlidingWindowRateLimiter(), RateLimiter)

    def test_first_request_allowed(self) -> None:
        limiter = SlidingWindowRateLimiter(limit=3, window_seconds=60)
        decision = limiter.admit("s1")
        assert decision.allowed is True
        assert decision.remaining == 2

    def test_remaining_counts_down_then_blocks(self) -> None:
        limiter = SlidingWindowRateLimiter(limit=3, window_seconds=60, clock=FakeClock())
        remaining = [limiter.admit("s1").remaining for _ in range(3)]
        assert remaining == [2, 1, 0]
        blocked = limiter.admit("s1")
        assert blocked.allowed is False
        assert blocked.remaining == 0

    def test_blocked_request_does_not_consume(self) -> None:
        limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())
        limiter.admit("s1")
        limiter.admit("s1")
        limiter.admit("s1")
        entry = limiter.peek("s1")
        assert entry is not None
        assert entry.count == 1

    def test_sessions_are_independent(self) -> None:
        limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())
        assert limiter.admit("a").allowed
        assert not limiter.admit("a").allowed
        assert limiter.admit("b").allowed

    def test_window_resets_after_elapsed(self) -> None:
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(limit=2, window_seconds=60, clock=clock)
        limiter.admit("s1")
        limiter.admit("s1")
        assert not limiter.admit("s1").allowed
        clock.advance(61)
        decision = limiter.admit("s1")
        assert decision.allowed
        assert decision.remaining == 1

    def test_window_not_reset_at_exact_boundary(self) -> None:
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=clock)
        limiter.admit("s1")
        clock.advance(60)
        assert not limiter.admit("s1").allowed

    def test_default_limit_is_twenty_per_hour(self) -> None:
        limiter = SlidingWindowRateLimiter()
        assert limiter.limit == 20
        assert limiter.window_seconds == 3600

    @pytest.mark.parametrize("kwargs", [{"limit": 0}, {"window_seconds": 0}])
    def test_invalid_configuration(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(**kwargs)  # type: ignore[arg-type]


class TestSweep:
    """Removal of stale session entries."""

    def test_sweep_removes_entries_older_than_two_windows(self) -> None:
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(limit=5, window_seconds=10, clock=clock)
        limiter.admit("old")
        clock.advance(15)
        limiter.admit("recent")
        clock.advance(10)
        removed = limiter.sweep()
        assert removed == 1
        assert limiter.peek("old") is None
        assert limiter.peek("recent") is not None
        assert len(limiter) == 1

    def test_sweep_keeps_everything_when_fresh(self) -> None:
        limiter = SlidingWindowRateLimiter(limit=5, window_seconds=10, clock=FakeClock())
        limiter.admit("a")
        assert limiter.sweep() == 0
        assert len(limiter) == 1

    @pytest.mark.asyncio
    async def test_run_sweeper_sweeps_until_cancelled(self) -> None:
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(limit=5, window_seconds=10, clock=clock)
        limiter.admit("old")
        clock.advance(100)
        task = asyncio.create_task(limiter.run_sweeper(interval=0.01))
        for _ in range(50):
            await asyncio.sleep(0.01)
            if len(limiter) == 0:
                break
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(limiter) == 0

    def test_clear_and_repr(self) -> None:
        limiter = SlidingWindowRateLimiter(limit=5, window_seconds=10)
        limiter.admit("a")
        assert "sessions=1" in repr(limiter)
        limiter.clear()
        assert len(limiter) == 0
