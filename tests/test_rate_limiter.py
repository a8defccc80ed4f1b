"""
Unit tests for jobs/rate_limiter.py - rolling window limiter
"""
import pytest

from polylingo.jobs.rate_limiter import RateLimiter

from tests.helpers import VirtualClock


def make_limiter(clock: VirtualClock, max_requests: int = 3) -> RateLimiter:
    return RateLimiter(max_requests, window=60.0, buffer=0.1, clock=clock, sleep=clock.sleep)


class TestRateLimiter:

    @pytest.mark.asyncio
    async def test_calls_below_limit_do_not_wait(self, clock):
        limiter = make_limiter(clock)
        for _ in range(3):
            await limiter.acquire()
        assert clock.sleeps == []
        assert limiter.pending_calls() == 3

    @pytest.mark.asyncio
    async def test_call_over_limit_waits_for_oldest_to_expire(self, clock):
        limiter = make_limiter(clock)
        for _ in range(3):
            await limiter.acquire()

        await limiter.acquire()

        assert clock.sleeps == [pytest.approx(60.1)]
        assert clock.now == pytest.approx(60.1)
        assert limiter.pending_calls() == 1

    @pytest.mark.asyncio
    async def test_window_is_rolling(self, clock):
        """Only calls inside the trailing window count, not calls since a calendar minute."""
        limiter = make_limiter(clock)
        for at in (0.0, 30.0, 45.0):
            clock.now = at
            await limiter.acquire()

        clock.now = 50.0
        await limiter.acquire()
        # waits for the call at t=0 to leave the window
        assert clock.now == pytest.approx(60.1)

        await limiter.acquire()
        # now the call at t=30 has to leave
        assert clock.now == pytest.approx(90.1)

    @pytest.mark.asyncio
    async def test_never_more_than_limit_in_any_window(self, clock):
        limiter = make_limiter(clock, max_requests=4)
        granted = []
        for _ in range(20):
            await limiter.acquire()
            granted.append(clock.now)

        for i in range(len(granted) - 4):
            assert granted[i + 4] - granted[i] >= 60.0

    def test_pending_calls_prunes_expired(self, clock):
        limiter = make_limiter(clock)
        limiter._timestamps.extend([0.0, 10.0])
        clock.now = 65.0
        assert limiter.pending_calls() == 1

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            RateLimiter(0)
