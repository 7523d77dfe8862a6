"""
Tests for the fixed-window rate limiter.
"""

import pytest

from utm_service.cache import CacheRegion
from utm_service.rate_limiter import RateLimiter


class TestRateLimiter:
    """Test trial counting and window handling."""

    @pytest.fixture
    def cache(self, clock):
        return CacheRegion("ratelimit", clock=clock)

    @pytest.fixture
    def limiter(self, cache, clock):
        return RateLimiter(cache, enabled=True, window_minutes=10, trials=5, clock=clock)

    def test_disabled_always_allows(self, cache, clock):
        """Test that a disabled limiter never blocks or records."""
        limiter = RateLimiter(cache, enabled=False, trials=1, clock=clock)
        for _ in range(10):
            assert limiter.allow("hash")
        assert cache.get("hash") is None

    def test_exactly_threshold_visits_allowed(self, limiter):
        """Test that trials=5 allows five visits and blocks the sixth."""
        results = [limiter.allow("hash") for _ in range(6)]
        assert results == [True, True, True, True, True, False]

    def test_first_visit_opens_window(self, limiter, cache, clock):
        """Test the record created by the first visit."""
        limiter.allow("hash")
        assert cache.get("hash") == {"time": clock.now, "trials": 1}

    def test_blocked_visit_does_not_mutate(self, limiter, cache):
        """Test that a denied visit leaves the record unchanged."""
        for _ in range(5):
            limiter.allow("hash")
        before = cache.get("hash")

        assert not limiter.allow("hash")
        assert cache.get("hash") == before

    def test_window_reset(self, limiter, clock):
        """Test that the counter restarts once the window has elapsed."""
        for _ in range(5):
            assert limiter.allow("hash")
        assert not limiter.allow("hash")

        clock.advance(10 * 60)

        assert limiter.allow("hash")

    def test_window_start_is_kept_while_counting(self, limiter, cache, clock):
        """Test that later visits do not move the window start."""
        start = clock.now
        limiter.allow("hash")
        clock.advance(120)
        limiter.allow("hash")

        assert cache.get("hash") == {"time": start, "trials": 2}

    def test_visitors_are_independent(self, limiter):
        """Test that one exhausted visitor does not affect another."""
        for _ in range(5):
            limiter.allow("first")
        assert not limiter.allow("first")
        assert limiter.allow("second")
