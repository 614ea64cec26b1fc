"""Tests for the rate limiter module."""

import pytest
from logtail.rate_limiter import LineRateLimiter


class TestLineRateLimiter:
    def test_allows_up_to_max(self):
        limiter = LineRateLimiter(max_lines=3)
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is True

    def test_rejects_over_max(self):
        limiter = LineRateLimiter(max_lines=3)
        for _ in range(3):
            limiter.try_acquire()
        assert limiter.try_acquire() is False

    def test_window_slides(self):
        fake_time = [0.0]
        limiter = LineRateLimiter(max_lines=2, time_func=lambda: fake_time[0])
        assert limiter.try_acquire() is True
        fake_time[0] = 0.5
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is False

        # First stamp leaves the window, second is still inside
        fake_time[0] = 1.0
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is False

        fake_time[0] = 1.5
        assert limiter.try_acquire() is True

    def test_boundary_just_before_window(self):
        fake_time = [0.0]
        limiter = LineRateLimiter(max_lines=1, time_func=lambda: fake_time[0])
        assert limiter.try_acquire() is True

        fake_time[0] = 0.999
        assert limiter.try_acquire() is False

    def test_rejection_does_not_consume(self):
        fake_time = [0.0]
        limiter = LineRateLimiter(max_lines=1, time_func=lambda: fake_time[0])
        assert limiter.try_acquire() is True
        for _ in range(10):
            assert limiter.try_acquire() is False
        fake_time[0] = 1.0
        assert limiter.try_acquire() is True

    def test_never_exceeds_max_in_any_rolling_window(self):
        fake_time = [0.0]
        limiter = LineRateLimiter(max_lines=5, time_func=lambda: fake_time[0])
        granted = []
        # Ask every 10ms for 3 seconds
        for step in range(300):
            fake_time[0] = step * 0.01
            if limiter.try_acquire():
                granted.append(fake_time[0])

        for i, start in enumerate(granted):
            in_window = [t for t in granted[i:] if t - start < 1.0]
            assert len(in_window) <= 5
        assert len(granted) == 15

    def test_invalid_max(self):
        with pytest.raises(ValueError):
            LineRateLimiter(max_lines=0)
