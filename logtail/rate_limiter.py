"""Per-file line rate limiting over a rolling one-second window."""

import time
from collections import deque


class LineRateLimiter:
    """Sliding-window counter for a single tailed file.

    Remembers the acquisition times of the last ``max_lines`` lines. A new
    line is admitted only when fewer than ``max_lines`` acquisitions fall
    inside the trailing window, so no window of ``window_seconds`` ever
    sees more than ``max_lines`` lines.
    """

    def __init__(self, max_lines: int, window_seconds: float = 1.0, time_func=None):
        if max_lines <= 0:
            raise ValueError("max_lines must be positive")
        self._max_lines = max_lines
        self._window_seconds = window_seconds
        self._time_func = time_func or time.monotonic
        self._stamps: deque[float] = deque()

    def try_acquire(self) -> bool:
        """Return True if one more line may be emitted now, False if rate-limited."""
        now = self._time_func()
        while self._stamps and now - self._stamps[0] >= self._window_seconds:
            self._stamps.popleft()

        if len(self._stamps) >= self._max_lines:
            return False
        self._stamps.append(now)
        return True

    @property
    def max_lines(self) -> int:
        return self._max_lines
