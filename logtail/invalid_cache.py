"""Short-lived memory of files that failed to open, so they are not retried every cycle."""

import time
from collections import OrderedDict


class InvalidFileCache:
    def __init__(self, ttl_seconds: float = 3600.0, max_size: int = 1024, time_func=None):
        self._ttl_seconds = ttl_seconds
        self._max_size = max_size
        self._time_func = time_func or time.time
        self._entries: OrderedDict[str, float] = OrderedDict()

    def add(self, path: str):
        """Record a failure for ``path``, evicting the oldest entry if at capacity."""
        self._entries.pop(path, None)
        self._entries[path] = self._time_func()
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    def __contains__(self, path: str) -> bool:
        failed_at = self._entries.get(path)
        if failed_at is None:
            return False
        if self._time_func() - failed_at >= self._ttl_seconds:
            del self._entries[path]
            return False
        return True

    def purge(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._time_func()
        expired = [p for p, t in self._entries.items() if now - t >= self._ttl_seconds]
        for path in expired:
            del self._entries[path]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
