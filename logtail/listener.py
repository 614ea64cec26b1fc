"""Listener interface through which the watch manager hands out lines and lifecycle events."""

import logging
import threading

logger = logging.getLogger(__name__)


class UnsupportedFileError(Exception):
    """Raised from ``on_open`` when a file cannot be handled yet.

    The manager skips the file without remembering it, so it is tried
    again on the next watch cycle.
    """


class TailListener:
    """Receives callbacks from ``WatchManager``.

    Callbacks run on the manager's threads while its lock is held; they
    must return promptly and must not call back into the manager.
    """

    def on_open(self, path: str):
        pass

    def on_close(self, path: str):
        pass

    def on_rotate(self, path: str):
        pass

    def on_read(self, path: str, line: str):
        pass


class LoggingListener(TailListener):
    """Logs lifecycle events and counts lines per file."""

    def __init__(self, echo_lines: bool = False):
        self._echo_lines = echo_lines
        self._lock = threading.Lock()
        self._line_counts: dict[str, int] = {}

    def on_open(self, path: str):
        logger.info("Register file: %s", path)

    def on_close(self, path: str):
        logger.info("Unregister file: %s", path)

    def on_rotate(self, path: str):
        logger.info("Rotate file: %s", path)

    def on_read(self, path: str, line: str):
        with self._lock:
            self._line_counts[path] = self._line_counts.get(path, 0) + 1
        if self._echo_lines:
            logger.info("%s >>> %s", path, line)
        else:
            logger.debug("%s >>> %s", path, line)

    def line_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._line_counts)

    @property
    def total_lines(self) -> int:
        with self._lock:
            return sum(self._line_counts.values())
