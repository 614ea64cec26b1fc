"""Tailer: incremental, rate-limited line reader for one log file.

Handles:
- Lines straddling read-buffer boundaries and lines appended mid-way
  between calls (partial lines are kept until their newline arrives)
- CRLF line endings
- Log rotation (identity change) and truncation (cursor past end of file)

How the OS handle is held between calls is delegated to a small handle
strategy, so the read and rotation logic exists once for every platform.
"""

import logging
import os
from contextlib import contextmanager

from logtail.rate_limiter import LineRateLimiter

logger = logging.getLogger(__name__)

BYTE_NL = b"\n"
BYTE_CR = b"\r"


class FileHandle:
    """Owns the OS-level file object of one tailer."""

    def __init__(self):
        self._file = None

    def open(self, path: str):
        """Open ``path`` for binary reading, replacing any previous handle."""
        self.close()
        self._file = open(path, "rb", buffering=0)
        return self._file

    def acquire(self, path: str, offset: int):
        raise NotImplementedError

    def release(self):
        raise NotImplementedError

    def close(self):
        if self._file is not None:
            try:
                self._file.close()
            finally:
                self._file = None

    @property
    def is_open(self) -> bool:
        return self._file is not None


class HoldOpenHandle(FileHandle):
    """Keeps the handle for the tailer's whole life.

    An unlinked file stays readable through the open handle, which is what
    lets the last lines of a rotated-away file still be drained on POSIX.
    """

    def acquire(self, path: str, offset: int):
        if self._file is None:
            raise OSError(f"File handle already closed: {path}")
        return self._file

    def release(self):
        pass


class ReopenHandle(FileHandle):
    """Opens and seeks before every call, closes right after.

    Platforms that lock open files would otherwise block the log writer
    from renaming or deleting the file during rotation.
    """

    def acquire(self, path: str, offset: int):
        f = self.open(path)
        f.seek(offset)
        return f

    def release(self):
        self.close()


def default_handle_strategy() -> type[FileHandle]:
    """Pick the handle strategy for the running platform."""
    if os.name == "nt":
        return ReopenHandle
    return HoldOpenHandle


def file_identity(st: os.stat_result) -> tuple[int, int]:
    return st.st_dev, st.st_ino


class Tailer:
    def __init__(
        self,
        path: str,
        seek_to_end: bool,
        batch_size: int,
        buffer_size: int,
        lines_per_second: int,
        handle_strategy: type[FileHandle] | None = None,
        time_func=None,
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        if lines_per_second <= 0:
            raise ValueError("lines_per_second must be positive")

        self.path = path
        self._batch_size = batch_size
        self._buffer_size = buffer_size
        self._read_buffer = bytearray(buffer_size)
        self._read_view = memoryview(self._read_buffer)
        self._buffer_pos = 0
        self._buffer_cap = 0
        self._line_buffer = bytearray()
        self._pending: str | None = None
        self._limiter = LineRateLimiter(lines_per_second, time_func=time_func)
        self._handle = (handle_strategy or default_handle_strategy())()
        self._offset = 0
        self._identity: tuple[int, int] | None = None
        self._last_modified = 0.0
        self._closed = False

        self._open_file(seek_to_end)

    def _open_file(self, seek_to_end: bool):
        """Open the file, record its identity and position the cursor."""
        try:
            f = self._handle.open(self.path)
            st = os.fstat(f.fileno())
            self._identity = file_identity(st)
            self._offset = st.st_size if seek_to_end else 0
            f.seek(self._offset)
            self._last_modified = st.st_mtime
        except Exception:
            self._handle.close()
            raise
        self._handle.release()
        logger.debug("Opened %s (identity=%s, offset=%d)", self.path, self._identity, self._offset)

    @contextmanager
    def _held_file(self):
        f = self._handle.acquire(self.path, self._offset)
        try:
            yield f
        finally:
            self._handle.release()

    def read_lines(self) -> list[str]:
        """Return up to ``batch_size`` complete lines appended since the last call.

        Stops early at end of file or when the rate limiter refuses a line.
        A refused line is kept and returned first by a later call.
        """
        lines: list[str] = []
        with self._held_file() as f:
            while len(lines) < self._batch_size:
                if self._pending is None:
                    self._pending = self._read_line(f)
                    if self._pending is None:
                        break
                if not self._limiter.try_acquire():
                    logger.debug("Read rate limit reached: %s", self.path)
                    break
                lines.append(self._pending)
                self._pending = None
        return lines

    def _read_line(self, f) -> str | None:
        while True:
            if self._buffer_pos >= self._buffer_cap:
                n = f.readinto(self._read_view)
                if not n:
                    return None
                self._offset += n
                self._buffer_pos = 0
                self._buffer_cap = n

            idx = self._read_buffer.find(BYTE_NL, self._buffer_pos, self._buffer_cap)
            if idx == -1:
                self._line_buffer += self._read_view[self._buffer_pos:self._buffer_cap]
                self._buffer_pos = self._buffer_cap
                continue

            self._line_buffer += self._read_view[self._buffer_pos:idx]
            self._buffer_pos = idx + 1
            return self._build_line()

    def _build_line(self) -> str:
        end = len(self._line_buffer)
        if self._line_buffer.endswith(BYTE_CR):
            end -= 1
        line = self._line_buffer[:end].decode("utf-8", errors="replace")

        # Drop capacity grown by an oversized line
        if len(self._line_buffer) > self._buffer_size:
            self._line_buffer = bytearray()
        else:
            self._line_buffer.clear()
        return line

    def rotated(self) -> bool:
        """True if the path now names another file, or the file shrank below our cursor."""
        try:
            with self._held_file() as f:
                if file_identity(os.stat(self.path)) != self._identity:
                    logger.info("%s changed", self.path)
                    return True
                if self._offset > os.fstat(f.fileno()).st_size:
                    logger.info("%s truncated", self.path)
                    return True
        except OSError as e:
            logger.error("Rotation check failed for %s: %s", self.path, e)
        return False

    def drained(self) -> bool:
        """True when everything written to the file so far has been returned."""
        if self._pending is not None or self._buffer_pos < self._buffer_cap:
            return False
        try:
            with self._held_file() as f:
                return self._offset >= os.fstat(f.fileno()).st_size
        except OSError as e:
            logger.error("Drain check failed for %s: %s", self.path, e)
            return True

    def last_modified(self) -> float:
        try:
            self._last_modified = max(self._last_modified, os.stat(self.path).st_mtime)
        except OSError as e:
            logger.debug("Cannot stat %s, keeping last mtime: %s", self.path, e)
        return self._last_modified

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def identity(self) -> tuple[int, int] | None:
        return self._identity

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        self._closed = True
        self._handle.close()

    def __repr__(self):
        return (f"Tailer(path={self.path!r}, identity={self._identity}, "
                f"offset={self._offset}, last_modified={self._last_modified})")
