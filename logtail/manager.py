"""WatchManager: discovers matching log files and tails all of them from two threads.

The watch thread periodically re-runs discovery, opens tailers for new
files and retires idle or rotated ones. The read thread loops over every
registered tailer and hands lines to the listener. Both share one
path-keyed registry guarded by a single lock, so a file is never touched by
both threads at once and thread count does not grow with the number of
files.
"""

import logging
import os
import re
import threading
import time

from logtail.config import Config, ConfigError, validate_config
from logtail.fs_events import DiscoveryTrigger, start_observer
from logtail.invalid_cache import InvalidFileCache
from logtail.listener import TailListener, UnsupportedFileError
from logtail.sources import GlobTailSource, SourceSet
from logtail.tailer import Tailer

logger = logging.getLogger(__name__)

JOIN_TIMEOUT_SECONDS = 10.0


class WatchManager:
    def __init__(self, config: Config, listener: TailListener,
                 handle_strategy=None, time_func=None):
        validate_config(config)
        try:
            self._sources = SourceSet(config.file_regex_pattern, config.file_glob_pattern)
        except (re.error, ValueError) as e:
            raise ConfigError(f"Invalid file pattern: {e}") from e

        self._config = config
        self._listener = listener
        self._handle_strategy = handle_strategy
        self._time_func = time_func or time.time
        self._invalid = InvalidFileCache(
            config.invalid_cache_ttl_seconds,
            config.invalid_cache_max_size,
            time_func=self._time_func,
        )
        self._tailers: dict[str, Tailer] = {}
        self._lock = threading.Lock()
        self._shutdown = threading.Event()
        self._wake_event = threading.Event()
        self._close_lock = threading.Lock()
        self._closed = False
        self._observer = None

        if config.use_fs_events:
            directories = {
                source.base: isinstance(source, GlobTailSource)
                for source in self._sources.sources
            }
            self._observer = start_observer(DiscoveryTrigger(self.wake), directories)

        self._watcher = threading.Thread(target=self._watch_loop, name="tail-watcher", daemon=True)
        self._reader = threading.Thread(target=self._read_loop, name="tail-reader", daemon=True)
        self._watcher.start()
        self._reader.start()
        logger.info("Watch manager started: %r", self._sources)

    # -- watch loop -----------------------------------------------------

    def wake(self):
        """Run the next watch cycle now instead of at the end of the interval."""
        self._wake_event.set()

    def _watch_loop(self):
        while not self._shutdown.is_set():
            try:
                self.check_once()
            except Exception:
                logger.exception("Watch cycle failed")
            self._wake_event.wait(self._config.watch_interval_seconds)
            self._wake_event.clear()

    def _is_idle(self, last_modified: float, now: float) -> bool:
        return last_modified + self._config.idle_timeout_seconds < now

    def _is_candidate(self, path: str, now: float) -> bool:
        if path in self._invalid:
            return False
        try:
            mtime = os.stat(path).st_mtime
        except OSError as e:
            logger.debug("Skip %s: %s", path, e)
            return False
        return not self._is_idle(mtime, now)

    def check_once(self):
        """One watch cycle: open newly matched files, retire idle and rotated ones."""
        if self._shutdown.is_set():
            return
        now = self._time_func()
        self._invalid.purge()
        candidates = self._sources.find_matching_files(lambda p: self._is_candidate(p, now))

        with self._lock:
            # close() may have drained the registry while discovery ran
            if self._shutdown.is_set():
                return
            for path in candidates:
                if path not in self._tailers:
                    self._open_tailer(path)
            self._retire_tailers(now)

    def _open_tailer(self, path: str):
        try:
            tailer = Tailer(
                path,
                True,
                self._config.batch_size,
                self._config.buffer_size,
                self._config.lines_per_second,
                handle_strategy=self._handle_strategy,
            )
        except Exception as e:
            logger.error("Open tailer failed: %s: %s", path, e)
            self._invalid.add(path)
            return

        try:
            self._listener.on_open(path)
        except UnsupportedFileError as e:
            logger.info("Unsupported file, retrying later: %s (%s)", path, e)
            tailer.close()
            return
        except Exception:
            logger.exception("Listener on_open failed: %s", path)
            tailer.close()
            self._invalid.add(path)
            return

        self._tailers[path] = tailer
        logger.info("Add tailer %r", tailer)

    def _retire_tailers(self, now: float):
        for path, tailer in list(self._tailers.items()):
            try:
                if self._is_idle(tailer.last_modified(), now) and tailer.drained():
                    logger.info("Remove idle tailer %r", tailer)
                    self._remove_tailer(path)
                    self._notify("on_close", path)
                elif tailer.rotated():
                    logger.info("Remove rotated tailer %r", tailer)
                    self._remove_tailer(path)
                    self._notify("on_rotate", path)
            except Exception:
                logger.exception("Check tailer failed: %s", path)

    def _remove_tailer(self, path: str):
        tailer = self._tailers.pop(path)
        try:
            tailer.close()
        except OSError as e:
            logger.warning("Close tailer failed: %s: %s", path, e)

    def _notify(self, callback: str, path: str):
        try:
            getattr(self._listener, callback)(path)
        except Exception:
            logger.exception("Listener %s failed: %s", callback, path)

    # -- read loop ------------------------------------------------------

    def _read_loop(self):
        while not self._shutdown.is_set():
            produced = self.read_once()
            if produced == 0:
                self._shutdown.wait(self._config.read_interval_seconds)
            else:
                logger.debug("Produced %d lines", produced)
        self._drain()

    def read_once(self) -> int:
        """Read one batch from every tailer and deliver it. Returns the line count."""
        produced = 0
        with self._lock:
            for path, tailer in list(self._tailers.items()):
                try:
                    lines = tailer.read_lines()
                except Exception:
                    logger.exception("Read tailer failed: %r", tailer)
                    continue
                for line in lines:
                    try:
                        self._listener.on_read(path, line)
                    except Exception:
                        logger.exception("Listener on_read failed: %s", path)
                produced += len(lines)
        return produced

    def _drain(self):
        with self._lock:
            for path in list(self._tailers):
                self._remove_tailer(path)
                self._notify("on_close", path)

    # -- lifecycle ------------------------------------------------------

    def tracked_files(self) -> list[str]:
        with self._lock:
            return list(self._tailers)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        """Stop both loops and close every tailer. Only the first call has an effect."""
        with self._close_lock:
            if self._closed:
                logger.warning("Watch manager already closed")
                return
            self._closed = True

        logger.info("Closing watch manager")
        self._shutdown.set()
        self._wake_event.set()

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=JOIN_TIMEOUT_SECONDS)

        current = threading.current_thread()
        for thread in (self._watcher, self._reader):
            if thread is not current:
                thread.join(timeout=JOIN_TIMEOUT_SECONDS)
                if thread.is_alive():
                    logger.warning("Thread %s did not stop in time", thread.name)

        # The read thread drains on exit; this covers a reader that never got there
        self._drain()
        logger.info("Watch manager closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
