"""DiscoveryTrigger: watchdog event handler that wakes the watch loop when files appear."""

import logging
import os

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class DiscoveryTrigger(FileSystemEventHandler):
    """Calls ``wake`` whenever a file is created or moved into a watched directory.

    Discovery itself still happens in the watch loop; this only shortens the
    delay between a new log file appearing and it being opened.
    """

    def __init__(self, wake):
        super().__init__()
        self._wake = wake

    def on_created(self, event):
        if not event.is_directory:
            logger.debug("File created: %s", event.src_path)
            self._wake()

    def on_moved(self, event):
        if not event.is_directory:
            logger.debug("File moved: %s -> %s", event.src_path, event.dest_path)
            self._wake()


def start_observer(trigger: DiscoveryTrigger, directories: dict[str, bool]):
    """Schedule ``trigger`` on every existing directory and start the observer.

    ``directories`` maps a directory to whether it should be watched
    recursively. Returns the started observer, or None if nothing could be
    scheduled.
    """
    observer = Observer()
    scheduled = 0
    for path, recursive in sorted(directories.items()):
        if not os.path.isdir(path):
            logger.info("Not watching missing directory: %s", path)
            continue
        try:
            observer.schedule(trigger, path, recursive=recursive)
            scheduled += 1
            logger.info("Watching directory for new files: %s (recursive=%s)", path, recursive)
        except OSError as e:
            logger.warning("Cannot watch %s: %s", path, e)

    if not scheduled:
        return None
    observer.daemon = True
    try:
        observer.start()
    except OSError as e:
        logger.warning("Cannot start filesystem observer, relying on polling: %s", e)
        return None
    return observer
