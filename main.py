#!/usr/bin/env python3
"""logtail - Entry Point."""

import argparse
import logging
import signal
import sys
import threading

from logtail.config import ConfigError, load_config, load_yaml_config
from logtail.listener import LoggingListener
from logtail.manager import WatchManager

logger = logging.getLogger(__name__)


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tail log files matching regex or glob patterns")
    parser.add_argument(
        "--config", default=None,
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--regex", dest="file_regex_pattern", default=None,
        help="Comma-separated regex patterns, e.g. '/var/log/app/gc-.*\\.log'",
    )
    parser.add_argument(
        "--glob", dest="file_glob_pattern", default=None,
        help="Comma-separated glob patterns, e.g. '/var/log/**/*.log'",
    )
    parser.add_argument(
        "--echo", action="store_true",
        help="Log every line read at INFO level",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_cli_parser().parse_args(argv)

    try:
        yaml_data = load_yaml_config(args.config)
        config = load_config(yaml_data, {
            "file_regex_pattern": args.file_regex_pattern,
            "file_glob_pattern": args.file_glob_pattern,
        })
    except ConfigError as e:
        logging.basicConfig(level=logging.ERROR, stream=sys.stderr)
        logger.error("Invalid configuration: %s", e)
        return 2

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [LOGTAIL] %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    logger.info("Config: %s", config)

    listener = LoggingListener(echo_lines=args.echo)
    try:
        manager = WatchManager(config, listener)
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    shutdown_event = threading.Event()

    def signal_handler(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("logtail running. Press Ctrl+C to stop.")
    try:
        while not shutdown_event.is_set():
            shutdown_event.wait(1)
    except KeyboardInterrupt:
        pass

    manager.close()
    for path, count in sorted(listener.line_counts().items()):
        logger.info("  %s: %d lines", path, count)
    logger.info("logtail stopped. Total lines read: %d", listener.total_lines)
    return 0


if __name__ == "__main__":
    sys.exit(main())
