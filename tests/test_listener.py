"""Tests for the listener module."""

import logging

from logtail.listener import LoggingListener, TailListener


class TestTailListener:
    def test_default_callbacks_are_no_ops(self):
        listener = TailListener()
        listener.on_open("/a.log")
        listener.on_read("/a.log", "line")
        listener.on_rotate("/a.log")
        listener.on_close("/a.log")


class TestLoggingListener:
    def test_counts_lines_per_file(self):
        listener = LoggingListener()
        listener.on_read("/a.log", "one")
        listener.on_read("/a.log", "two")
        listener.on_read("/b.log", "three")
        assert listener.line_counts() == {"/a.log": 2, "/b.log": 1}
        assert listener.total_lines == 3

    def test_echo_logs_lines_at_info(self, caplog):
        listener = LoggingListener(echo_lines=True)
        with caplog.at_level(logging.INFO, logger="logtail.listener"):
            listener.on_read("/a.log", "hello")
        assert "/a.log >>> hello" in caplog.text

    def test_lifecycle_logged(self, caplog):
        listener = LoggingListener()
        with caplog.at_level(logging.INFO, logger="logtail.listener"):
            listener.on_open("/a.log")
            listener.on_rotate("/a.log")
            listener.on_close("/a.log")
        assert "Register file: /a.log" in caplog.text
        assert "Rotate file: /a.log" in caplog.text
        assert "Unregister file: /a.log" in caplog.text
