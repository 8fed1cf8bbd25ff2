"""Tests for the export tool helpers

Run with pytest from project root:
    pytest tests/test_export_tools.py -v
"""

import logging
from concurrent.futures import Future

from tools.export import log_progress_failure


class TestProgressNotifications:
    """Failed progress notifications are logged, not lost"""

    def test_failed_notification_is_logged(self, caplog):
        future = Future()
        future.add_done_callback(log_progress_failure)
        with caplog.at_level(logging.WARNING, logger="MCP_Server"):
            future.set_exception(RuntimeError("client went away"))
        assert "Progress notification failed: client went away" in caplog.text

    def test_successful_notification_is_silent(self, caplog):
        future = Future()
        future.add_done_callback(log_progress_failure)
        with caplog.at_level(logging.WARNING, logger="MCP_Server"):
            future.set_result(None)
        assert caplog.records == []

    def test_cancelled_notification_is_silent(self, caplog):
        future = Future()
        future.add_done_callback(log_progress_failure)
        with caplog.at_level(logging.WARNING, logger="MCP_Server"):
            future.cancel()
        assert caplog.records == []
