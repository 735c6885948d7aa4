"""Tests for logging_utils: ErrorBuffer rotation and ErrorBufferHandler levels."""

import logging
import unittest

from frigate_events.logging_utils import ErrorBuffer, ErrorBufferHandler, setup_logging


class TestErrorBuffer(unittest.TestCase):

    def test_newest_first_and_rotates(self) -> None:
        buffer = ErrorBuffer(max_size=3)
        for i in range(5):
            buffer.append(f"t{i}", "WARNING", f"message {i}")
        entries = buffer.get_all()
        self.assertEqual([e["message"] for e in entries], ["message 4", "message 3", "message 2"])

    def test_truncates_long_messages(self) -> None:
        buffer = ErrorBuffer()
        buffer.append("t", "ERROR", "x" * 1000)
        self.assertEqual(len(buffer.get_all()[0]["message"]), 500)

    def test_clear(self) -> None:
        buffer = ErrorBuffer()
        buffer.append("t", "ERROR", "boom")
        buffer.clear()
        self.assertEqual(buffer.get_all(), [])


class TestErrorBufferHandler(unittest.TestCase):
    """Handler keeps WARNING and above, drops INFO."""

    def test_levels(self) -> None:
        buffer = ErrorBuffer()
        handler = ErrorBufferHandler(buffer)
        logger = logging.getLogger("frigate-events.test-handler")
        logger.addHandler(handler)
        prev_level = logger.level
        try:
            logger.setLevel(logging.DEBUG)
            logger.info("just info")
            logger.warning("fetch failed: %s", "down")
            logger.error("refresh failed")
        finally:
            logger.removeHandler(handler)
            logger.setLevel(prev_level)
        entries = buffer.get_all()
        self.assertEqual([e["level"] for e in entries], ["ERROR", "WARNING"])
        self.assertEqual(entries[1]["message"], "fetch failed: down")


class TestSetupLogging(unittest.TestCase):

    def test_handler_added_once(self) -> None:
        logger = logging.getLogger("frigate-events")
        prev_level = logger.level
        self.addCleanup(logger.setLevel, prev_level)
        setup_logging("WARNING")
        setup_logging("INFO")
        handlers = [h for h in logger.handlers if isinstance(h, ErrorBufferHandler)]
        self.assertEqual(len(handlers), 1)
        self.assertEqual(logger.level, logging.INFO)
        self.assertEqual(logging.getLogger("urllib3").level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
