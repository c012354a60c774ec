"""
Test cases for logging utilities.
"""

import io
import logging
import unittest

from .logging import ColorFormatter, WorkQueueLogger, get_logger, setup_logging


class TestColorFormatter(unittest.TestCase):
    """Test cases for ColorFormatter class."""

    def _record(self, level: int, msg: str) -> logging.LogRecord:
        return logging.LogRecord(
            name="workqueue.test",
            level=level,
            pathname="",
            lineno=0,
            msg=msg,
            args=(),
            exc_info=None,
        )

    def test_init_without_colors(self):
        formatter = ColorFormatter(use_colors=False, include_timestamp=False)
        self.assertFalse(formatter.use_colors)
        self.assertFalse(formatter.include_timestamp)

    def test_format_with_timestamp(self):
        formatter = ColorFormatter(use_colors=False, include_timestamp=True)

        formatted = formatter.format(self._record(logging.INFO, "Job added"))
        self.assertIn("INFO [workqueue.test]: Job added", formatted)
        self.assertRegex(formatted, r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}")

    def test_format_without_timestamp(self):
        formatter = ColorFormatter(use_colors=False, include_timestamp=False)

        formatted = formatter.format(self._record(logging.ERROR, "Job failed"))
        self.assertEqual(formatted, "ERROR [workqueue.test]: Job failed")


class TestWorkQueueLogger(unittest.TestCase):
    """Test cases for the logger wrapper and setup."""

    def setUp(self):
        self.stream = io.StringIO()
        self.logger = setup_logging(
            level=logging.DEBUG,
            use_colors=False,
            stream=self.stream,
            name="workqueue_logging_test",
        )

    def test_context_is_appended(self):
        self.logger.info("Processing job", job_id="job_1", queue="email")

        self.assertIn(
            "INFO [workqueue_logging_test]: Processing job | job_id=job_1 queue=email",
            self.stream.getvalue(),
        )

    def test_error_with_exception(self):
        self.logger.error("Job failed", error=ValueError("smtp down"), attempt=1)

        self.assertIn("Job failed: smtp down | attempt=1", self.stream.getvalue())

    def test_child_logger_propagates_to_package_logger(self):
        child = get_logger("workqueue_logging_test.store")
        child.warning("Snapshot not written")

        self.assertIn(
            "WARNING [workqueue_logging_test.store]: Snapshot not written",
            self.stream.getvalue(),
        )

    def test_set_level(self):
        self.logger.set_level(logging.INFO)
        self.logger.debug("hidden")
        self.assertEqual(self.stream.getvalue(), "")

    def test_setup_logging_does_not_duplicate_handlers(self):
        setup_logging(use_colors=False, stream=self.stream, name="workqueue_logging_test")
        setup_logging(use_colors=False, stream=self.stream, name="workqueue_logging_test")

        base = logging.getLogger("workqueue_logging_test")
        self.assertEqual(len(base.handlers), 1)

    def test_get_logger_returns_same_instance(self):
        self.assertIs(get_logger("workqueue.a"), get_logger("workqueue.a"))
        self.assertIsNot(get_logger("workqueue.a"), get_logger("workqueue.b"))
        self.assertIsInstance(get_logger(), WorkQueueLogger)
        self.assertEqual(get_logger().name, "workqueue")


if __name__ == "__main__":
    unittest.main()
