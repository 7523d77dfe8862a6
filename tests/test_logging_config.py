"""
Tests for the logging setup.
"""

import logging
import logging.handlers

from utm_service.logging_config import setup_logging, stop_logging


class TestLoggingConfig:
    """Test queue-based logging configuration."""

    def teardown_method(self):
        stop_logging()
        logging.getLogger().handlers.clear()

    def test_root_logger_uses_queue(self):
        setup_logging(debug=False)
        root = logging.getLogger()
        assert any(isinstance(h, logging.handlers.QueueHandler) for h in root.handlers)
        assert root.level == logging.INFO
        assert logging.getLogger("sqlalchemy").level == logging.WARNING

    def test_debug_level(self):
        setup_logging(debug=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_setup_twice_keeps_one_handler(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1
