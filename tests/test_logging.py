"""
Unit tests for logging configuration and setup.
"""

import logging
from unittest.mock import patch

import pytest

from main import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Test setup_logging function."""

    def test_basic_logging_config(self):
        """Level and a stdout stream handler come from the config."""
        config = {
            "logging": {
                "level": "DEBUG",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        }

        setup_logging(config)

        assert logging.getLogger().level == logging.DEBUG
        stream_handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.StreamHandler)]
        assert len(stream_handlers) >= 1

    def test_file_logging_enabled(self, tmp_path):
        """A FileHandler is attached and the file created when logging.file is set."""
        log_file = tmp_path / "logs" / "budget.log"
        config = {"logging": {"level": "INFO", "file": str(log_file)}}

        setup_logging(config)
        logging.getLogger("reconciliation").info("hello")

        file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert log_file.exists()

    def test_invalid_log_level_defaults_to_info(self):
        config = {"logging": {"level": "INVALID_LEVEL"}}

        with patch("main.logger") as mock_logger:
            setup_logging(config)
            mock_logger.warning.assert_called()

        assert logging.getLogger().level == logging.INFO

    def test_missing_logging_config_uses_defaults(self):
        setup_logging({})
        assert logging.getLogger().level == logging.INFO
