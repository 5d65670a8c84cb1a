"""Unit tests for logging configuration."""
import logging
import tempfile
from pathlib import Path

import pytest

from four_keys.logging import get_logger, setup_logging


@pytest.mark.unit
class TestLogging:
    """Test logging configuration."""

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        """Restore the root logger after each test."""
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers[:]:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_setup_logging_default_level(self):
        setup_logging()

        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self, caplog):
        setup_logging(level="debug")
        logger = get_logger("four_keys.test")

        with caplog.at_level(logging.DEBUG):
            logger.debug("Test debug message")

        assert "Test debug message" in caplog.text

    def test_logs_go_to_stderr(self, capsys):
        setup_logging(level="INFO")

        get_logger("four_keys.test").warning("Rate limit low")

        captured = capsys.readouterr()
        assert "Rate limit low" in captured.err
        assert captured.out == ""

    def test_setup_logging_with_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_file = Path(tmp) / "four-keys.log"

            setup_logging(log_file=str(log_file))
            get_logger("four_keys.test").info("Test file message")
            for handler in logging.getLogger().handlers:
                handler.flush()

            content = log_file.read_text()
            assert "Test file message" in content
            assert "four_keys.test - INFO" in content

            for handler in logging.getLogger().handlers[:]:
                if isinstance(handler, logging.FileHandler):
                    handler.close()

    def test_transport_loggers_suppressed(self):
        setup_logging(level="DEBUG")

        assert logging.getLogger("urllib3").getEffectiveLevel() == logging.WARNING
        assert logging.getLogger("gql").getEffectiveLevel() == logging.WARNING

    def test_get_logger_returns_named_logger(self):
        logger1 = get_logger("module1")
        logger2 = get_logger("module2")

        assert logger1.name == "module1"
        assert logger2.name == "module2"
        assert logger1 is not logger2
