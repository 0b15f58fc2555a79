"""
Unit Tests - Logging Setup
"""
import pytest
from loguru import logger

from tradesim.config import Settings
from tradesim.utils.logger import setup_logging


@pytest.fixture
def restore_logger():
    yield
    logger.remove()


class TestSetupLogging:
    """setup_logging should install sinks according to settings."""

    def test_file_sinks_written(self, tmp_path, restore_logger):
        log_dir = tmp_path / "logs"
        setup_logging(Settings(LOG_TO_FILE=True, LOG_DIR=str(log_dir)))

        logger.info("order filled")
        logger.error("replay failed")
        logger.complete()

        assert "order filled" in (log_dir / "app.log").read_text()
        error_log = (log_dir / "error.log").read_text()
        assert "replay failed" in error_log
        assert "order filled" not in error_log

    def test_console_only(self, tmp_path, restore_logger, capsys):
        log_dir = tmp_path / "logs"
        setup_logging(Settings(LOG_TO_FILE=False, LOG_DIR=str(log_dir)))

        logger.warning("console message")

        assert "console message" in capsys.readouterr().out
        assert not log_dir.exists()
