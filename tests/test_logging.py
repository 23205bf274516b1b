"""Unit tests for logging setup."""

import logging
import logging.handlers
import pytest
import structlog

from valuation_engine import InvestmentValuationEngine, ValuationEngineConfig
from valuation_engine.utils.logging import setup_logging, get_logger


@pytest.fixture
def restore_logging():
    """Restore structlog and root handlers after a test reconfigures them."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    structlog.reset_defaults()


class TestSetupLogging:
    """Test suite for structured logging configuration."""

    def test_file_handler(self, tmp_path, restore_logging):
        """Test a rotating file handler is installed when a log file is set."""
        log_file = tmp_path / "logs" / "valuation.log"
        config = ValuationEngineConfig(_env_file=None, log_level="debug", log_file=str(log_file))

        setup_logging(config)

        assert log_file.parent.exists()
        assert logging.getLogger().level == logging.DEBUG
        assert any(isinstance(h, logging.handlers.RotatingFileHandler)
                   for h in logging.getLogger().handlers)

    def test_repeated_setup_does_not_duplicate_handlers(self, restore_logging):
        """Test calling setup twice replaces its own handlers."""
        config = ValuationEngineConfig(_env_file=None, log_format="text")

        setup_logging(config)
        first = len(logging.getLogger().handlers)
        setup_logging(config)

        assert len(logging.getLogger().handlers) == first

    def test_engine_configures_logging(self, restore_logging):
        """Test the engine can configure logging on construction."""
        config = ValuationEngineConfig(_env_file=None, log_level="WARNING")
        InvestmentValuationEngine(config, configure_logging=True)

        assert logging.getLogger().level == logging.WARNING

    def test_get_logger_binds_context(self):
        """Test initial context can be bound."""
        assert get_logger(__name__, component="test") is not None

    def test_invalid_log_level(self):
        """Test unknown levels are rejected by configuration."""
        with pytest.raises(ValueError):
            ValuationEngineConfig(_env_file=None, log_level="LOUD")
