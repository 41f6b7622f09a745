"""Tests for logging setup."""

import logging

import pytest
from rich.logging import RichHandler

from strata.logging_config import get_logger, setup_logging


@pytest.fixture
def restore_strata_logger():
    logger = logging.getLogger("strata")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in saved[0]:
        logger.addHandler(handler)
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


class TestSetupLogging:
    def test_levels(self, restore_strata_logger):
        assert setup_logging().level == logging.WARNING
        assert setup_logging(verbose=True).level == logging.DEBUG
        assert setup_logging(verbose=True, quiet=True).level == logging.ERROR

    def test_rich_handler_not_stacked(self, restore_strata_logger):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)
        assert logger.propagate is False

    def test_log_file(self, restore_strata_logger, tmp_path):
        log_file = tmp_path / "strata.log"
        setup_logging(log_file=str(log_file))
        get_logger("strata.graph.builder").warning("cache unavailable")
        for handler in restore_strata_logger.handlers:
            handler.flush()
        assert "strata.graph.builder - WARNING - cache unavailable" in log_file.read_text(encoding="utf-8")


class TestGetLogger:
    def test_hierarchy(self):
        assert get_logger().name == "strata"
        assert get_logger("strata.cache").name == "strata.cache"
        assert get_logger("plugins.custom").name == "strata.plugins.custom"
