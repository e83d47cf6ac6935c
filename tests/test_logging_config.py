"""Tests for the logging configuration helpers."""

import logging
import sys
from unittest.mock import patch

from photo_pipeline.core.logging_config import (
    LOGGER_NAME,
    NOISY_LOGGERS,
    SIMPLE_FORMAT,
    STRUCTURED_FORMAT,
    build_formatter,
    get_logger,
    quiet_client_libraries,
    resolve_level,
    setup_logger,
)


def _fresh(name):
    logger = logging.getLogger(name)
    logger.handlers.clear()
    return name


class TestSetupLogger:
    """Test setup_logger behaviour."""

    def test_default_level_and_handler(self):
        name = _fresh("test.setup.default")
        with patch.dict("os.environ", {}, clear=True):
            logger = setup_logger(name)

        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
        assert logger.handlers[0].stream is sys.stdout
        assert logger.propagate is False

    def test_explicit_level(self):
        logger = setup_logger(_fresh("test.setup.level"), level="debug")

        assert logger.level == logging.DEBUG

    def test_env_level(self):
        name = _fresh("test.setup.env")
        with patch.dict("os.environ", {"LOG_LEVEL": "WARNING"}):
            logger = setup_logger(name)

        assert logger.level == logging.WARNING

    def test_structured_format(self):
        name = _fresh("test.setup.structured")
        with patch.dict("os.environ", {}, clear=True):
            logger = setup_logger(name)

        assert logger.handlers[0].formatter._fmt == STRUCTURED_FORMAT

    def test_simple_format_from_env(self):
        name = _fresh("test.setup.simple")
        with patch.dict("os.environ", {"LOG_FORMAT": "simple"}):
            logger = setup_logger(name)

        assert logger.handlers[0].formatter._fmt == SIMPLE_FORMAT

    def test_no_duplicate_handlers(self):
        """Test that repeated setup does not stack handlers."""
        name = _fresh("test.setup.dupes")

        setup_logger(name)
        logger = setup_logger(name)

        assert len(logger.handlers) == 1


class TestGetLogger:
    def test_child_logger_uses_root_handler(self):
        """Test that child loggers get no handler of their own."""
        logger = get_logger(f"{LOGGER_NAME}.test_child")

        assert logger.name == f"{LOGGER_NAME}.test_child"
        assert logger.handlers == []
        assert logging.getLogger(LOGGER_NAME).handlers

    def test_default_name(self):
        assert get_logger().name == LOGGER_NAME


class TestHelpers:
    def test_resolve_level_explicit(self):
        assert resolve_level("error") == logging.ERROR

    def test_resolve_level_unknown_name(self):
        assert resolve_level("chatty") == logging.INFO

    def test_resolve_level_from_env(self):
        with patch.dict("os.environ", {"LOG_LEVEL": "debug"}):
            assert resolve_level() == logging.DEBUG

    def test_build_formatter(self):
        assert build_formatter("simple")._fmt == SIMPLE_FORMAT
        assert build_formatter("Structured")._fmt == STRUCTURED_FORMAT

    def test_quiet_client_libraries(self):
        quiet_client_libraries(logging.ERROR)
        try:
            assert all(logging.getLogger(n).level == logging.ERROR for n in NOISY_LOGGERS)
        finally:
            quiet_client_libraries()
