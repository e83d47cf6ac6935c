"""Centralized logging configuration for the photo pipeline."""

import os
import sys
import logging
from typing import Optional

LOGGER_NAME = "photo-pipeline"

STRUCTURED_FORMAT = (
    "%(asctime)s | %(name)s | %(levelname)-8s | "
    "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Client libraries that log every request at DEBUG/INFO.
NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def resolve_level(level: Optional[str] = None) -> int:
    """Map a level name to its numeric value, falling back to LOG_LEVEL then INFO."""
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    return getattr(logging, name, logging.INFO)


def build_formatter(format_type: str = "structured") -> logging.Formatter:
    if format_type.lower() == "structured":
        return logging.Formatter(STRUCTURED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    return logging.Formatter(SIMPLE_FORMAT)


def setup_logger(
    name: str = LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Attach a single stdout handler to ``name`` and set its level.

    Args:
        name: Logger name (defaults to "photo-pipeline")
        level: Log level override (defaults to env var or INFO)
        format_type: Logging format ("structured" or "simple")

    Returns:
        Configured logger instance

    Environment Variables:
        LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: Set format type ("structured" or "simple"), wins over format_type
    """
    logger = logging.getLogger(name)
    logger.setLevel(resolve_level(level))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(build_formatter(os.getenv("LOG_FORMAT", format_type)))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def quiet_client_libraries(level: int = logging.WARNING) -> None:
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance with consistent configuration.

    Child loggers ("photo-pipeline.api") inherit the root handler and are not
    given their own.
    """
    if not name.startswith(LOGGER_NAME + "."):
        return setup_logger(name)
    root = logging.getLogger(LOGGER_NAME)
    if not root.handlers:
        setup_logger(LOGGER_NAME)
        quiet_client_libraries()
    return logging.getLogger(name)
