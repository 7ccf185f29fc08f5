"""
Deterministic logging configuration for ASR-GoT.

Provides consistent, reproducible logging behavior with strict formatting.
"""

import logging
import sys
from typing import Final

# Constants for deterministic logging
LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
DEFAULT_LEVEL: Final[int] = logging.INFO
ROOT_LOGGER_NAME: Final[str] = "asrgot"


def setup_logging(level: int = DEFAULT_LEVEL) -> logging.Logger:
    """
    Configure deterministic logging for the reasoning graph.

    Args:
        level: The logging level to use (default: INFO).

    Returns:
        The package root logger instance.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    # Clear any existing handlers so repeated setup does not duplicate output
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    # Diagnostics go to stderr; stdout carries CLI results
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    root_logger.propagate = False
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: The name of the module requesting the logger.

    Returns:
        A logger instance with the specified name under the 'asrgot' namespace.
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
