"""
Logging configuration for SentryAgent.

Modules obtain loggers through `get_logger(__name__)`; entry points call
`setup_logging()` once before running the pipeline.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "sentryagent"


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        verbose: Enable DEBUG level logging.
        log_file: Optional file path to append timestamped log records to.

    Returns:
        The configured `sentryagent` logger.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Re-running setup (tests, repeated CLI calls) must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        logger.addHandler(file_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Module name (e.g. 'sentryagent.audit.aggregator'). Names outside
            the package are nested under the package logger.

    Returns:
        Logger instance.
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
