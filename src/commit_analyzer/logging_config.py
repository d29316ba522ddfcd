"""
Logging configuration with verbose/debug support.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "commit_analyzer"

DEBUG_MODE = os.environ.get("COMMIT_ANALYZER_DEBUG", "").lower() in ("1", "true", "yes")


def setup_logging(
    verbose: bool = False,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Set up the package logger.

    Args:
        verbose: Log at DEBUG level (attempts, delays, raw response previews)
        log_file: Optional path to a log file, always written at DEBUG

    Returns:
        Configured logger
    """
    level = logging.DEBUG if (verbose or DEBUG_MODE) else logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file else level)
    logger.handlers.clear()
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    if verbose or DEBUG_MODE:
        console_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    else:
        console_format = "%(message)s"
    console_handler.setFormatter(logging.Formatter(console_format))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger
