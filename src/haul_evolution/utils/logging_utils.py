"""
Logging configuration for command line runs.

Library modules only create module loggers; handlers are installed here.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_level: int = logging.INFO,
                  log_file: Optional[str] = None) -> None:
    """Set up package logging.

    Args:
        log_level: The logging level (default: logging.INFO)
        log_file: Optional path to a log file. If None, logs to stderr only.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    logger = logging.getLogger("haul_evolution")
    logger.setLevel(log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug(f"Logging configured at level {logging.getLevelName(log_level)}")
