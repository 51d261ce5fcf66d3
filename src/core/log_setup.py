"""Shared logging configuration."""

import logging
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ROOT_LOGGER_NAME = "src"


def setup_logging(
    level: int | str = logging.INFO, format_string: Optional[str] = None
) -> logging.Logger:
    """
    Configure the logger shared by all modules of this package (they log through `logging.getLogger(__name__)`).

    Calling it more than once only updates the level; no duplicate handlers are added.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))
        logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(level)
    return logger
