"""Logging setup for news_cache."""

import logging
import sys
from typing import Optional

from news_cache.config import ReaderConfig, get_config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Name of the stderr handler this module installs on the package logger
HANDLER_NAME = "news_cache.stderr"

logger = logging.getLogger("news_cache")


def setup_logging(config: Optional[ReaderConfig] = None) -> logging.Logger:
    """Attach a stderr handler to the package logger.

    Calling this more than once only updates the level. Handlers added by
    the host application are left alone and records still propagate to them.

    Args:
        config: Optional configuration (uses get_config() if not provided)

    Returns:
        The package logger
    """
    if config is None:
        config = get_config()

    level = getattr(logging, config.log_level, logging.INFO)
    logger.setLevel(level)

    if not any(h.get_name() == HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
