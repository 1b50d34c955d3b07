"""Unified logger facade.

Modules obtain loggers through ``UnifiedLogger.get_logger(__name__)`` so that
handler setup happens once, on first use, from the active configuration.
"""

import logging
from typing import Optional

from news_cache.config import ReaderConfig


class UnifiedLogger:
    """Process-wide access point for news_cache loggers."""

    _initialized = False

    @classmethod
    def initialize_default(cls, config: Optional[ReaderConfig] = None) -> None:
        """Configure the package logger from config."""
        from news_cache.logging_config import setup_logging

        setup_logging(config)
        cls._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Return a logger, initializing the package logger on first call.

        Args:
            name: Logger name, normally ``__name__``
        """
        if not cls._initialized:
            cls.initialize_default()
        return logging.getLogger(name)

    @classmethod
    def reset(cls) -> None:
        """Forget initialization so the next call re-reads configuration."""
        cls._initialized = False
