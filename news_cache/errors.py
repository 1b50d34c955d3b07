"""Exceptions raised by news_cache."""

from typing import Optional


class NewsCacheError(Exception):
    """Base class for news_cache errors."""


class NetworkError(NewsCacheError):
    """A feed request failed in transport or returned a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
