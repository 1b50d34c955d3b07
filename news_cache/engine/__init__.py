"""Article cache engine for news_cache."""

from .article_cache import (
    NO_OFFLINE_DATA,
    NO_OFFLINE_MATCHES,
    SHOWING_CACHED_DATA,
    ArticleCacheEngine,
    create_engine,
)

__all__ = [
    "NO_OFFLINE_DATA",
    "NO_OFFLINE_MATCHES",
    "SHOWING_CACHED_DATA",
    "ArticleCacheEngine",
    "create_engine",
]
