"""Storage layer for news_cache."""

from .database import ArticleStore, init_database

__all__ = [
    "ArticleStore",
    "init_database",
]
