"""Data models for news_cache."""

from .schemas import (
    GLOBAL_FEED,
    Article,
    ArticleSource,
    FeedPage,
    FeedSnapshot,
    NotificationPayload,
    NotificationSettings,
    PaginationState,
    SortOption,
)

__all__ = [
    "GLOBAL_FEED",
    "Article",
    "ArticleSource",
    "FeedPage",
    "FeedSnapshot",
    "NotificationPayload",
    "NotificationSettings",
    "PaginationState",
    "SortOption",
]
