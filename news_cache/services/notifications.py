"""Notification dispatch.

Delivery of alerts is owned by the host application. This module defines the
dispatcher interface, a dispatcher that only logs, and builders for each
payload type the host knows how to deep-link.
"""

from typing import List

from news_cache.log_system.unified_logger import UnifiedLogger
from news_cache.models.schemas import Article, NotificationPayload

TYPE_ARTICLE = "article"
TYPE_CATEGORY = "category"
TYPE_DAILY_DIGEST = "daily_digest"
TYPE_TEST = "test"


class NotificationDispatcher:
    """Delivers a payload to the user. Subclasses implement ``dispatch``."""

    async def dispatch(self, payload: NotificationPayload) -> None:
        raise NotImplementedError


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Dispatcher that records payloads in the log instead of delivering them."""

    def __init__(self) -> None:
        self.sent: List[NotificationPayload] = []

    async def dispatch(self, payload: NotificationPayload) -> None:
        logger = UnifiedLogger.get_logger(__name__)
        logger.info(f"Notification [{payload.data.get('type')}]: {payload.title} - {payload.body}")
        self.sent.append(payload)


def breaking_news_payload(article: Article) -> NotificationPayload:
    return NotificationPayload(
        title="Breaking News",
        body=article.title or "",
        data={"type": TYPE_ARTICLE, "articleUrl": article.url},
    )


def category_update_payload(category: str, count: int) -> NotificationPayload:
    noun = "article" if count == 1 else "articles"
    return NotificationPayload(
        title=f"New in {category.capitalize()}",
        body=f"{count} new {noun} in {category}",
        data={"type": TYPE_CATEGORY, "category": category},
    )


def daily_digest_payload() -> NotificationPayload:
    return NotificationPayload(
        title="Your Daily News Digest",
        body="Check out today's top stories in your favorite categories",
        data={"type": TYPE_DAILY_DIGEST},
    )


def self_test_payload() -> NotificationPayload:
    return NotificationPayload(
        title="Test Notification",
        body="This is a test notification from NewsCache!",
        data={"type": TYPE_TEST},
    )
