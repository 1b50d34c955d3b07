"""Change detection and notification triggers.

After a first-page fetch the engine compares the fetched articles with what
the bucket held before and decides which alerts, if any, to send.
"""

from typing import Iterable, List, Optional

from news_cache.log_system.unified_logger import UnifiedLogger
from news_cache.models.schemas import GLOBAL_FEED, Article, NotificationSettings
from news_cache.services.notifications import (
    NotificationDispatcher,
    breaking_news_payload,
    category_update_payload,
)
from news_cache.storage.database import ArticleStore

BREAKING_KEYWORD = "breaking"


def find_new_articles(fetched: Iterable[Article], previous: Iterable[Article]) -> List[Article]:
    """Articles in fetched whose url was not in previous, in fetched order."""
    seen = {a.url for a in previous}
    new_articles = []
    for article in fetched:
        if article.url not in seen:
            seen.add(article.url)
            new_articles.append(article)
    return new_articles


def find_breaking_article(articles: Iterable[Article]) -> Optional[Article]:
    """First article whose title contains "breaking", case-insensitively."""
    for article in articles:
        if article.title and BREAKING_KEYWORD in article.title.lower():
            return article
    return None


async def notify_changes(
    category: str,
    fetched: List[Article],
    previous: List[Article],
    store: ArticleStore,
    dispatcher: NotificationDispatcher,
) -> int:
    """Send breaking-news and category-update alerts for new articles.

    Never raises: preference lookups and dispatch failures are logged.

    Args:
        category: Bucket key the articles were fetched for
        fetched: Articles returned by the first-page fetch
        previous: Bucket contents before the fetch
        store: Store holding the notification settings
        dispatcher: Where alerts are sent

    Returns:
        Number of notifications dispatched
    """
    logger = UnifiedLogger.get_logger(__name__)

    new_articles = find_new_articles(fetched, previous)
    if not new_articles:
        return 0

    try:
        settings: NotificationSettings = await store.get_notification_settings()
    except Exception as e:
        logger.error(f"Could not read notification settings: {e}")
        return 0

    if not settings.enabled:
        return 0

    sent = 0

    if settings.breaking_news:
        breaking = find_breaking_article(new_articles)
        if breaking is not None:
            try:
                await dispatcher.dispatch(breaking_news_payload(breaking))
                sent += 1
            except Exception as e:
                logger.error(f"Breaking news notification failed: {e}")

    if category != GLOBAL_FEED and category in settings.categories:
        try:
            await dispatcher.dispatch(category_update_payload(category, len(new_articles)))
            sent += 1
        except Exception as e:
            logger.error(f"Category update notification for {category} failed: {e}")

    logger.info(f"{len(new_articles)} new articles in {category or 'global feed'}, {sent} notifications sent")
    return sent
