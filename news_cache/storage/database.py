"""Database storage for news_cache.

This module provides async SQLite persistence for article snapshots and user
preferences. Every value is stored as a UTF-8 JSON text blob.
Database location: ~/.news_cache/news_cache.db (or NEWS_CACHE_DB_PATH env var)

Reads recover from missing or corrupt entries by returning an empty value;
writes propagate ``aiosqlite.Error`` to the caller.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import aiosqlite

from news_cache.log_system.unified_logger import UnifiedLogger
from news_cache.models.schemas import (
    GLOBAL_FEED,
    Article,
    NotificationSettings,
    SortOption,
    format_timestamp,
    parse_timestamp,
)

# Keys of the cache_entries table
CACHED_ARTICLES_KEY = "newsapp_cached_articles"
LAST_FETCH_TIME_KEY = "newsapp_last_fetch_time"
BOOKMARKS_KEY = "newsapp_bookmarks"
SORT_OPTION_KEY = "newsapp_sort_option"
NOTIFICATION_SETTINGS_KEY = "newsapp_notification_settings"


async def init_database(db: aiosqlite.Connection) -> None:
    """Initialize database tables if they don't exist.

    Args:
        db: Open database connection
    """
    await db.execute("""
        CREATE TABLE IF NOT EXISTS cache_entries (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # One row per category so writes to different categories never conflict
    await db.execute("""
        CREATE TABLE IF NOT EXISTS category_snapshots (
            category TEXT PRIMARY KEY,
            articles TEXT NOT NULL,
            fetched_at TIMESTAMP NOT NULL
        )
    """)

    await db.commit()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _decode_articles(raw: str) -> List[Article]:
    """Decode a stored snapshot, skipping items that are not valid articles.

    Raises:
        ValueError: If raw is not a JSON array
    """
    items = json.loads(raw)
    if not isinstance(items, list):
        raise ValueError("Expected a JSON array of articles")

    articles = []
    for item in items:
        if not isinstance(item, dict):
            UnifiedLogger.get_logger(__name__).warning(f"Skipping stored item {item!r}: not an object")
            continue
        try:
            articles.append(Article.from_dict(item))
        except (ValueError, TypeError, AttributeError) as e:
            UnifiedLogger.get_logger(__name__).warning(f"Skipping unreadable stored article: {e}")
    return articles


def _encode_articles(articles: List[Article]) -> str:
    return json.dumps([a.to_dict() for a in articles])


class ArticleStore:
    """Persistent article store keyed per bucket."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    @classmethod
    async def open(cls, db_path: Union[str, Path]) -> "ArticleStore":
        """Open (creating if needed) the database at db_path.

        Args:
            db_path: Filesystem path, or ":memory:"

        Returns:
            Initialized ArticleStore
        """
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        db = await aiosqlite.connect(db_path)
        db.row_factory = aiosqlite.Row
        await init_database(db)
        return cls(db)

    async def close(self) -> None:
        """Close the database connection."""
        await self.db.close()

    # Raw key/value access

    async def _get_item(self, key: str) -> Optional[str]:
        logger = UnifiedLogger.get_logger(__name__)
        try:
            cursor = await self.db.execute(
                "SELECT value FROM cache_entries WHERE key = ?", (key,)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error(f"Error reading {key}: {e}")
            return None

        if row is None:
            return None
        return row["value"]

    async def _set_item(self, key: str, value: str) -> None:
        await self.db.execute(
            """
            INSERT OR REPLACE INTO cache_entries (key, value, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            """,
            (key, value),
        )
        await self.db.commit()

    async def _get_articles(self, key: str) -> List[Article]:
        raw = await self._get_item(key)
        if raw is None:
            return []
        try:
            return _decode_articles(raw)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            UnifiedLogger.get_logger(__name__).error(f"Corrupt entry {key}, ignoring: {e}")
            return []

    # Article snapshots

    async def get_cached(self, bucket_key: str = GLOBAL_FEED) -> List[Article]:
        """Get the persisted snapshot of a bucket.

        Args:
            bucket_key: GLOBAL_FEED or a category key

        Returns:
            Stored articles, or an empty list if missing or unreadable
        """
        if bucket_key == GLOBAL_FEED:
            return await self._get_articles(CACHED_ARTICLES_KEY)

        logger = UnifiedLogger.get_logger(__name__)
        try:
            cursor = await self.db.execute(
                "SELECT articles FROM category_snapshots WHERE category = ?",
                (bucket_key,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error(f"Error retrieving cached {bucket_key} articles: {e}")
            return []

        if row is None:
            return []

        try:
            return _decode_articles(row["articles"])
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Corrupt {bucket_key} snapshot, ignoring: {e}")
            return []

    async def set_cached(self, bucket_key: str, articles: List[Article]) -> None:
        """Persist a bucket snapshot and refresh its last-fetch timestamp."""
        fetched_at = format_timestamp(_now())

        if bucket_key == GLOBAL_FEED:
            await self._set_item(CACHED_ARTICLES_KEY, _encode_articles(articles))
            await self._set_item(LAST_FETCH_TIME_KEY, fetched_at)
            return

        await self.db.execute(
            """
            INSERT OR REPLACE INTO category_snapshots (category, articles, fetched_at)
            VALUES (?, ?, ?)
            """,
            (bucket_key, _encode_articles(articles), fetched_at),
        )
        await self.db.commit()

    async def get_cached_categories(self) -> Dict[str, List[Article]]:
        """Get every persisted category snapshot, keyed by category."""
        logger = UnifiedLogger.get_logger(__name__)
        try:
            cursor = await self.db.execute(
                "SELECT category, articles FROM category_snapshots ORDER BY category"
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            logger.error(f"Error retrieving category snapshots: {e}")
            return {}

        categories = {}
        for row in rows:
            try:
                categories[row["category"]] = _decode_articles(row["articles"])
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.error(f"Corrupt {row['category']} snapshot, ignoring: {e}")
        return categories

    async def get_last_fetch_time(self, bucket_key: str = GLOBAL_FEED) -> Optional[datetime]:
        """Get when a bucket was last persisted from a live fetch."""
        if bucket_key == GLOBAL_FEED:
            return parse_timestamp(await self._get_item(LAST_FETCH_TIME_KEY))

        try:
            cursor = await self.db.execute(
                "SELECT fetched_at FROM category_snapshots WHERE category = ?",
                (bucket_key,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            UnifiedLogger.get_logger(__name__).error(f"Error retrieving fetch time: {e}")
            return None

        return parse_timestamp(row["fetched_at"]) if row else None

    async def clear(self) -> None:
        """Remove every article snapshot and fetch timestamp.

        Bookmarks and preferences are kept.
        """
        await self.db.execute(
            "DELETE FROM cache_entries WHERE key IN (?, ?)",
            (CACHED_ARTICLES_KEY, LAST_FETCH_TIME_KEY),
        )
        await self.db.execute("DELETE FROM category_snapshots")
        await self.db.commit()

    # Bookmarks and preferences

    async def get_bookmarks(self) -> List[Article]:
        return await self._get_articles(BOOKMARKS_KEY)

    async def set_bookmarks(self, articles: List[Article]) -> None:
        await self._set_item(BOOKMARKS_KEY, _encode_articles(articles))

    async def get_sort_option(self) -> SortOption:
        raw = await self._get_item(SORT_OPTION_KEY)
        if raw is None:
            return SortOption.NEWEST
        try:
            return SortOption(json.loads(raw))
        except ValueError as e:
            UnifiedLogger.get_logger(__name__).error(f"Corrupt sort option, using newest: {e}")
            return SortOption.NEWEST

    async def set_sort_option(self, option: SortOption) -> None:
        await self._set_item(SORT_OPTION_KEY, json.dumps(option.value))

    async def get_notification_settings(self) -> NotificationSettings:
        raw = await self._get_item(NOTIFICATION_SETTINGS_KEY)
        if raw is None:
            return NotificationSettings()
        try:
            data: Any = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("Expected a JSON object")
            return NotificationSettings.from_dict(data)
        except (ValueError, TypeError) as e:
            UnifiedLogger.get_logger(__name__).error(
                f"Corrupt notification settings, using defaults: {e}"
            )
            return NotificationSettings()

    async def set_notification_settings(self, settings: NotificationSettings) -> None:
        await self._set_item(NOTIFICATION_SETTINGS_KEY, json.dumps(settings.to_dict()))
