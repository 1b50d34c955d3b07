"""Data models for news_cache.

This module defines the core data structures for articles, bucket state and
notification payloads. Timestamps are parsed into aware datetimes at the
storage/wire boundary (``from_dict``) and formatted back in ``to_dict``.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

# Bucket key of the global (uncategorised) headlines feed
GLOBAL_FEED = ""

_TRUNCATION_MARKER = re.compile(r"\[\+\d+ chars\]$")

# Sorts after every real timestamp when ordering newest-first
EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Args:
        value: Timestamp string, e.g. "2024-05-01T10:00:00Z"

    Returns:
        datetime if parsed successfully, None otherwise
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _flag(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return default


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format a datetime as the ISO 8601 "Z" form used by the headlines API."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class SortOption(str, Enum):
    """Ordering applied to every bucket by publish time."""

    NEWEST = "newest"
    OLDEST = "oldest"


@dataclass(frozen=True)
class ArticleSource:
    """Publisher of an article."""

    name: str
    id: Optional[str] = None


@dataclass(frozen=True)
class Article:
    """Represents a single news item.

    The ``url`` is the identity of an article: two articles with the same url
    are the same article.
    """

    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    url_to_image: Optional[str] = None
    source: ArticleSource = field(default_factory=lambda: ArticleSource(name=""))
    author: Optional[str] = None
    published_at: Optional[datetime] = None
    raw_published_at: Optional[str] = field(default=None, compare=False, repr=False)

    @property
    def sort_key(self) -> datetime:
        return self.published_at or EPOCH

    @property
    def display_content(self) -> Optional[str]:
        """Content with the trailing "[+N chars]" truncation marker removed."""
        if self.content is None:
            return None
        return _TRUNCATION_MARKER.sub("", self.content).rstrip()

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title, description or content."""
        needle = query.lower()
        return any(
            needle in text.lower()
            for text in (self.title, self.description, self.content)
            if text
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        """Build an Article from a headlines-API shaped dict.

        Optional fields of the wrong type are dropped.

        Raises:
            ValueError: If ``url`` is missing or not a string
        """
        url = data.get("url")
        if not isinstance(url, str) or not url:
            raise ValueError(f"Article url must be a non-empty string, got {url!r}")

        source = data.get("source")
        if not isinstance(source, dict):
            source = {}

        published_raw = _text(data.get("publishedAt"))
        published_at = parse_timestamp(published_raw)
        return cls(
            url=url,
            title=_text(data.get("title")),
            description=_text(data.get("description")),
            content=_text(data.get("content")),
            url_to_image=_text(data.get("urlToImage")),
            source=ArticleSource(name=_text(source.get("name")) or "", id=_text(source.get("id"))),
            author=_text(data.get("author")),
            published_at=published_at,
            # Stored verbatim when unparseable
            raw_published_at=published_raw if published_at is None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": {"id": self.source.id, "name": self.source.name},
            "author": self.author,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "urlToImage": self.url_to_image,
            "publishedAt": format_timestamp(self.published_at) or self.raw_published_at,
            "content": self.content,
        }


@dataclass
class FeedPage:
    """One page returned by the headlines or search endpoint."""

    articles: List[Article]
    total_results: Optional[int] = None


@dataclass
class PaginationState:
    """Fetch state of a paginated bucket."""

    current_page: int = 1
    has_more_articles: bool = True
    is_loading: bool = False
    is_loading_more: bool = False

    @property
    def in_flight(self) -> bool:
        return self.is_loading or self.is_loading_more


@dataclass
class NotificationSettings:
    """User notification preferences."""

    enabled: bool = True
    breaking_news: bool = True
    daily_digest: bool = True
    categories: List[str] = field(default_factory=lambda: ["general"])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotificationSettings":
        """Build settings from stored preferences, defaulting bad values."""
        defaults = cls()

        categories = data.get("categories", defaults.categories)
        if isinstance(categories, str):
            categories = [categories]
        elif isinstance(categories, list):
            categories = [c for c in categories if isinstance(c, str)]
        else:
            categories = defaults.categories

        return cls(
            enabled=_flag(data.get("enabled"), defaults.enabled),
            breaking_news=_flag(data.get("breakingNews"), defaults.breaking_news),
            daily_digest=_flag(data.get("dailyDigest"), defaults.daily_digest),
            categories=categories,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "breakingNews": self.breaking_news,
            "dailyDigest": self.daily_digest,
            "categories": list(self.categories),
        }


@dataclass(frozen=True)
class NotificationPayload:
    """A user-visible alert. ``data["type"]`` drives deep-linking."""

    title: str
    body: str
    data: Dict[str, str]


@dataclass(frozen=True)
class FeedSnapshot:
    """Read-only copy of the engine state handed to consumers."""

    articles: List[Article]
    category_articles: Dict[str, List[Article]]
    search_results: List[Article]
    bookmarks: List[Article]
    pagination: Dict[str, PaginationState]
    sort_option: SortOption
    is_loading: bool
    is_offline: bool
    error: Optional[str]
