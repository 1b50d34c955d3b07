"""Shared fixtures and fakes for news_cache tests."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from news_cache.config import ReaderConfig
from news_cache.engine.article_cache import ArticleCacheEngine
from news_cache.errors import NetworkError
from news_cache.models.schemas import Article, ArticleSource, FeedPage
from news_cache.services.connectivity import ConnectivityMonitor
from news_cache.services.notifications import NotificationDispatcher
from news_cache.storage.database import ArticleStore

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def at(hours: int) -> datetime:
    """T0 plus the given number of hours."""
    return T0 + timedelta(hours=hours)


def make_article(
    url: str,
    hours: int = 0,
    title: Optional[str] = None,
    description: Optional[str] = None,
    content: Optional[str] = None,
) -> Article:
    return Article(
        url=url,
        title=title if title is not None else f"Title {url}",
        description=description,
        content=content,
        source=ArticleSource(name="Example"),
        published_at=at(hours),
    )


class FakeFeedClient:
    """In-memory stand-in for NewsApiClient.

    ``pages[category]`` is the list of pages served for that category, page 1
    first. Pages past the end are empty.
    """

    def __init__(self) -> None:
        self.pages: Dict[str, List[List[Article]]] = {}
        self.search_results: List[Article] = []
        self.error: Optional[Exception] = None
        self.calls: List[tuple] = []

    async def fetch_headlines(self, country="us", category="", page_size=20, page=1) -> FeedPage:
        self.calls.append(("headlines", category, page))
        if self.error is not None:
            raise self.error
        pages = self.pages.get(category, [])
        articles = pages[page - 1] if page <= len(pages) else []
        return FeedPage(articles=list(articles))

    async def search(self, query, page_size=20, page=1) -> FeedPage:
        self.calls.append(("search", query, page))
        if self.error is not None:
            raise self.error
        return FeedPage(articles=list(self.search_results))


class RecordingDispatcher(NotificationDispatcher):
    def __init__(self, fail: bool = False) -> None:
        self.sent = []
        self.fail = fail

    async def dispatch(self, payload) -> None:
        if self.fail:
            raise RuntimeError("push service unavailable")
        self.sent.append(payload)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def config():
    return ReaderConfig(api_key="test-key", page_size=20)


@pytest.fixture
async def store():
    """Store backed by an in-memory database."""
    article_store = await ArticleStore.open(":memory:")
    yield article_store
    await article_store.close()


@pytest.fixture
def feed_client():
    return FakeFeedClient()


@pytest.fixture
def monitor():
    return ConnectivityMonitor(connected=True)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
async def engine(feed_client, store, monitor, dispatcher, config):
    cache_engine = ArticleCacheEngine(
        feed_client=feed_client,
        store=store,
        connectivity=monitor,
        dispatcher=dispatcher,
        config=config,
    )
    yield cache_engine
    await cache_engine.close()


def network_error() -> NetworkError:
    return NetworkError("Network response was not ok", status_code=500)
