"""Article cache engine.

The engine owns every in-memory bucket (global feed, per-category feeds,
search results, bookmarks) and keeps them sorted, deduplicated and in sync
with the persistent store. When the network is unavailable or a request
fails it serves the last persisted snapshot instead.

Consumers read state through ``snapshot()`` or by subscribing to change
events; they never mutate buckets directly.

Public operations do not raise on network or storage failures. Those are
turned into the ``error`` field plus a best-effort fallback.
"""

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional

import aiosqlite

from news_cache.config import ReaderConfig, get_config
from news_cache.engine.delta import notify_changes
from news_cache.engine.ordering import (
    dedupe_articles,
    filter_articles,
    merge_articles,
    sort_articles,
)
from news_cache.errors import NewsCacheError
from news_cache.log_system.unified_logger import UnifiedLogger
from news_cache.models.schemas import (
    GLOBAL_FEED,
    Article,
    FeedSnapshot,
    NotificationSettings,
    PaginationState,
    SortOption,
)
from news_cache.services.connectivity import ConnectivityMonitor, HttpConnectivityMonitor
from news_cache.services.news_api import NewsApiClient
from news_cache.services.notifications import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    daily_digest_payload,
    self_test_payload,
)
from news_cache.storage.database import ArticleStore

NO_OFFLINE_DATA = "No cached articles available offline"
SHOWING_CACHED_DATA = "Showing cached articles. Please check your connection."
NO_OFFLINE_MATCHES = "No matching articles found in offline mode"

StateListener = Callable[[FeedSnapshot], None]


class ArticleCacheEngine:
    """Read-through/write-back cache over a paginated headlines feed.

    Args:
        feed_client: Remote feed client (``fetch_headlines`` / ``search``)
        store: Persistent article store
        connectivity: Connectivity monitor
        dispatcher: Where notifications go (logs them if not provided)
        config: Optional configuration (uses get_config() if not provided)
        owns_store: Close the store when the engine is closed
    """

    def __init__(
        self,
        feed_client: NewsApiClient,
        store: ArticleStore,
        connectivity: ConnectivityMonitor,
        dispatcher: Optional[NotificationDispatcher] = None,
        config: Optional[ReaderConfig] = None,
        owns_store: bool = False,
    ):
        if config is None:
            config = get_config()

        self.feed_client = feed_client
        self.store = store
        self.connectivity = connectivity
        self.dispatcher = dispatcher or LoggingNotificationDispatcher()
        self.country = config.country
        self.page_size = config.page_size
        self.owns_store = owns_store

        self.articles: List[Article] = []
        self.category_articles: Dict[str, List[Article]] = {}
        self.search_results: List[Article] = []
        self.bookmarks: List[Article] = []
        self.sort_option = SortOption.NEWEST
        self.pagination: Dict[str, PaginationState] = {}
        self.is_searching = False
        self.is_offline = not connectivity.is_connected()
        self.error: Optional[str] = None

        # Latest request generation per bucket; older responses are dropped
        self._generations: Dict[str, int] = {}
        self._search_generation = 0
        self._listeners: List[StateListener] = []
        self._unsubscribe_connectivity = connectivity.subscribe(self._on_connectivity_change)
        self._watch_task: Optional[asyncio.Task] = None

    async def initialize(self) -> None:
        """Load preferences and bookmarks, and hydrate feeds from the store."""
        logger = UnifiedLogger.get_logger(__name__)

        self.sort_option = await self.store.get_sort_option()
        self.bookmarks = sort_articles(await self.store.get_bookmarks(), self.sort_option)

        if not self.articles:
            self.articles = sort_articles(
                await self.store.get_cached(GLOBAL_FEED), self.sort_option
            )

        for category, articles in (await self.store.get_cached_categories()).items():
            if not self.category_articles.get(category):
                self.category_articles[category] = sort_articles(articles, self.sort_option)

        logger.info(
            f"Engine initialized: {len(self.articles)} cached articles, "
            f"{len(self.category_articles)} categories, {len(self.bookmarks)} bookmarks, "
            f"sort={self.sort_option.value}"
        )
        self._emit()

    def watch_connectivity(self, interval: float) -> None:
        """Poll the connectivity monitor in a background task until close()."""
        if self._watch_task is not None:
            return
        self._watch_task = asyncio.create_task(self.connectivity.watch(interval))

    async def close(self) -> None:
        """Stop listening to connectivity changes and release owned resources."""
        self._unsubscribe_connectivity()

        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

        if self.owns_store:
            self.owns_store = False
            await self.store.close()

    # State access

    @property
    def is_loading(self) -> bool:
        return self.is_searching or any(s.in_flight for s in self.pagination.values())

    def get_bucket(self, category: str = GLOBAL_FEED) -> List[Article]:
        if category == GLOBAL_FEED:
            return self.articles
        return self.category_articles.get(category, [])

    def get_pagination(self, category: str = GLOBAL_FEED) -> PaginationState:
        if category not in self.pagination:
            self.pagination[category] = PaginationState()
        return self.pagination[category]

    def snapshot(self) -> FeedSnapshot:
        """Copy of the current state, safe to hand to consumers."""
        return FeedSnapshot(
            articles=list(self.articles),
            category_articles={k: list(v) for k, v in self.category_articles.items()},
            search_results=list(self.search_results),
            bookmarks=list(self.bookmarks),
            pagination={k: replace(v) for k, v in self.pagination.items()},
            sort_option=self.sort_option,
            is_loading=self.is_loading,
            is_offline=self.is_offline,
            error=self.error,
        )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call listener with a fresh snapshot after every state change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                UnifiedLogger.get_logger(__name__).error(f"State listener failed: {e}")

    def _on_connectivity_change(self, connected: bool) -> None:
        self.is_offline = not connected
        self._emit()

    def _set_bucket(self, category: str, articles: List[Article]) -> None:
        if category == GLOBAL_FEED:
            self.articles = articles
        else:
            self.category_articles[category] = articles

    def _is_current(self, category: str, generation: int) -> bool:
        return self._generations.get(category) == generation

    # Feed operations

    async def fetch_feed(
        self,
        category: str = GLOBAL_FEED,
        page: int = 1,
        is_refresh: bool = False,
    ) -> None:
        """Fetch one page of a feed bucket, falling back to the store.

        Page 1 (or a refresh) replaces the bucket and resets pagination;
        later pages are merged into it. Results are observed through the
        bucket, pagination state and ``error``.

        Args:
            category: Category key, or GLOBAL_FEED
            page: 1-based page number
            is_refresh: Reset to page 1 regardless of page
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")

        logger = UnifiedLogger.get_logger(__name__)
        bucket_name = category or "global feed"

        state = self.get_pagination(category)
        generation = self._generations.get(category, 0) + 1
        self._generations[category] = generation

        first_page = is_refresh or page == 1
        if first_page:
            page = 1
            state.current_page = 1
            state.has_more_articles = True
            state.is_loading = True
        else:
            state.is_loading_more = True

        self.error = None
        online = self.connectivity.is_connected()
        self.is_offline = not online
        self._emit()

        try:
            if not online:
                logger.warning(f"Offline, serving cached {bucket_name}")
                cached = await self.store.get_cached(category)
                if self._is_current(category, generation):
                    self._set_bucket(category, sort_articles(cached, self.sort_option))
                    if not cached:
                        self.error = NO_OFFLINE_DATA
                return

            logger.info(f"Fetching {bucket_name} page {page}")
            try:
                result = await self.feed_client.fetch_headlines(
                    self.country, category, self.page_size, page
                )
            except NewsCacheError as e:
                logger.error(f"Fetching {bucket_name} failed: {e}")
                await self._fall_back_to_cache(category, generation, str(e))
                return

            if not self._is_current(category, generation):
                logger.info(f"Dropping superseded response for {bucket_name} page {page}")
                return

            previous = self.get_bucket(category)
            if first_page:
                updated = sort_articles(dedupe_articles(result.articles), self.sort_option)
            else:
                updated = merge_articles(previous, result.articles, self.sort_option)

            self._set_bucket(category, updated)
            state.has_more_articles = len(result.articles) > 0
            state.current_page = page
            logger.info(
                f"{bucket_name} now has {len(updated)} articles "
                f"(page {page}, has_more={state.has_more_articles})"
            )

            try:
                await self.store.set_cached(category, updated)
            except aiosqlite.Error as e:
                logger.error(f"Error caching {bucket_name}: {e}")

            if first_page:
                await notify_changes(category, result.articles, previous, self.store, self.dispatcher)

        finally:
            if self._is_current(category, generation):
                state.is_loading = False
                state.is_loading_more = False
                self._emit()

    async def _fall_back_to_cache(self, category: str, generation: int, message: str) -> None:
        cached = await self.store.get_cached(category)
        if not self._is_current(category, generation):
            return

        self.error = message
        if cached:
            self._set_bucket(category, sort_articles(cached, self.sort_option))
            self.error = SHOWING_CACHED_DATA

    async def load_more(self, category: str = GLOBAL_FEED) -> None:
        """Fetch the next page unless one is in flight or the feed is exhausted."""
        state = self.get_pagination(category)
        if state.in_flight or not state.has_more_articles:
            UnifiedLogger.get_logger(__name__).debug(
                f"load_more skipped for {category or 'global feed'}: "
                f"in_flight={state.in_flight}, has_more={state.has_more_articles}"
            )
            return

        await self.fetch_feed(category, state.current_page + 1, is_refresh=False)

    async def search(self, query: str) -> None:
        """Replace the search results with articles matching query.

        Offline, the persisted feeds and bookmarks are searched locally.
        On a failed online search the previous results are kept.
        """
        if not query or not query.strip():
            self.clear_search()
            return

        logger = UnifiedLogger.get_logger(__name__)
        query = query.strip()

        self._search_generation += 1
        generation = self._search_generation
        self.is_searching = True
        self.error = None
        online = self.connectivity.is_connected()
        self.is_offline = not online
        self._emit()

        try:
            if online:
                logger.info(f"Searching for {query!r}")
                try:
                    result = await self.feed_client.search(query, self.page_size, 1)
                except NewsCacheError as e:
                    logger.error(f"Search for {query!r} failed: {e}")
                    if generation == self._search_generation:
                        self.error = str(e)
                    return

                if generation == self._search_generation:
                    self.search_results = sort_articles(
                        dedupe_articles(result.articles), self.sort_option
                    )
                return

            logger.warning(f"Offline, searching cached articles for {query!r}")
            results = await self._search_offline(query)
            if generation == self._search_generation:
                self.search_results = results
                if not results:
                    self.error = NO_OFFLINE_MATCHES

        finally:
            if generation == self._search_generation:
                self.is_searching = False
                self._emit()

    async def _search_offline(self, query: str) -> List[Article]:
        candidates = list(await self.store.get_cached(GLOBAL_FEED))
        for articles in (await self.store.get_cached_categories()).values():
            candidates.extend(articles)
        candidates.extend(self.bookmarks)

        matches = filter_articles(dedupe_articles(candidates), query)
        return sort_articles(matches, self.sort_option)

    def clear_search(self) -> None:
        self.search_results = []
        self._emit()

    async def set_sort_option(self, option: SortOption) -> None:
        """Persist the sort preference and re-sort every bucket."""
        option = SortOption(option)
        logger = UnifiedLogger.get_logger(__name__)

        self.sort_option = option
        try:
            await self.store.set_sort_option(option)
        except aiosqlite.Error as e:
            logger.error(f"Error saving sort option: {e}")

        option = self.sort_option
        self.articles = sort_articles(self.articles, option)
        self.category_articles = {
            category: sort_articles(articles, option)
            for category, articles in self.category_articles.items()
        }
        self.search_results = sort_articles(self.search_results, option)
        self.bookmarks = sort_articles(self.bookmarks, option)
        logger.info(f"Sort option set to {option.value}")
        self._emit()

    # Bookmarks

    async def toggle_bookmark(self, article: Article) -> bool:
        """Add or remove a bookmark and persist the bookmark list.

        Returns:
            True if the article is bookmarked afterwards
        """
        if self.is_bookmarked(article.url):
            self.bookmarks = [a for a in self.bookmarks if a.url != article.url]
            bookmarked = False
        else:
            self.bookmarks = sort_articles([*self.bookmarks, article], self.sort_option)
            bookmarked = True
        self._emit()

        try:
            await self.store.set_bookmarks(list(self.bookmarks))
        except aiosqlite.Error as e:
            UnifiedLogger.get_logger(__name__).error(f"Error saving bookmarks: {e}")

        return bookmarked

    def is_bookmarked(self, url: str) -> bool:
        return any(a.url == url for a in self.bookmarks)

    def resolve_article(self, url: str) -> Optional[Article]:
        """Find an article by url in feed, search, bookmarks, then categories."""
        for bucket in (self.articles, self.search_results, self.bookmarks):
            for article in bucket:
                if article.url == url:
                    return article
        for articles in self.category_articles.values():
            for article in articles:
                if article.url == url:
                    return article
        return None

    # Cache maintenance

    async def clear_cache(self) -> None:
        """Drop persisted feed snapshots. Bookmarks and preferences are kept."""
        try:
            await self.store.clear()
        except aiosqlite.Error as e:
            UnifiedLogger.get_logger(__name__).error(f"Error clearing article cache: {e}")

    async def get_last_fetch_time(self, category: str = GLOBAL_FEED) -> Optional[datetime]:
        return await self.store.get_last_fetch_time(category)

    # Notifications

    async def get_notification_settings(self) -> NotificationSettings:
        return await self.store.get_notification_settings()

    async def update_notification_settings(self, settings: NotificationSettings) -> None:
        try:
            await self.store.set_notification_settings(settings)
        except aiosqlite.Error as e:
            UnifiedLogger.get_logger(__name__).error(f"Error saving notification settings: {e}")

    async def send_daily_digest(self) -> bool:
        """Send the daily digest alert if the user has it enabled.

        Returns:
            True if a notification was dispatched
        """
        logger = UnifiedLogger.get_logger(__name__)
        try:
            settings = await self.store.get_notification_settings()
            if not settings.enabled or not settings.daily_digest:
                return False
            await self.dispatcher.dispatch(daily_digest_payload())
            return True
        except Exception as e:
            logger.error(f"Error sending daily digest: {e}")
            return False

    async def send_test_notification(self) -> bool:
        try:
            await self.dispatcher.dispatch(self_test_payload())
            return True
        except Exception as e:
            UnifiedLogger.get_logger(__name__).error(f"Error sending test notification: {e}")
            return False


async def create_engine(
    config: Optional[ReaderConfig] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> ArticleCacheEngine:
    """Build an engine wired to the live API, the on-disk store and an HTTP probe.

    Args:
        config: Optional configuration (uses get_config() if not provided)
        dispatcher: Optional notification dispatcher

    The engine owns its store and a background connectivity watcher;
    release both with ``await engine.close()``.

    Returns:
        Initialized ArticleCacheEngine
    """
    if config is None:
        config = get_config()

    UnifiedLogger.initialize_default(config)

    store = await ArticleStore.open(config.db_path)
    monitor = HttpConnectivityMonitor(config)
    await monitor.check()

    engine = ArticleCacheEngine(
        feed_client=NewsApiClient(config),
        store=store,
        connectivity=monitor,
        dispatcher=dispatcher,
        config=config,
        owns_store=True,
    )
    try:
        await engine.initialize()
    except Exception:
        await engine.close()
        raise

    engine.watch_connectivity(config.connectivity_interval)
    return engine
