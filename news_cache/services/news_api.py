"""Headlines API client.

This module fetches paged article collections from the top-headlines and
search ("everything") endpoints. It holds no state between calls.
"""

from typing import Any, Dict, List, Optional

import httpx

from news_cache.config import ReaderConfig, get_config
from news_cache.errors import NetworkError
from news_cache.log_system.unified_logger import UnifiedLogger
from news_cache.models.schemas import Article, FeedPage


class NewsApiClient:
    """Remote feed client for a NewsAPI-compatible service."""

    def __init__(self, config: Optional[ReaderConfig] = None):
        if config is None:
            config = get_config()
        self.base_url = config.api_base_url.rstrip("/")
        self.api_key = config.api_key
        self.timeout = config.request_timeout

    async def fetch_headlines(
        self,
        country: str = "us",
        category: str = "",
        page_size: int = 20,
        page: int = 1,
    ) -> FeedPage:
        """Fetch one page of top headlines.

        Args:
            country: Two-letter region code
            category: Category key (empty string for the global feed)
            page_size: Articles per page
            page: 1-based page number

        Returns:
            FeedPage with the parsed articles

        Raises:
            NetworkError: On transport failure or non-2xx status
        """
        params: Dict[str, Any] = {
            "country": country,
            "pageSize": page_size,
            "page": page,
        }
        if category:
            params["category"] = category
        params["apiKey"] = self.api_key

        return await self._get("/top-headlines", params)

    async def search(self, query: str, page_size: int = 20, page: int = 1) -> FeedPage:
        """Search all articles for a query.

        Raises:
            NetworkError: On transport failure or non-2xx status
        """
        params = {
            "q": query,
            "pageSize": page_size,
            "page": page,
            "apiKey": self.api_key,
        }
        return await self._get("/everything", params)

    async def _get(self, path: str, params: Dict[str, Any]) -> FeedPage:
        logger = UnifiedLogger.get_logger(__name__)
        url = self.base_url + path
        logger.info(f"Requesting {url} page={params.get('page')}")

        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=self.timeout,
            headers={"User-Agent": "NewsCache/1.0 (Headlines Client)"},
        ) as client:
            try:
                response = await client.get(url, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"Feed request failed: {e}")
                raise NetworkError(
                    "Network response was not ok",
                    status_code=e.response.status_code,
                ) from e
            except httpx.HTTPError as e:
                logger.error(f"Feed request failed: {e}")
                raise NetworkError(f"Network request failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Feed response was not valid JSON: {e}")
            raise NetworkError("Invalid response body") from e

        if not isinstance(body, dict):
            raise NetworkError("Invalid response body")

        articles = _parse_articles(body.get("articles") or [])
        logger.info(f"Received {len(articles)} articles from {path}")
        return FeedPage(articles=articles, total_results=body.get("totalResults"))


def _parse_articles(items: Any) -> List[Article]:
    """Convert raw article dicts, skipping entries that are not valid articles."""
    logger = UnifiedLogger.get_logger(__name__)
    if not isinstance(items, list):
        logger.warning(f"Expected a list of articles, got {type(items).__name__}")
        return []

    articles = []
    for item in items:
        if not isinstance(item, dict) or not item.get("url"):
            continue
        try:
            articles.append(Article.from_dict(item))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed article: {e}")
    return articles
