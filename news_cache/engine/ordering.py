"""Sorting, deduplication and merging of article lists.

All functions are pure and return new lists.
"""

from typing import Iterable, List

from news_cache.models.schemas import Article, SortOption


def sort_articles(articles: Iterable[Article], option: SortOption) -> List[Article]:
    """Order articles by publish time.

    Ties on publish time are broken by url so the result is a total order:
    re-sorting an already sorted list never moves anything.
    """
    return sorted(
        articles,
        key=lambda a: (a.sort_key, a.url),
        reverse=option == SortOption.NEWEST,
    )


def dedupe_articles(articles: Iterable[Article]) -> List[Article]:
    """Keep one article per url. The last occurrence's fields win."""
    by_url = {}
    for article in articles:
        by_url[article.url] = article
    return list(by_url.values())


def merge_articles(
    existing: Iterable[Article],
    incoming: Iterable[Article],
    option: SortOption,
) -> List[Article]:
    """Append incoming to existing, dedupe by url and sort."""
    return sort_articles(dedupe_articles([*existing, *incoming]), option)


def filter_articles(articles: Iterable[Article], query: str) -> List[Article]:
    """Articles whose title, description or content contains query (any case)."""
    return [a for a in articles if a.matches(query)]
