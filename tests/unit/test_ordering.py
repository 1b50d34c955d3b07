"""Unit tests for sorting, dedup and merging."""

from news_cache.engine.ordering import (
    dedupe_articles,
    filter_articles,
    merge_articles,
    sort_articles,
)
from news_cache.models.schemas import Article, SortOption

from ..conftest import make_article


def urls(articles):
    return [a.url for a in articles]


class TestSortArticles:

    def test_newest_first(self):
        articles = [make_article("a", 0), make_article("c", 2), make_article("b", 1)]

        assert urls(sort_articles(articles, SortOption.NEWEST)) == ["c", "b", "a"]

    def test_oldest_first(self):
        articles = [make_article("a", 0), make_article("c", 2), make_article("b", 1)]

        assert urls(sort_articles(articles, SortOption.OLDEST)) == ["a", "b", "c"]

    def test_resort_is_stable(self):
        articles = [make_article("x", 1), make_article("y", 1), make_article("z", 0)]

        once = sort_articles(articles, SortOption.NEWEST)
        twice = sort_articles(once, SortOption.NEWEST)

        assert once == twice

    def test_ties_ordered_regardless_of_input_order(self):
        forward = [make_article("x", 1), make_article("y", 1)]
        backward = list(reversed(forward))

        assert sort_articles(forward, SortOption.OLDEST) == sort_articles(backward, SortOption.OLDEST)

    def test_missing_publish_time_sorts_as_oldest(self):
        undated = Article(url="undated")
        articles = [undated, make_article("dated", 0)]

        assert urls(sort_articles(articles, SortOption.NEWEST)) == ["dated", "undated"]
        assert urls(sort_articles(articles, SortOption.OLDEST)) == ["undated", "dated"]


class TestDedupe:

    def test_one_entry_per_url(self):
        articles = [make_article("a"), make_article("b"), make_article("a")]

        assert sorted(urls(dedupe_articles(articles))) == ["a", "b"]

    def test_last_occurrence_wins(self):
        old = make_article("a", title="Old headline")
        new = make_article("a", title="New headline")

        result = dedupe_articles([old, new])

        assert len(result) == 1
        assert result[0].title == "New headline"


class TestMerge:

    def test_merge_appends_and_sorts(self):
        existing = [make_article("b", 1), make_article("a", 0)]
        incoming = [make_article("c", 3)]

        merged = merge_articles(existing, incoming, SortOption.NEWEST)

        assert urls(merged) == ["c", "b", "a"]

    def test_merge_overwrites_duplicates_with_incoming(self):
        existing = [make_article("a", 0, title="stale")]
        incoming = [make_article("a", 0, title="fresh")]

        merged = merge_articles(existing, incoming, SortOption.NEWEST)

        assert len(merged) == 1
        assert merged[0].title == "fresh"


class TestFilter:

    def test_matches_title_description_and_content(self):
        articles = [
            make_article("t", title="Climate summit opens"),
            make_article("d", title="Other", description="On CLIMATE policy"),
            make_article("c", title="Other", content="the climate [+200 chars]"),
            make_article("n", title="Sports roundup"),
        ]

        assert urls(filter_articles(articles, "climate")) == ["t", "d", "c"]

    def test_no_matches(self):
        assert filter_articles([make_article("a", title="Markets")], "climate") == []
