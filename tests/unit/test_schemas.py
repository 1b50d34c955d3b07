"""Unit tests for data models."""

from datetime import datetime, timezone

import pytest

from news_cache.models.schemas import (
    Article,
    NotificationSettings,
    format_timestamp,
    parse_timestamp,
)


class TestTimestamps:

    def test_parse_z_suffix(self):
        assert parse_timestamp("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

    def test_parse_offset_normalized_to_utc(self):
        parsed = parse_timestamp("2024-05-01T12:00:00+02:00")

        assert parsed == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
        assert parsed.tzinfo == timezone.utc

    def test_parse_naive_assumed_utc(self):
        assert parse_timestamp("2024-05-01T10:00:00") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

    def test_parse_invalid(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_format(self):
        assert format_timestamp(datetime(2024, 5, 1, 10, tzinfo=timezone.utc)) == "2024-05-01T10:00:00Z"
        assert format_timestamp(None) is None


class TestArticle:

    def test_display_content_strips_marker(self):
        article = Article(url="u", content="Stocks rose sharply… [+2100 chars]")

        assert article.display_content == "Stocks rose sharply…"
        assert article.content == "Stocks rose sharply… [+2100 chars]"

    def test_display_content_without_marker(self):
        assert Article(url="u", content="Complete text").display_content == "Complete text"
        assert Article(url="u").display_content is None

    def test_from_dict_tolerates_missing_fields(self):
        article = Article.from_dict({"url": "https://a.com", "source": None})

        assert article.title is None
        assert article.source.name == ""
        assert article.published_at is None

    def test_from_dict_ignores_wrongly_typed_fields(self):
        article = Article.from_dict({"url": "https://a.com", "source": "BBC", "title": 3, "author": {}})

        assert article.source.name == ""
        assert article.title is None
        assert article.author is None

    def test_from_dict_requires_string_url(self):
        with pytest.raises(ValueError):
            Article.from_dict({"url": 42})
        with pytest.raises(ValueError):
            Article.from_dict({"title": "no url"})

    def test_unparseable_published_at_round_trips(self):
        article = Article.from_dict({"url": "https://a.com", "publishedAt": "last Tuesday"})

        assert article.published_at is None
        assert article.to_dict()["publishedAt"] == "last Tuesday"
        assert article == Article(url="https://a.com")

    def test_to_dict_uses_api_field_names(self):
        article = Article.from_dict({
            "url": "https://a.com",
            "urlToImage": "https://a.com/img.png",
            "publishedAt": "2024-05-01T10:00:00Z",
            "source": {"id": "a", "name": "A"},
        })

        data = article.to_dict()

        assert data["urlToImage"] == "https://a.com/img.png"
        assert data["publishedAt"] == "2024-05-01T10:00:00Z"
        assert data["source"] == {"id": "a", "name": "A"}

    def test_matches(self):
        article = Article(url="u", title="Climate Summit", description=None, content=None)

        assert article.matches("climate")
        assert article.matches("SUMMIT")
        assert not article.matches("election")


class TestNotificationSettings:

    def test_from_dict_fills_defaults(self):
        settings = NotificationSettings.from_dict({"breakingNews": False})

        assert settings.enabled is True
        assert settings.breaking_news is False
        assert settings.categories == ["general"]

    def test_from_dict_reads_string_flags(self):
        settings = NotificationSettings.from_dict({"enabled": "false", "dailyDigest": "TRUE"})

        assert settings.enabled is False
        assert settings.daily_digest is True

    def test_from_dict_defaults_unrecognised_flags(self):
        settings = NotificationSettings.from_dict({"enabled": "nope", "breakingNews": 0})

        assert settings.enabled is True
        assert settings.breaking_news is True

    def test_from_dict_categories(self):
        assert NotificationSettings.from_dict({"categories": "business"}).categories == ["business"]
        assert NotificationSettings.from_dict({"categories": ["tech", 5]}).categories == ["tech"]
        assert NotificationSettings.from_dict({"categories": 7}).categories == ["general"]
