"""Logging system for news_cache."""
