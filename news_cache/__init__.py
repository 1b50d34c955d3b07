"""news_cache - offline-aware article cache and synchronization layer."""

__version__ = "0.1.0"
