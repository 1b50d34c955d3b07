"""Services for news_cache."""

from .connectivity import ConnectivityMonitor, HttpConnectivityMonitor
from .news_api import NewsApiClient
from .notifications import LoggingNotificationDispatcher, NotificationDispatcher

__all__ = [
    "ConnectivityMonitor",
    "HttpConnectivityMonitor",
    "NewsApiClient",
    "LoggingNotificationDispatcher",
    "NotificationDispatcher",
]
