"""Configuration for news_cache.

Values come from environment variables, optionally seeded from a ``.env``
file in the working directory.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv


DEFAULT_API_BASE_URL = "https://newsapi.org/v2"
DEFAULT_PROBE_URL = "https://clients3.google.com/generate_204"


def _default_db_path() -> Path:
    return Path.home() / ".news_cache" / "news_cache.db"


@dataclass
class ReaderConfig:
    """Runtime configuration for the article cache."""

    name: str = "news_cache"
    api_base_url: str = DEFAULT_API_BASE_URL
    api_key: str = ""
    country: str = "us"
    page_size: int = 20
    request_timeout: float = 30.0
    db_path: Path = field(default_factory=_default_db_path)
    connectivity_probe_url: str = DEFAULT_PROBE_URL
    connectivity_interval: float = 15.0
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid integer for {name}: {raw!r}, using {default}"
        )
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid number for {name}: {raw!r}, using {default}"
        )
        return default


def load_config() -> ReaderConfig:
    """Build a ReaderConfig from the environment.

    Returns:
        Fresh ReaderConfig instance
    """
    load_dotenv(find_dotenv(usecwd=True))

    db_path = os.environ.get("NEWS_CACHE_DB_PATH")

    return ReaderConfig(
        api_base_url=os.environ.get("NEWS_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
        api_key=os.environ.get("NEWS_API_KEY", ""),
        country=os.environ.get("NEWS_CACHE_COUNTRY", "us"),
        page_size=_env_int("NEWS_CACHE_PAGE_SIZE", 20),
        request_timeout=_env_float("NEWS_CACHE_REQUEST_TIMEOUT", 30.0),
        db_path=Path(db_path) if db_path else _default_db_path(),
        connectivity_probe_url=os.environ.get("NEWS_CACHE_PROBE_URL", DEFAULT_PROBE_URL),
        connectivity_interval=_env_float("NEWS_CACHE_PROBE_INTERVAL", 15.0),
        log_level=os.environ.get("NEWS_CACHE_LOG_LEVEL", "INFO").upper(),
    )


_config: Optional[ReaderConfig] = None


def get_config() -> ReaderConfig:
    """Get or create the process-wide configuration."""
    global _config

    if _config is None:
        _config = load_config()

    return _config
