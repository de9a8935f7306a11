"""
NewsDesk - RSS/Atom News Aggregator
===================================

Fetches a fixed set of news feeds concurrently and merges them into one
date-ordered list of normalized items.

Main Components:
- Configuration: static source registry plus environment-driven settings
- Ingestion: RSS 2.0 / Atom parsing, HTML stripping, summary truncation
- Processing: per-source fetching with isolated failures, aggregation
"""

__version__ = "1.0.0"
__author__ = "NewsDesk Development Team"
__description__ = "Concurrent RSS/Atom news aggregator"

# Core imports for easy access
from .config.settings import get_settings
from .config.sources import DEFAULT_SOURCES
from .models import FeedError, FetchNewsResult, NewsItem, Source
from .processing.aggregator import fetch_all_news
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import NewsDeskError

__all__ = [
    "get_settings",
    "DEFAULT_SOURCES",
    "FeedError",
    "FetchNewsResult",
    "NewsItem",
    "Source",
    "fetch_all_news",
    "configure_application_logging",
    "get_logger_for_component",
    "NewsDeskError",
]
