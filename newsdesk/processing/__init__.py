"""
NewsDesk Processing Module
==========================

Fetching and aggregation: per-source HTTP retrieval, then merging,
age filtering and ranking of the parsed items.
"""

from .feed_fetcher import FeedFetcher
from .aggregator import NewsAggregator, fetch_all_news

__all__ = [
    'FeedFetcher',
    'NewsAggregator',
    'fetch_all_news',
]
