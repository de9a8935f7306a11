"""
Feed Source Registry
====================

Static list of feeds the aggregator reads, plus the retention tunables.
Order matters only for display; the aggregation output is ordered by date.
"""

from typing import List, Optional, Sequence

from ..models import Category, Source
from ..utils.exceptions import ConfigurationError, ErrorCode


# Maximum age of news items in days
MAX_AGE_DAYS = 5

# Maximum items kept per source
MAX_ITEMS_PER_SOURCE = 20


DEFAULT_SOURCES: List[Source] = [
    Source(name="Hacker News", url="https://news.ycombinator.com/rss", category=Category.TECH),
    Source(name="AP", url="https://feedx.net/rss/ap.xml", category=Category.GENERAL),
    Source(name="BBC Tech", url="https://feeds.bbci.co.uk/news/technology/rss.xml", category=Category.TECH),
    Source(name="NPR News", url="https://feeds.npr.org/1001/rss.xml", category=Category.GENERAL),
    Source(name="NPR Tech", url="https://feeds.npr.org/1019/rss.xml", category=Category.TECH),
    Source(name="DR Nyheder", url="https://www.dr.dk/nyheder/service/feeds/allenyheder", category=Category.GENERAL),
    Source(
        name="MIT Tech AI",
        url="https://www.technologyreview.com/topic/artificial-intelligence/feed",
        category=Category.AI,
    ),
    Source(name="VentureBeat AI", url="https://venturebeat.com/category/ai/feed/", category=Category.AI),
    Source(name="VS Code", url="https://code.visualstudio.com/feed.xml", category=Category.DEV),
]


def validate_sources(sources: Sequence[Source]) -> List[Source]:
    """Check that source names are unique.

    Raises:
        ConfigurationError: If two sources share a name
    """
    seen = set()
    for source in sources:
        if source.name in seen:
            raise ConfigurationError(
                f"Duplicate source name: {source.name}",
                config_key="sources",
                error_code=ErrorCode.CONFIG_INVALID,
            )
        seen.add(source.name)
    return list(sources)


def get_source(name: str, sources: Optional[Sequence[Source]] = None) -> Optional[Source]:
    """Look up a source by name."""
    for source in sources if sources is not None else DEFAULT_SOURCES:
        if source.name == name:
            return source
    return None
