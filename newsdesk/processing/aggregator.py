"""
News Aggregator
===============

Fans out one fetch per source, waits for all of them to settle, then merges
the results into a single date-ordered list.

Pipeline stages:
1. Concurrent fetch and parse of every source
2. Concatenation of items and collection of per-source errors
3. Age filter against a single cutoff instant
4. Stable sort by publication time, newest first
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

import aiohttp

from ..config.settings import NewsDeskSettings, get_settings
from ..config.sources import DEFAULT_SOURCES, validate_sources
from ..models import FeedError, FetchNewsResult, NewsItem, Source, SourceFetchResult
from ..utils.exceptions import handle_exception
from ..utils.logging import PerformanceLogger, get_logger_for_component
from .feed_fetcher import FeedFetcher


def filter_by_age(items: Sequence[NewsItem], cutoff: datetime) -> List[NewsItem]:
    """Keep items published at or after the cutoff."""
    return [item for item in items if item.published_at >= cutoff]


def sort_by_date(items: Sequence[NewsItem]) -> List[NewsItem]:
    """Newest first. Equal timestamps keep their incoming order."""
    return sorted(items, key=lambda item: item.published_at, reverse=True)


class NewsAggregator:
    """Aggregates news items from a set of sources."""

    def __init__(
        self,
        sources: Optional[Sequence[Source]] = None,
        settings: Optional[NewsDeskSettings] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize aggregator.

        Args:
            sources: Sources to read (default: DEFAULT_SOURCES)
            settings: Application settings (default: process-wide settings)
            now: Clock used for the age cutoff (default: current UTC time)
        """
        self.sources = validate_sources(DEFAULT_SOURCES if sources is None else sources)
        self.settings = settings or get_settings()
        self.now = now or (lambda: datetime.now(timezone.utc))
        self.fetcher = FeedFetcher(self.settings)
        self.logger = get_logger_for_component("aggregator")

    @property
    def max_concurrent(self) -> int:
        return self.settings.fetch.max_concurrent or max(len(self.sources), 1)

    def cutoff(self) -> datetime:
        """Oldest publication time still kept."""
        return self.now() - timedelta(days=self.settings.aggregation.max_age_days)

    async def fetch_all_news(
        self, session: Optional[aiohttp.ClientSession] = None
    ) -> FetchNewsResult:
        """Fetch every source concurrently and merge the results.

        Never raises for feed-level failures: each one is reported as a
        FeedError naming its source.

        Args:
            session: Existing aiohttp session to reuse (optional)

        Returns:
            FetchNewsResult with date-ordered items and per-source errors
        """
        if not self.sources:
            return FetchNewsResult()

        with PerformanceLogger(
            self.logger, "news aggregation", source_count=len(self.sources)
        ) as perf:
            async with self._session(session) as active_session:
                results = await self._fetch_sources(active_session)

            items: List[NewsItem] = []
            errors: List[FeedError] = []
            for result in results:
                items.extend(result.items)
                if result.error:
                    errors.append(result.error)

            fresh = filter_by_age(items, self.cutoff())
            ranked = sort_by_date(fresh)

        self.logger.info(
            f"Aggregated {len(ranked)} items from {len(self.sources) - len(errors)}/"
            f"{len(self.sources)} sources ({len(items) - len(fresh)} too old, "
            f"{len(errors)} errors) in {perf.duration:.2f}s"
        )

        return FetchNewsResult(items=ranked, errors=errors)

    async def _fetch_sources(
        self, session: aiohttp.ClientSession
    ) -> List[SourceFetchResult]:
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def fetch_with_semaphore(source: Source) -> SourceFetchResult:
            async with semaphore:
                return await self.fetcher.fetch_source(source, session)

        tasks = [fetch_with_semaphore(source) for source in self.sources]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        # Results stay aligned with self.sources
        final_results = []
        for source, result in zip(self.sources, results):
            if isinstance(result, Exception):
                error = handle_exception(
                    result,
                    self.logger,
                    "fetch_source",
                    context={"source": source.name},
                )
                final_results.append(
                    SourceFetchResult(
                        source=source,
                        error=FeedError(source=source.name, message=error.message),
                    )
                )
            elif isinstance(result, BaseException):
                # Cancellation and interpreter exits are not feed failures
                raise result
            else:
                final_results.append(result)

        return final_results

    @asynccontextmanager
    async def _session(self, session: Optional[aiohttp.ClientSession]):
        """Yield the caller's session, or a fresh one closed afterwards."""
        if session is not None:
            yield session
            return

        async with self.fetcher.get_session(self.max_concurrent) as own_session:
            yield own_session


async def fetch_all_news(
    sources: Optional[Sequence[Source]] = None,
    settings: Optional[NewsDeskSettings] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> FetchNewsResult:
    """Fetch, merge, filter and rank news from all sources.

    Args:
        sources: Sources to read (default: DEFAULT_SOURCES)
        settings: Application settings (default: process-wide settings)
        session: Existing aiohttp session to reuse (optional)

    Returns:
        FetchNewsResult; never raises for feed failures
    """
    aggregator = NewsAggregator(sources=sources, settings=settings)
    return await aggregator.fetch_all_news(session=session)
