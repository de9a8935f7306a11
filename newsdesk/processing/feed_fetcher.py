"""
Feed Fetcher
============

One HTTP GET per source, with failures isolated to that source.

Transport and HTTP failures never propagate: they come back as a FeedError
on the source's SourceFetchResult so the other sources are unaffected.
"""

import asyncio
import ssl
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import aiohttp
import certifi

from ..config.settings import NewsDeskSettings, get_settings
from ..ingestion.feed_parser import ParsedFeed, ParseOutcome, parse_feed_document
from ..models import FeedError, Source, SourceFetchResult
from ..utils.exceptions import ErrorCode, FeedFetchError, FeedIngestionError, FeedParseError
from ..utils.logging import LoggerAdapter, get_logger_for_component


class FeedFetcher:
    """Fetches and parses individual sources."""

    def __init__(self, settings: Optional[NewsDeskSettings] = None):
        """Initialize feed fetcher.

        Args:
            settings: Application settings (default: process-wide settings)
        """
        self.settings = settings or get_settings()
        self.timeout = self.settings.fetch.request_timeout
        self.max_items = self.settings.aggregation.max_items_per_source

        # SSL context for secure requests
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @property
    def headers(self):
        return {
            "User-Agent": self.settings.fetch.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
        }

    @asynccontextmanager
    async def get_session(self, max_connections: int = 10):
        """Get configured aiohttp session."""
        connector = aiohttp.TCPConnector(
            ssl=self.ssl_context,
            limit=max_connections * 2,
            limit_per_host=self.settings.fetch.limit_per_host,
            enable_cleanup_closed=True,
        )

        timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=self.headers
        ) as session:
            yield session

    async def fetch_source(
        self, source: Source, session: aiohttp.ClientSession
    ) -> SourceFetchResult:
        """Fetch and parse a single source.

        Args:
            source: Source to fetch
            session: aiohttp session for requests

        Returns:
            SourceFetchResult with items, or with an error and no items
        """
        start_time = datetime.now(timezone.utc)
        logger = get_logger_for_component("feed_fetcher", source_name=source.name)

        try:
            body = await self._download(source, session, logger)
            parsed = self._parse(body, source, logger)

            if parsed.outcome in (ParseOutcome.MALFORMED, ParseOutcome.UNSUPPORTED_DIALECT):
                # Reported as zero items, not as a FeedError
                logger.warning(
                    f"Feed {source.name} could not be parsed ({parsed.outcome.value}): "
                    f"{parsed.detail or 'no detail'}"
                )

            items = parsed.items[: self.max_items]

            logger.info(
                f"Fetched {len(items)} items from {source.name} "
                f"in {(datetime.now(timezone.utc) - start_time).total_seconds():.2f}s",
                extra={"dropped": parsed.dropped_count},
            )

            return SourceFetchResult(source=source, items=items, fetch_time=start_time)

        except FeedIngestionError as e:
            logger.warning(f"Feed fetch failed for {source.name}: {e.message}")
            return self._failure(source, e.message, start_time)

    def _parse(self, body: bytes, source: Source, logger: LoggerAdapter) -> ParsedFeed:
        """Parse a downloaded body.

        Raises:
            FeedParseError: If the parser itself fails
        """
        try:
            return parse_feed_document(
                body,
                source,
                summary_max_length=self.settings.aggregation.summary_max_length,
                min_title_length=self.settings.aggregation.min_title_length,
            )
        except Exception as e:
            logger.error(
                f"Parser failed on feed {source.name}: {e}",
                exc_info=True,
            )
            raise FeedParseError(
                str(e) or type(e).__name__,
                source_name=source.name,
                feed_url=source.url,
            ) from e

    async def _download(
        self, source: Source, session: aiohttp.ClientSession, logger: LoggerAdapter
    ) -> bytes:
        """GET the feed body.

        Raises:
            FeedFetchError: On non-2xx status, timeout or transport failure
        """
        logger.debug(f"Fetching feed: {source.url}")

        try:
            async with session.get(source.url, headers=self.headers) as response:
                if not 200 <= response.status < 300:
                    raise FeedFetchError(
                        f"HTTP {response.status}: {response.reason}",
                        status=response.status,
                        source_name=source.name,
                        feed_url=source.url,
                    )
                return await response.read()

        except asyncio.TimeoutError as e:
            raise FeedFetchError(
                f"Request timeout after {self.timeout}s",
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
                source_name=source.name,
                feed_url=source.url,
            ) from e

        except aiohttp.ClientError as e:
            raise FeedFetchError(
                str(e) or type(e).__name__,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
                source_name=source.name,
                feed_url=source.url,
            ) from e

    def _failure(self, source: Source, message: str, start_time: datetime) -> SourceFetchResult:
        return SourceFetchResult(
            source=source,
            error=FeedError(source=source.name, message=message),
            fetch_time=start_time,
        )
