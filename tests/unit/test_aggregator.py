"""
News Aggregator Tests
=====================

Concurrent fan-out, failure isolation, age filtering and ordering.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from newsdesk.config.settings import AggregationSettings, FetchSettings
from newsdesk.config.sources import DEFAULT_SOURCES
from newsdesk.models import Category, NewsItem
from newsdesk.processing.aggregator import (
    NewsAggregator,
    fetch_all_news,
    filter_by_age,
    sort_by_date,
)
from newsdesk.utils.exceptions import ConfigurationError


def _rfc2822(moment: datetime) -> str:
    return moment.strftime("%a, %d %b %Y %H:%M:%S GMT")


def _item(title: str, published_at: datetime, source: str = "Test Source") -> NewsItem:
    return NewsItem(
        id=title.lower().replace(" ", "-"),
        title=title,
        source=source,
        url=f"https://example.com/{title.lower().replace(' ', '-')}",
        published_at=published_at,
        category=Category.TECH,
    )


@pytest.fixture
def three_sources(make_source):
    return [
        make_source("Source A", Category.TECH),
        make_source("Source B", Category.AI),
        make_source("Source C", Category.GENERAL),
    ]


@pytest.fixture
def feed_for(build_rss, now):
    """RSS body whose items are published ``hours`` ago, in the given order."""

    def factory(prefix: str, hours):
        return build_rss([
            (f"{prefix} story {h}h", f"https://example.com/{prefix}/{h}", _rfc2822(now - timedelta(hours=h)), None)
            for h in hours
        ])

    return factory


class TestHelpers:
    """Test filtering and ordering helpers."""

    def test_sort_by_date_newest_first(self, now):
        items = [_item("Old Story", now - timedelta(days=2)), _item("New Story", now), _item("Mid Story", now - timedelta(days=1))]

        assert [item.title for item in sort_by_date(items)] == ["New Story", "Mid Story", "Old Story"]

    def test_sort_by_date_is_stable_for_ties(self, now):
        items = [_item("First Tie", now), _item("Second Tie", now), _item("Third Tie", now)]

        assert [item.title for item in sort_by_date(items)] == ["First Tie", "Second Tie", "Third Tie"]

    def test_filter_by_age_keeps_cutoff_boundary(self, now):
        cutoff = now - timedelta(days=5)
        items = [
            _item("At Cutoff", cutoff),
            _item("Just Before", cutoff - timedelta(seconds=1)),
            _item("Recent Story", now),
        ]

        assert [item.title for item in filter_by_age(items, cutoff)] == ["At Cutoff", "Recent Story"]


class TestNewsAggregator:
    """Test the full aggregation over fake sessions."""

    @pytest.mark.asyncio
    async def test_partial_failure_isolation(self, three_sources, feed_for, make_session, test_settings, now):
        a, b, c = three_sources
        session = make_session({
            a.url: (200, feed_for("a", [1, 5]), "OK"),
            b.url: (500, "", "Internal Server Error"),
            c.url: (200, feed_for("c", [3]), "OK"),
        })
        aggregator = NewsAggregator(three_sources, test_settings, now=lambda: now)

        result = await aggregator.fetch_all_news(session=session)

        assert {item.source for item in result.items} == {"Source A", "Source C"}
        assert len(result.items) == 3
        assert len(result.errors) == 1
        assert result.errors[0].source == "Source B"
        assert result.errors[0].message == "HTTP 500: Internal Server Error"

    @pytest.mark.asyncio
    async def test_items_sorted_newest_first_across_sources(self, three_sources, feed_for, make_session, test_settings, now):
        a, b, c = three_sources
        session = make_session({
            a.url: (200, feed_for("a", [10, 2]), "OK"),
            b.url: (200, feed_for("b", [7, 1]), "OK"),
            c.url: (200, feed_for("c", [4]), "OK"),
        })

        result = await NewsAggregator(three_sources, test_settings, now=lambda: now).fetch_all_news(session=session)

        published = [item.published_at for item in result.items]
        assert published == sorted(published, reverse=True)
        assert [item.title for item in result.items][:2] == ["b story 1h", "a story 2h"]

    @pytest.mark.asyncio
    async def test_old_items_filtered(self, three_sources, feed_for, make_session, test_settings, now):
        a, b, c = three_sources
        session = make_session({
            a.url: (200, feed_for("a", [1, 24 * 6]), "OK"),
            b.url: (200, feed_for("b", [24 * 10]), "OK"),
            c.url: (200, feed_for("c", [24 * 4]), "OK"),
        })

        result = await NewsAggregator(three_sources, test_settings, now=lambda: now).fetch_all_news(session=session)

        cutoff = now - timedelta(days=test_settings.aggregation.max_age_days)
        assert [item.title for item in result.items] == ["a story 1h", "c story 96h"]
        assert all(item.published_at >= cutoff for item in result.items)
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_per_source_cap(self, make_source, feed_for, make_session, test_settings, now):
        source = make_source("Busy Source")
        settings = test_settings.model_copy(update={"aggregation": AggregationSettings(max_items_per_source=3)})
        session = make_session({source.url: (200, feed_for("busy", range(1, 11)), "OK")})

        result = await NewsAggregator([source], settings, now=lambda: now).fetch_all_news(session=session)

        assert len(result.items) == 3

    @pytest.mark.asyncio
    async def test_all_default_sources_fail(self, make_session, test_settings, now):
        session = make_session({source.url: (500, "", "Internal Server Error") for source in DEFAULT_SOURCES})

        result = await fetch_all_news(settings=test_settings, session=session)

        assert result.items == []
        assert len(result.errors) == 9
        assert {error.source for error in result.errors} == {source.name for source in DEFAULT_SOURCES}

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_feed_error(self, three_sources, feed_for, make_session, test_settings, now):
        a, b, c = three_sources
        session = make_session({
            a.url: (200, feed_for("a", [1]), "OK"),
            c.url: (200, feed_for("c", [2]), "OK"),
        })
        aggregator = NewsAggregator(three_sources, test_settings, now=lambda: now)
        real_fetch = aggregator.fetcher.fetch_source

        async def flaky_fetch(source, active_session):
            if source.name == "Source B":
                raise RuntimeError("boom")
            return await real_fetch(source, active_session)

        aggregator.fetcher.fetch_source = flaky_fetch

        result = await aggregator.fetch_all_news(session=session)

        assert len(result.items) == 2
        assert len(result.errors) == 1
        assert result.errors[0].source == "Source B"
        assert "boom" in result.errors[0].message

    @pytest.mark.asyncio
    async def test_no_sources(self, test_settings):
        result = await NewsAggregator([], test_settings).fetch_all_news()

        assert result.items == []
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_creates_and_closes_own_session(self, three_sources, test_settings, now):
        aggregator = NewsAggregator(three_sources, test_settings, now=lambda: now)

        with patch.object(aggregator.fetcher, "fetch_source", new_callable=AsyncMock) as fetch_source:
            fetch_source.side_effect = lambda source, session: _empty_result(source)
            result = await aggregator.fetch_all_news()

        assert fetch_source.await_count == 3
        session = fetch_source.await_args_list[0].args[1]
        assert session.closed
        assert result.items == []

    def test_duplicate_sources_rejected(self, make_source, test_settings):
        source = make_source("Same Name")
        with pytest.raises(ConfigurationError):
            NewsAggregator([source, source], test_settings)

    def test_concurrency_defaults_to_source_count(self, three_sources, test_settings):
        assert NewsAggregator(three_sources, test_settings).max_concurrent == 3

    def test_concurrency_override(self, three_sources, test_settings):
        settings = test_settings.model_copy(update={"fetch": FetchSettings(max_concurrent=1)})
        assert NewsAggregator(three_sources, settings).max_concurrent == 1

    def test_cutoff_uses_injected_clock(self, three_sources, test_settings):
        fixed = datetime(2025, 1, 10, tzinfo=timezone.utc)
        aggregator = NewsAggregator(three_sources, test_settings, now=lambda: fixed)
        assert aggregator.cutoff() == datetime(2025, 1, 5, tzinfo=timezone.utc)


def _empty_result(source):
    from newsdesk.models import SourceFetchResult

    return SourceFetchResult(source=source)
