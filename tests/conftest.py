"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for NewsDesk tests.

- Settings built without reading .env so local overrides never leak in
- Feed document builders for RSS 2.0 and Atom
- Fake aiohttp sessions that serve canned responses per URL
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Drop any NEWSDESK_* overrides from the invoking shell before settings load
for _key in [k for k in os.environ if k.startswith("NEWSDESK_")]:
    del os.environ[_key]


# Fixed "current time" for age filtering
NOW = datetime(2025, 12, 22, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Settings and Sources
# ============================================================================


@pytest.fixture
def test_settings():
    """Default settings, independent of any .env file."""
    from newsdesk.config.settings import NewsDeskSettings

    return NewsDeskSettings(_env_file=None)


@pytest.fixture
def make_source():
    """Factory for sources with a predictable URL."""
    from newsdesk.models import Category, Source

    def factory(name: str = "Test Source", category: Category = Category.TECH) -> Source:
        slug = name.lower().replace(" ", "-")
        return Source(name=name, url=f"https://{slug}.example.com/feed.xml", category=category)

    return factory


@pytest.fixture
def tech_source(make_source):
    return make_source("Test Source")


@pytest.fixture
def now():
    return NOW


# ============================================================================
# Feed Documents
# ============================================================================


@pytest.fixture
def build_rss():
    """Build an RSS 2.0 document from (title, link, pub_date, description) tuples."""

    def factory(items) -> str:
        rendered = []
        for title, link, pub_date, description in items:
            parts = ["<item>"]
            if title is not None:
                parts.append(f"<title><![CDATA[{title}]]></title>")
            if link is not None:
                parts.append(f"<link>{link}</link>")
            if pub_date is not None:
                parts.append(f"<pubDate>{pub_date}</pubDate>")
            if description is not None:
                parts.append(f"<description><![CDATA[{description}]]></description>")
            parts.append("</item>")
            rendered.append("".join(parts))

        return (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<rss version="2.0"><channel>'
            "<title>Test Feed</title><link>https://example.com</link>"
            "<description>Test feed</description>"
            f"{''.join(rendered)}"
            "</channel></rss>"
        )

    return factory


@pytest.fixture
def build_atom():
    """Build an Atom document from pre-rendered <entry> bodies."""

    def factory(entries) -> str:
        rendered = "".join(f"<entry>{entry}</entry>" for entry in entries)
        return (
            '<?xml version="1.0" encoding="utf-8"?>'
            '<feed xmlns="http://www.w3.org/2005/Atom">'
            "<title>Test Atom Feed</title>"
            '<link href="https://example.com/"/>'
            "<updated>2025-12-21T10:00:00Z</updated>"
            "<id>urn:uuid:60a76c80-d399-11d9-b93c-0003939e0af6</id>"
            f"{rendered}"
            "</feed>"
        )

    return factory


@pytest.fixture
def sample_rss_feed(build_rss):
    """Three dated items in document order, newest last."""
    return build_rss([
        ("First Article", "https://example.com/1", "Fri, 19 Dec 2025 08:00:00 GMT", "<p>First summary</p>"),
        ("Second Article", "https://example.com/2", "Sat, 20 Dec 2025 09:30:00 GMT", "Second summary"),
        ("Third Article", "https://example.com/3", "Sun, 21 Dec 2025 10:00:00 GMT", "Third summary"),
    ])


# ============================================================================
# HTTP Fakes
# ============================================================================


def _fake_response(status: int, body, reason: str):
    response = MagicMock()
    response.status = status
    response.reason = reason
    response.read = AsyncMock(return_value=body.encode("utf-8") if isinstance(body, str) else body)
    return response


@pytest.fixture
def make_session():
    """Factory for a fake aiohttp session.

    ``responses`` maps URL to either ``(status, body, reason)`` or an
    exception raised when the request is made.
    """

    def factory(responses):
        session = MagicMock()

        def get(url, **kwargs):
            outcome = responses[url]
            context_manager = MagicMock()
            if isinstance(outcome, BaseException):
                context_manager.__aenter__ = AsyncMock(side_effect=outcome)
            else:
                status, body, reason = outcome
                context_manager.__aenter__ = AsyncMock(return_value=_fake_response(status, body, reason))
            context_manager.__aexit__ = AsyncMock(return_value=False)
            return context_manager

        session.get = MagicMock(side_effect=get)
        return session

    return factory
