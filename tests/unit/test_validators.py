"""
Validator Tests
===============

Feed URL, article link and title heuristics.
"""

import inspect
from typing import Optional

import pytest

from newsdesk.utils.exceptions import ErrorCode, ValidationError
from newsdesk.utils.validators import ContentValidator, URLValidator


class TestURLValidator:
    """Test feed and article URL checks."""

    def test_feed_url_is_stripped(self):
        assert URLValidator.validate_feed_url("  https://example.com/feed  ") == "https://example.com/feed"

    @pytest.mark.parametrize("url,code", [
        ("", ErrorCode.VALIDATION_REQUIRED_FIELD),
        ("ftp://example.com/feed", ErrorCode.VALIDATION_INVALID_FORMAT),
        ("https:///feed", ErrorCode.VALIDATION_INVALID_FORMAT),
    ])
    def test_invalid_feed_url(self, url, code):
        with pytest.raises(ValidationError) as exc_info:
            URLValidator.validate_feed_url(url)
        assert exc_info.value.error_code == code

    @pytest.mark.parametrize("url", [
        "https://example.com/story",
        "http://example.com/story?id=1",
        "HTTPS://EXAMPLE.COM/story",
    ])
    def test_article_url_accepted(self, url):
        assert URLValidator.is_article_url(url)

    @pytest.mark.parametrize("url", [
        "",
        "12345",
        "/relative/path",
        "mailto:editor@example.com",
        "ftp://example.com/file",
        "https://",
        "http://[broken",
    ])
    def test_article_url_rejected(self, url):
        assert not URLValidator.is_article_url(url)


class TestContentValidator:
    """Test headline heuristics."""

    def test_default_min_length_used_when_unset(self):
        assert ContentValidator.is_title_too_short("Hi")
        assert ContentValidator.is_title_too_short("Hi", min_length=None)
        assert not ContentValidator.is_title_too_short("Hello")

    def test_explicit_min_length(self):
        assert not ContentValidator.is_title_too_short("Hi", min_length=2)
        assert ContentValidator.is_title_too_short("Hello", min_length=10)

    def test_min_length_annotated_optional(self):
        parameter = inspect.signature(ContentValidator.is_title_too_short).parameters["min_length"]
        assert parameter.annotation == Optional[int]

    @pytest.mark.parametrize("title", ["Comments", "  comments ", "COMMENTS"])
    def test_discussion_link(self, title):
        assert ContentValidator.is_discussion_link(title)

    def test_article_title_is_not_discussion_link(self):
        assert not ContentValidator.is_discussion_link("Comments on the new release")
