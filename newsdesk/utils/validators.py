"""
NewsDesk Input Validators
=========================

Validation utilities for source URLs, article links and article titles.
"""

from typing import Optional
from urllib.parse import urlparse

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation and sanitization utilities."""

    ALLOWED_SCHEMES = {'http', 'https'}

    @classmethod
    def validate_feed_url(cls, url: str) -> str:
        """Validate a feed URL.

        Args:
            url: URL to validate

        Returns:
            The stripped URL

        Raises:
            ValidationError: If URL is invalid
        """
        if not url or not isinstance(url, str):
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url"
            )

        url = url.strip()

        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise ValidationError(
                f"Invalid URL format: {str(e)}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url"
            ) from e

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                f"URL scheme must be {' or '.join(sorted(cls.ALLOWED_SCHEMES))}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url"
            )

        if not parsed.netloc:
            raise ValidationError(
                "URL must include a hostname",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url"
            )

        return url

    @classmethod
    def is_article_url(cls, url: str) -> bool:
        """Check whether an entry link is an absolute http(s) URL."""
        try:
            parsed = urlparse(url.strip())
        except ValueError:
            return False
        return parsed.scheme.lower() in cls.ALLOWED_SCHEMES and bool(parsed.netloc)


class ContentValidator:
    """Heuristics for telling articles apart from feed noise."""

    MIN_TITLE_LENGTH = 5

    # Link-aggregator feeds emit a second entry per story pointing at the thread
    DISCUSSION_TITLES = {'comments'}

    @classmethod
    def is_discussion_link(cls, title: str) -> bool:
        """Check whether a title marks a discussion-thread entry."""
        return title.strip().lower() in cls.DISCUSSION_TITLES

    @classmethod
    def is_title_too_short(cls, title: str, min_length: Optional[int] = None) -> bool:
        """Check whether a title is too short to be an article headline."""
        if min_length is None:
            min_length = cls.MIN_TITLE_LENGTH
        return len(title) < min_length

