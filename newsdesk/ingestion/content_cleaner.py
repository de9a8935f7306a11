"""
Content Cleaner
===============

HTML-to-text utilities applied to feed titles and summaries.

This module provides:
- HTML tag removal with entity decoding
- Whitespace normalization
- Length bounding with an ellipsis marker
"""

import re
import html
import warnings
from typing import Any, Optional

from bs4 import BeautifulSoup, Comment, MarkupResemblesLocatorWarning
from bs4.builder import ParserRejectedMarkup

from newsdesk.utils.logging import get_logger_for_component

# Short summaries such as "example.com" trip bs4's filename/URL heuristics
warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)


class ContentCleaner:
    """
    Stateless HTML cleaner producing single-line plain text.

    Features:
    - Drops elements whose text is never article content (scripts, styles)
    - Decodes HTML entities, with &nbsp; becoming a plain space
    - Collapses every whitespace run, newlines included, to one space
    """

    # HTML elements to remove including their content
    NON_CONTENT_ELEMENTS = {
        "script",
        "style",
        "noscript",
        "iframe",
        "object",
        "embed",
        "template",
    }

    WHITESPACE_PATTERN = re.compile(r"\s+")
    TAG_PATTERN = re.compile(r"<[^>]*>")

    ELLIPSIS = "..."

    def __init__(self, parser: str = "html.parser"):
        """Initialize content cleaner.

        Args:
            parser: BeautifulSoup tree builder (built-in parser by default)
        """
        self.parser = parser
        self.logger = get_logger_for_component("content_cleaner")

    def strip_html(self, html_content: Optional[str]) -> str:
        """
        Remove all markup from an HTML fragment.

        Args:
            html_content: HTML fragment (may be plain text)

        Returns:
            Trimmed plain text with normalized whitespace
        """
        if not html_content or not html_content.strip():
            return ""

        try:
            soup = BeautifulSoup(html_content, self.parser)

            for element in soup(self.NON_CONTENT_ELEMENTS):
                element.decompose()

            for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
                comment.extract()

            text = soup.get_text()

        except ParserRejectedMarkup as e:
            self.logger.warning(f"HTML parser rejected markup, using fallback: {e}")
            return self._strip_html_fallback(html_content)

        return self._normalize_whitespace(text)

    def truncate(self, text: str, max_length: int) -> str:
        """
        Bound text length, marking the cut with an ellipsis.

        Args:
            text: Text to bound
            max_length: Maximum length of the result, ellipsis included

        Returns:
            The text unchanged when it fits, otherwise exactly max_length chars
            ending in the ellipsis marker
        """
        if len(text) <= max_length:
            return text

        if max_length <= len(self.ELLIPSIS):
            return text[: max(max_length, 0)]

        return text[: max_length - len(self.ELLIPSIS)] + self.ELLIPSIS

    def _normalize_whitespace(self, text: str) -> str:
        return self.WHITESPACE_PATTERN.sub(" ", text).strip()

    def _strip_html_fallback(self, html_content: str) -> str:
        """Regex-based tag removal for markup the parser refuses."""
        text = self.TAG_PATTERN.sub("", html_content)
        text = html.unescape(text)
        return self._normalize_whitespace(text)


_cleaner = ContentCleaner()


def strip_html(html_content: Any) -> str:
    """Remove tags, decode entities, collapse whitespace and trim."""
    if html_content is None:
        return ""
    return _cleaner.strip_html(str(html_content))


def truncate(text: str, max_length: int) -> str:
    """Bound text to max_length characters, ending in '...' when cut."""
    return _cleaner.truncate(text, max_length)
