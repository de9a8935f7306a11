"""
Feed Parser
===========

Turns one RSS 2.0 or Atom document into canonical NewsItems.

Decoding is delegated to feedparser. Everything after that happens in two
separate steps:

1. Field decoding: extract_text / extract_link normalize the handful of
   shapes a tolerant XML decoder produces for "the value of a field"
   (plain strings, CDATA text, attribute dicts, lists of link dicts).
2. Validation: entries missing a title, link or date, and heuristic junk
   such as discussion-thread links, are dropped.

Parsing never raises on bad input; a document that cannot be understood
yields no items and an explicit ParseOutcome saying why.
"""

import calendar
import hashlib
import io
import re
import time
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

import feedparser
from dateutil.parser import isoparse

from ..models import NewsItem, Source
from ..utils.logging import get_logger_for_component
from ..utils.validators import ContentValidator, URLValidator
from .content_cleaner import strip_html, truncate


SUMMARY_MAX_LENGTH = 200
ID_LENGTH = 16

# Keys under which decoders expose element text, in lookup order.
# "value" is feedparser's detail-dict key.
TEXT_KEYS = ("#cdata-section", "#text", "_", "value")

# Keys under which decoders expose a link target, in lookup order
LINK_KEYS = ("@_href", "@href", "href", "#text")

RawField = Union[None, str, Mapping, list, tuple, Any]

# encoding="..." pseudo-attribute of a leading XML declaration
XML_DECLARED_ENCODING = re.compile(
    r"""^(\ufeff?\s*<\?xml\b[^>]*?\bencoding\s*=\s*)(["'])[^"']*\2""",
    re.IGNORECASE,
)

logger = get_logger_for_component("feed_parser")


class FeedDialect(str, Enum):
    """XML dialects the parser understands."""
    RSS = "rss"
    ATOM = "atom"
    UNKNOWN = "unknown"


class ParseOutcome(str, Enum):
    """Why a document produced the items it did."""
    OK = "ok"
    EMPTY = "empty"
    MALFORMED = "malformed"
    UNSUPPORTED_DIALECT = "unsupported_dialect"


@dataclass(frozen=True)
class DialectFields:
    """Entry fields consulted for each canonical attribute, in priority order."""
    link: Tuple[str, ...]
    date: Tuple[str, ...]
    rich_content: Tuple[str, ...]
    plain_summary: Tuple[str, ...]


DIALECT_FIELDS: Dict[FeedDialect, DialectFields] = {
    # <link> text; <pubDate>; <content:encoded> or <description>
    FeedDialect.RSS: DialectFields(
        link=("link",),
        date=("published", "updated"),
        rich_content=("content",),
        plain_summary=("summary",),
    ),
    # <link href> elements; <published> then <updated>; <content> or <summary>
    FeedDialect.ATOM: DialectFields(
        link=("links",),
        date=("published", "updated"),
        rich_content=("content",),
        plain_summary=("summary",),
    ),
}


@dataclass
class ParsedFeed:
    """Result of parsing one feed document."""

    outcome: ParseOutcome
    dialect: FeedDialect
    items: List[NewsItem] = field(default_factory=list)
    dropped: Counter = field(default_factory=Counter)
    detail: Optional[str] = None

    @property
    def dropped_count(self) -> int:
        return sum(self.dropped.values())


# ---------------------------------------------------------------------------
# Field decoding
# ---------------------------------------------------------------------------


def extract_text(value: RawField) -> str:
    """Return the text of a decoded field.

    Handles plain and CDATA strings, dicts exposing the text under one of
    TEXT_KEYS, and lists of such values (first non-empty wins). Anything else
    is stringified; None becomes "".
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        for key in TEXT_KEYS:
            if key in value:
                return extract_text(value[key])
        return str(value)
    if isinstance(value, (list, tuple)):
        for part in value:
            text = extract_text(part)
            if text.strip():
                return text
        return ""
    return str(value)


def extract_link(value: RawField) -> str:
    """Return the target of a decoded link field, or "" when there is none.

    Handles plain strings, dicts exposing the target under one of LINK_KEYS,
    and lists of such values where the first non-empty target wins.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, Mapping):
        for key in LINK_KEYS:
            candidate = value.get(key)
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
        return ""
    if isinstance(value, (list, tuple)):
        for candidate in value:
            link = extract_link(candidate)
            if link:
                return link
    return ""


def parse_date(value: RawField) -> Optional[datetime]:
    """Parse an RFC 2822 or ISO 8601 timestamp into an aware UTC datetime.

    Returns None for empty, absent or unparseable input. Timestamps without an
    offset are taken to be UTC.
    """
    if isinstance(value, datetime):
        return _as_utc(value)

    text = extract_text(value).strip()
    if not text:
        return None

    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError, OverflowError):
        parsed = None

    if parsed is None:
        try:
            parsed = isoparse(text)
        except (ValueError, OverflowError):
            return None

    try:
        return _as_utc(parsed)
    except (ValueError, OverflowError):
        # Offset conversion can push a year-1 or year-9999 value out of range
        return None


def generate_id(url: str, source: str = "") -> str:
    """Short lowercase-hex digest of a source name and URL.

    Mixing in the source keeps the same article syndicated by two feeds apart,
    while refetching the same feed reproduces the same id.
    """
    digest = hashlib.sha256(f"{source}|{url}".encode("utf-8")).hexdigest()
    return digest[:ID_LENGTH]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _struct_to_datetime(value: Any) -> Optional[datetime]:
    """Convert feedparser's UTC struct_time into a datetime."""
    if not isinstance(value, time.struct_time):
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


# ---------------------------------------------------------------------------
# Document parsing
# ---------------------------------------------------------------------------


def detect_dialect(document: Any) -> FeedDialect:
    """Classify a decoded document by its root element.

    feedparser records the root it saw (<rss>/<rdf:RDF> or <feed>) in
    ``version``; documents with any other root are unknown.
    """
    version = (document.get("version") or "").lower()
    if version.startswith("rss"):
        return FeedDialect.RSS
    if version.startswith("atom"):
        return FeedDialect.ATOM
    return FeedDialect.UNKNOWN


def parse_feed_document(
    raw: Union[str, bytes, None],
    source: Source,
    summary_max_length: int = SUMMARY_MAX_LENGTH,
    min_title_length: int = ContentValidator.MIN_TITLE_LENGTH,
) -> ParsedFeed:
    """Parse one feed body into items with an explicit outcome.

    Bytes are handed to feedparser untouched so it can honour the encoding
    the document declares. Text has already been decoded, so it is
    re-encoded as UTF-8 and any declared encoding is rewritten to match.

    Args:
        raw: Feed body as text or undecoded bytes
        source: Source the body was fetched from
        summary_max_length: Summary bound, ellipsis included
        min_title_length: Titles shorter than this are dropped

    Returns:
        ParsedFeed with items in document order
    """
    if raw is None or not raw.strip():
        return ParsedFeed(ParseOutcome.MALFORMED, FeedDialect.UNKNOWN, detail="empty body")

    if isinstance(raw, str):
        raw = _declare_utf8(raw).encode("utf-8")

    # A stream is never mistaken for a URL or file path by feedparser
    document = feedparser.parse(io.BytesIO(raw))

    dialect = detect_dialect(document)
    bozo_detail = str(document.get("bozo_exception", "")) or None

    if dialect is FeedDialect.UNKNOWN:
        outcome = ParseOutcome.MALFORMED if document.get("bozo") else ParseOutcome.UNSUPPORTED_DIALECT
        return ParsedFeed(outcome, dialect, detail=bozo_detail)

    entries = document.get("entries") or []
    if not entries:
        outcome = ParseOutcome.MALFORMED if document.get("bozo") else ParseOutcome.EMPTY
        return ParsedFeed(outcome, dialect, detail=bozo_detail)

    if document.get("bozo"):
        logger.debug(
            f"Feed from {source.name} has parse warnings but contains entries: {bozo_detail}"
        )

    result = ParsedFeed(ParseOutcome.OK, dialect, detail=bozo_detail)
    fields = DIALECT_FIELDS[dialect]

    for entry in entries:
        try:
            item, reason = _build_item(
                entry, source, fields, summary_max_length, min_title_length
            )
        except (ValueError, TypeError, OverflowError) as e:
            # pydantic's ValidationError is a ValueError
            item, reason = None, "invalid"
            logger.debug(f"Entry rejected in feed {source.name}: {e}")

        if item is None:
            result.dropped[reason] += 1
        else:
            result.items.append(item)

    if not result.items:
        result.outcome = ParseOutcome.MALFORMED if document.get("bozo") else ParseOutcome.EMPTY

    if result.dropped:
        logger.debug(
            f"Dropped {result.dropped_count} entries from {source.name}: {dict(result.dropped)}"
        )

    return result


def parse_feed(
    raw: Union[str, bytes, None],
    source: Source,
    summary_max_length: int = SUMMARY_MAX_LENGTH,
    min_title_length: int = ContentValidator.MIN_TITLE_LENGTH,
) -> List[NewsItem]:
    """Parse one feed body into items; [] when nothing usable was found."""
    return parse_feed_document(
        raw,
        source,
        summary_max_length=summary_max_length,
        min_title_length=min_title_length,
    ).items


def _declare_utf8(text: str) -> str:
    return XML_DECLARED_ENCODING.sub(r"\1\2utf-8\2", text, count=1)


def _first_field(entry: Mapping, names: Tuple[str, ...]) -> Any:
    for name in names:
        value = entry.get(name)
        if value:
            return value
    return None


def _link_is_guid(entry: Mapping, link: str) -> bool:
    """Whether ``link`` was copied from a permalink <guid> rather than a <link>.

    feedparser fills an entry's link from its guid when no <link> element
    came first. Real <link> elements always land in ``links`` as well.
    """
    if not entry.get("guidislink"):
        return False
    return not any(
        isinstance(candidate, Mapping) and extract_link(candidate) == link
        for candidate in entry.get("links") or []
    )


def _entry_published_at(entry: Mapping, names: Tuple[str, ...]) -> Optional[datetime]:
    """Date from the first present date field.

    Falls back to feedparser's own parse of that same field, which knows
    more legacy formats than RFC 2822 and ISO 8601.
    """
    for name in names:
        raw = entry.get(name)
        if raw:
            return parse_date(raw) or _struct_to_datetime(entry.get(f"{name}_parsed"))
    return None


def _build_item(
    entry: Mapping,
    source: Source,
    fields: DialectFields,
    summary_max_length: int,
    min_title_length: int,
) -> Tuple[Optional[NewsItem], Optional[str]]:
    """Build one item, or return the reason it was dropped."""
    title = strip_html(extract_text(entry.get("title")))
    if not title:
        return None, "missing_title"

    link = extract_link(_first_field(entry, fields.link))
    if not link or _link_is_guid(entry, link):
        return None, "missing_link"

    if not URLValidator.is_article_url(link):
        return None, "invalid_link"

    published_at = _entry_published_at(entry, fields.date)
    if published_at is None:
        return None, "missing_date"

    if ContentValidator.is_discussion_link(title):
        return None, "discussion_link"

    if ContentValidator.is_title_too_short(title, min_length=min_title_length):
        return None, "short_title"

    summary = strip_html(extract_text(_first_field(entry, fields.rich_content)))
    if not summary:
        summary = strip_html(extract_text(_first_field(entry, fields.plain_summary)))

    item = NewsItem(
        id=generate_id(link, source.name),
        title=title,
        summary=truncate(summary, summary_max_length),
        source=source.name,
        url=link,
        published_at=published_at,
        category=source.category,
    )
    return item, None
