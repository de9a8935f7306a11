"""
NewsDesk Data Models
====================

Pydantic data models shared by the parser, fetcher and aggregator.
Every instance is built fresh per aggregation call; nothing here is persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, Field, field_validator

from .utils.exceptions import ValidationError
from .utils.validators import URLValidator


class Category(str, Enum):
    """Closed set of source categories."""
    TECH = "tech"
    DEV = "dev"
    AI = "ai"
    GENERAL = "general"


class Source(BaseModel):
    """One configured external feed."""
    name: str = Field(..., min_length=1, description="Unique display name, also a branding key")
    url: str = Field(..., description="Fetchable feed endpoint")
    category: Category = Field(..., description="Category inherited by every item")

    model_config = {"frozen": True}

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        """Only http(s) endpoints can be fetched."""
        try:
            return URLValidator.validate_feed_url(v)
        except ValidationError as e:
            raise ValueError(e.message) from e

    def __str__(self) -> str:
        return f"Source({self.name})"


class NewsItem(BaseModel):
    """Canonical article shape produced regardless of feed dialect."""
    id: str = Field(..., min_length=1, description="Digest of url and source name")
    title: str = Field(..., min_length=1, description="HTML-stripped headline")
    summary: str = Field(default="", description="HTML-stripped, truncated summary")
    source: str = Field(..., min_length=1, description="Originating source name")
    url: str = Field(..., min_length=1, description="Article link")
    published_at: datetime = Field(..., description="Publication time in UTC")
    category: Category

    @field_validator('published_at')
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Normalize publication time to aware UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation."""
        return self.model_dump(mode="json")

    def __str__(self) -> str:
        return f"NewsItem({self.title[:50]}...)"


class FeedError(BaseModel):
    """Per-source failure record; never aborts the aggregation."""
    source: str = Field(..., description="Name of the failed source")
    message: str = Field(..., description="Human-readable cause")


class FetchNewsResult(BaseModel):
    """Aggregation output: ranked items plus per-source errors."""
    items: List[NewsItem] = Field(default_factory=list)
    errors: List[FeedError] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation for rendering layers."""
        return self.model_dump(mode="json")


@dataclass
class SourceFetchResult:
    """Result of fetching one source."""

    source: Source
    items: List[NewsItem] = field(default_factory=list)
    error: Optional[FeedError] = None
    fetch_time: Optional[datetime] = None

    def __post_init__(self):
        if not self.fetch_time:
            self.fetch_time = datetime.now(timezone.utc)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def item_count(self) -> int:
        return len(self.items)
