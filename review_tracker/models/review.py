from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ANONYMOUS = "Anonymous"

MAX_CONTENT_CHARS = 1000
MAX_AUTHOR_CHARS = 100
MAX_TITLE_CHARS = 200
KEY_CONTENT_PREFIX = 50

FeedMode = Literal["listing", "syndication"]

IdentityKey = Union[str, Tuple[str, str, str]]


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Review(BaseModel):
    """A single normalized review. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    date: dt.date = Field(..., description="Review date (day precision)")
    rating: int = Field(..., ge=1, le=5, description="Star rating 1-5")
    content: str = Field(..., description="Review text, at most 1000 characters")
    author: str = Field(default=ANONYMOUS, description="Author display name")
    reviewUrl: Optional[str] = Field(default=None, description="Absolute URL of the source entry")
    title: Optional[str] = Field(default=None, description="Review title")
    id: Optional[str] = Field(default=None, description="Stable upstream identifier, if any")

    @field_validator("content", mode="before")
    @classmethod
    def _cap_content(cls, v: Any) -> Any:
        return v[:MAX_CONTENT_CHARS] if isinstance(v, str) else v

    @field_validator("author", mode="before")
    @classmethod
    def _cap_author(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return ANONYMOUS
        return v[:MAX_AUTHOR_CHARS] if isinstance(v, str) else v

    @field_validator("title", mode="before")
    @classmethod
    def _cap_title(cls, v: Any) -> Any:
        return v[:MAX_TITLE_CHARS] if isinstance(v, str) else v

    @field_validator("reviewUrl", "id", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def identity_key(self) -> IdentityKey:
        """Explicit id when present, else (author, date, content prefix)."""
        if self.id:
            return self.id
        return (self.author, self.date.isoformat(), self.content[:KEY_CONTENT_PREFIX])

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class PluginRecord(BaseModel):
    """All known reviews for one tracked plugin.

    ``totalReviews`` is recomputed on validation and duplicate identity keys
    collapse to the last occurrence, so a loaded record always satisfies the
    uniqueness and count invariants.
    """

    slug: str = Field(..., description="Lowercase plugin slug")
    name: Optional[str] = Field(default=None, description="Cleaned display name")
    reviews: List[Review] = Field(default_factory=list)
    lastUpdated: dt.datetime = Field(default_factory=_utcnow)
    totalReviews: int = 0

    @field_validator("slug", mode="before")
    @classmethod
    def _normalize_slug(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            if not v:
                raise ValueError("slug must be a non-empty string")
        return v

    @field_validator("reviews")
    @classmethod
    def _unique_reviews(cls, v: List[Review]) -> List[Review]:
        by_key: Dict[IdentityKey, Review] = {}
        for review in v:
            by_key[review.identity_key()] = review
        return list(by_key.values())

    @model_validator(mode="after")
    def _sync_total(self) -> "PluginRecord":
        self.totalReviews = len(self.reviews)
        return self

    def identity_keys(self) -> set:
        return {r.identity_key() for r in self.reviews}

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class PluginInfo(BaseModel):
    """Descriptor returned by the plugin info endpoint."""

    slug: str
    name: Optional[str] = None
    num_ratings: int = Field(default=0, description="Review count reported upstream")
    exists: bool = True


# --- API payloads ---

class PluginCreate(BaseModel):
    slug: str = Field(..., description="Plugin slug as shown in wordpress.org/plugins/{slug}/")
    mode: FeedMode = Field(default="syndication", description="Feed shape to ingest")


class RefreshResponse(BaseModel):
    slug: str
    ok: bool
    fetched: int = 0
    totalReviews: int = 0
    warnings: List[str] = Field(default_factory=list)
    record: Optional[PluginRecord] = None


class ImportSummary(BaseModel):
    plugins_created: int = 0
    plugins_merged: int = 0
    reviews_total: int = 0
    slugs: List[str] = Field(default_factory=list)
