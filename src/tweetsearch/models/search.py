"""Search-related models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchQuery(BaseModel):
    """A single search request."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1)
    max_results: int = Field(default=10, ge=1, le=100)

    @field_validator("text")
    @classmethod
    def _strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("query text must not be blank")
        return v


class JobHandle(BaseModel):
    """Opaque identifier of one in-flight upstream job."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)


class JobStatusKind(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


class JobStatus(BaseModel):
    """Status of a job as reported by one poll."""

    model_config = ConfigDict(frozen=True)

    kind: JobStatusKind
    reason: str | None = None

    @classmethod
    def pending(cls) -> JobStatus:
        return cls(kind=JobStatusKind.PENDING)

    @classmethod
    def processing(cls) -> JobStatus:
        return cls(kind=JobStatusKind.PROCESSING)

    @classmethod
    def done(cls) -> JobStatus:
        return cls(kind=JobStatusKind.DONE)

    @classmethod
    def failed(cls, reason: str) -> JobStatus:
        return cls(kind=JobStatusKind.FAILED, reason=reason)

    @property
    def is_terminal(self) -> bool:
        return self.kind in (JobStatusKind.DONE, JobStatusKind.FAILED)


class EngagementMetrics(BaseModel):
    """Interaction counts of a post."""

    retweet_count: int = Field(default=0, ge=0)
    like_count: int = Field(default=0, ge=0)
    quote_count: int = Field(default=0, ge=0)
    reply_count: int = Field(default=0, ge=0)
    bookmark_count: int = Field(default=0, ge=0)


# Upstream key -> our field name
_UPSTREAM_METRIC_KEYS = {
    "RetweetCount": "retweet_count",
    "LikeCount": "like_count",
    "QuoteCount": "quote_count",
    "ReplyCount": "reply_count",
    "BookmarkCount": "bookmark_count",
}


class ResultItem(BaseModel):
    """A single search result item.

    `score` is only ever set by the ranking step, never by the upstream.
    """

    id: str
    content: str = ""
    metrics: EngagementMetrics = Field(default_factory=EngagementMetrics)
    score: float | None = None
    source_url: str | None = None

    @classmethod
    def from_upstream(cls, raw: dict[str, Any]) -> ResultItem:
        """Parse an item in the upstream wire shape.

        The upstream spells fields `ID`, `Content`, `Metadata.public_metrics.*Count`.
        Missing, negative or non-numeric counts are read as zero; a non-object
        `Metadata` or `public_metrics` counts as missing, as does a non-string `URL`.
        """

        metadata = raw.get("Metadata")
        public = metadata.get("public_metrics") if isinstance(metadata, dict) else None
        if not isinstance(public, dict):
            public = {}
        metrics: dict[str, int] = {}
        for upstream_key, field_name in _UPSTREAM_METRIC_KEYS.items():
            try:
                value = int(public.get(upstream_key) or 0)
            except (TypeError, ValueError):
                value = 0
            metrics[field_name] = max(value, 0)

        url = raw.get("URL") or raw.get("url")
        return cls(
            id=str(raw.get("ID") or raw.get("id") or ""),
            content=str(raw.get("Content") or raw.get("content") or ""),
            metrics=EngagementMetrics(**metrics),
            source_url=url if isinstance(url, str) else None,
        )


class EnhancedItem(BaseModel):
    """A result item that went through the enhancement pass."""

    item: ResultItem
    search_term: str | None = None
    enriched_content: str | None = None
    enhancement_error: str | None = None
    processed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def score(self) -> float | None:
        return self.item.score


OutcomeItem = Union[ResultItem, EnhancedItem]
SearchOutcome = list[OutcomeItem]
