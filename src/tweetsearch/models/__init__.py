"""Pydantic models used across the project."""

from __future__ import annotations

from tweetsearch.models.search import (
    EngagementMetrics,
    EnhancedItem,
    JobHandle,
    JobStatus,
    JobStatusKind,
    OutcomeItem,
    ResultItem,
    SearchOutcome,
    SearchQuery,
)

__all__ = [
    "EngagementMetrics",
    "EnhancedItem",
    "JobHandle",
    "JobStatus",
    "JobStatusKind",
    "OutcomeItem",
    "ResultItem",
    "SearchOutcome",
    "SearchQuery",
]
