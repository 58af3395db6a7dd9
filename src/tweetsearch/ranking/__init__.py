"""Engagement ranking."""

from __future__ import annotations

from tweetsearch.ranking.scoring import engagement_score, rank, score

__all__ = ["engagement_score", "rank", "score"]
