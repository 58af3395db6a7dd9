"""Engagement scoring and ranking."""

from __future__ import annotations

from collections.abc import Iterable

from tweetsearch.models.search import EngagementMetrics, ResultItem

RETWEET_WEIGHT = 2.0
LIKE_WEIGHT = 1.0
QUOTE_WEIGHT = 1.5
REPLY_WEIGHT = 1.0
BOOKMARK_WEIGHT = 1.0


def engagement_score(metrics: EngagementMetrics) -> float:
    """Weighted engagement score, accumulated as float64."""

    total = 0.0
    total += RETWEET_WEIGHT * metrics.retweet_count
    total += LIKE_WEIGHT * metrics.like_count
    total += QUOTE_WEIGHT * metrics.quote_count
    total += REPLY_WEIGHT * metrics.reply_count
    total += BOOKMARK_WEIGHT * metrics.bookmark_count
    return total


def score(item: ResultItem) -> float:
    return engagement_score(item.metrics)


def rank(items: Iterable[ResultItem]) -> list[ResultItem]:
    """Sort items by engagement score, highest first.

    Returns copies with `score` attached. `sorted` is stable, so equal scores keep
    their input order.
    """

    scored = [item.model_copy(update={"score": score(item)}) for item in items]
    return sorted(scored, key=lambda it: it.score, reverse=True)
