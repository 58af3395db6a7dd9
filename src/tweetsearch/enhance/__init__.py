"""Enhancement of top-ranked results."""

from __future__ import annotations

from tweetsearch.enhance.extractor import (
    BatchEnricher,
    LLMTermExtractor,
    MockTermExtractor,
    TermExtractor,
)
from tweetsearch.enhance.stage import EnhancementStage

__all__ = [
    "BatchEnricher",
    "EnhancementStage",
    "LLMTermExtractor",
    "MockTermExtractor",
    "TermExtractor",
]
