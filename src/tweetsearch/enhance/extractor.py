"""Enrichment collaborators.

Two shapes exist: a batch enricher that takes the whole top-K slice in one call, and a
term extractor that handles one post at a time (the shape the upstream actually offers).
"""

from __future__ import annotations

from typing import Protocol, Sequence

from tweetsearch.errors import EnhancementError
from tweetsearch.llm.client import AsyncLLMClient, ChatMessage
from tweetsearch.logging import get_logger
from tweetsearch.models.search import EnhancedItem, ResultItem

logger = get_logger(__name__)

MOCK_SEARCH_TERM = "artificial intelligence"

_SYSTEM_PROMPT = (
    "You extract search terms from social media posts. "
    "Reply with a single concise search term (at most six words) that best captures "
    "what the post is about. Reply with the term only, no quotes or explanation."
)


class BatchEnricher(Protocol):
    """Enriches a batch of items in one call.

    No enricher ships with the package; pass one to `create_service(enricher=...)`
    to replace per-item term extraction.
    """

    async def enrich(self, items: Sequence[ResultItem], instruction: str | None = None) -> list[EnhancedItem]:
        """Return one enriched item per input item, in any order the collaborator chooses."""


class TermExtractor(Protocol):
    """Extracts a search term from one post."""

    async def extract(self, content: str, instruction: str | None = None) -> str:
        """Return the search term for `content`."""


def clean_term(raw: str) -> str:
    """Reduce an LLM reply to a bare term: first line, no surrounding quotes or period."""

    lines = [line.strip() for line in raw.strip().splitlines() if line.strip()]
    if not lines:
        return ""
    term = lines[0]
    if term.lower().startswith("search term:"):
        term = term.split(":", 1)[1].strip()
    return term.strip("\"'` ").rstrip(".").strip()


class LLMTermExtractor:
    """Extract search terms with an OpenAI-compatible chat model."""

    def __init__(self, llm: AsyncLLMClient, *, max_tokens: int = 32) -> None:
        self._llm = llm
        self._max_tokens = max_tokens

    async def extract(self, content: str, instruction: str | None = None) -> str:
        if not content.strip():
            raise EnhancementError("cannot extract a search term from empty content")

        system = _SYSTEM_PROMPT
        if instruction:
            system = f"{system}\nAdditional instruction: {instruction}"
        messages = [
            ChatMessage(role="system", content=system),
            ChatMessage(role="user", content=content),
        ]
        try:
            reply = await self._llm.complete(messages, max_tokens=self._max_tokens)
        except Exception as e:
            raise EnhancementError(f"search term extraction failed: {e}") from e

        term = clean_term(reply)
        if not term:
            raise EnhancementError("model returned an empty search term")
        return term


class MockTermExtractor:
    """Returns the same term for every post."""

    def __init__(self, term: str = MOCK_SEARCH_TERM) -> None:
        self._term = term

    async def extract(self, content: str, instruction: str | None = None) -> str:
        return self._term
