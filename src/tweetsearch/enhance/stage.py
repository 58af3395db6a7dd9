"""Enhancement pass over the top-ranked results."""

from __future__ import annotations

from collections.abc import Sequence

from tweetsearch.core.concurrency import map_ordered
from tweetsearch.enhance.extractor import BatchEnricher, TermExtractor
from tweetsearch.logging import get_logger
from tweetsearch.models.search import EnhancedItem, OutcomeItem, ResultItem

logger = get_logger(__name__)


def _annotate(items: Sequence[ResultItem], error: str) -> list[EnhancedItem]:
    return [EnhancedItem(item=item, enhancement_error=error) for item in items]


class EnhancementStage:
    """Enrich the first `top_k` ranked items and keep the rest untouched.

    Uses the batch enricher when one is given, otherwise the per-item extractor. Output
    length always equals input length: a failed enrichment marks items with
    `enhancement_error` instead of dropping them or failing the request.
    """

    def __init__(
        self,
        *,
        enricher: BatchEnricher | None = None,
        extractor: TermExtractor | None = None,
        enabled: bool = True,
        max_concurrency: int = 1,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._enricher = enricher
        self._extractor = extractor
        self._enabled = enabled
        self._max_concurrency = max_concurrency

    @property
    def enabled(self) -> bool:
        return self._enabled and (self._enricher is not None or self._extractor is not None)

    async def enhance(
        self,
        ranked: Sequence[ResultItem],
        top_k: int,
        instruction: str | None = None,
    ) -> list[OutcomeItem]:
        """Enhance `ranked[:top_k]` and return it followed by `ranked[top_k:]`."""

        items: list[OutcomeItem] = list(ranked)
        if not self.enabled or top_k <= 0 or not items:
            return items

        top_k = min(top_k, len(items))
        head, tail = list(ranked[:top_k]), items[top_k:]

        if self._enricher is not None:
            processed = await self._enhance_batch(self._enricher, head, instruction)
        elif self._extractor is not None:
            processed = await self._enhance_each(self._extractor, head, instruction)
        else:
            return items

        failures = sum(1 for it in processed if it.enhancement_error)
        logger.info(
            "Enhancement finished",
            extra={"top_k": top_k, "enhanced": len(processed) - failures, "failed": failures},
        )
        return [*processed, *tail]

    async def _enhance_batch(
        self,
        enricher: BatchEnricher,
        head: list[ResultItem],
        instruction: str | None,
    ) -> list[EnhancedItem]:
        try:
            enriched = await enricher.enrich(head, instruction)
        except Exception as e:
            logger.warning("Batch enrichment failed, passing items through: %s", e)
            return _annotate(head, str(e))

        if len(enriched) != len(head):
            msg = f"enricher returned {len(enriched)} items for {len(head)}"
            logger.warning("Batch enrichment rejected: %s", msg)
            return _annotate(head, msg)
        return list(enriched)

    async def _enhance_each(
        self,
        extractor: TermExtractor,
        head: list[ResultItem],
        instruction: str | None,
    ) -> list[EnhancedItem]:
        async def _one(item: ResultItem) -> EnhancedItem:
            try:
                term = await extractor.extract(item.content, instruction)
            except Exception as e:
                logger.warning("Search term extraction failed for item %s: %s", item.id, e)
                return EnhancedItem(item=item, enhancement_error=str(e))
            return EnhancedItem(item=item, search_term=term)

        return await map_ordered(_one, head, max_concurrent=self._max_concurrency)
