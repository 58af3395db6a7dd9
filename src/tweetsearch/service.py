"""Composition root: job orchestration, ranking and enhancement behind one call."""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable

import httpx
from pydantic import ValidationError

from tweetsearch.config import Settings
from tweetsearch.enhance.extractor import BatchEnricher, LLMTermExtractor, MockTermExtractor, TermExtractor
from tweetsearch.enhance.stage import EnhancementStage
from tweetsearch.errors import EnhancementError, InvalidQueryError
from tweetsearch.jobs.backoff import PollPolicy
from tweetsearch.jobs.client import HttpJobClient, JobClient
from tweetsearch.jobs.mock import MockJobClient
from tweetsearch.jobs.orchestrator import PollingOrchestrator
from tweetsearch.llm.client import AsyncLLMClient
from tweetsearch.logging import get_logger, run_context
from tweetsearch.models.search import OutcomeItem, ResultItem, SearchQuery
from tweetsearch.ranking.scoring import rank

logger = get_logger(__name__)


def build_query(text: str | None, max_results: int | None = None) -> SearchQuery:
    """Validate raw request input into a `SearchQuery`.

    Raises:
        InvalidQueryError: Blank query or out-of-range `max_results`.
    """

    if text is None or not str(text).strip():
        raise InvalidQueryError("Query is required")
    try:
        if max_results is None:
            return SearchQuery(text=text)
        return SearchQuery(text=text, max_results=max_results)
    except ValidationError as e:
        details = "; ".join(err["msg"] for err in e.errors())
        raise InvalidQueryError(f"Invalid search query: {details}") from e


class SearchService:
    """Search facade used by the HTTP API, the tool dispatcher and the CLI."""

    def __init__(
        self,
        *,
        orchestrator: PollingOrchestrator,
        stage: EnhancementStage,
        extractor: TermExtractor | None = None,
        default_top_k: int = 3,
        mock_mode: bool = False,
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._stage = stage
        self._extractor = extractor
        self._default_top_k = default_top_k
        self._mock_mode = mock_mode
        self._on_close = on_close

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    async def search(self, text: str | None, max_results: int | None = None) -> list[ResultItem]:
        """Run a search job and return its items ranked by engagement.

        Raises:
            InvalidQueryError: Bad input.
            SubmissionError, JobFailedError, SearchTimeoutError, TransportError: The job
                did not produce results.
        """

        query = build_query(text, max_results)
        with run_context(run_id=uuid.uuid4().hex[:12]):
            return await self._search(query)

    async def search_and_enhance(
        self,
        text: str | None,
        max_results: int | None = None,
        *,
        top_k: int | None = None,
        instruction: str | None = None,
    ) -> list[OutcomeItem]:
        """Search, rank, then enhance the `top_k` best items.

        Enhancement failures never fail the call; they are recorded on the items.
        """

        query = build_query(text, max_results)
        top_k = self._default_top_k if top_k is None else max(top_k, 0)
        with run_context(run_id=uuid.uuid4().hex[:12]):
            ranked = await self._search(query)
            return await self._stage.enhance(ranked, top_k, instruction or None)

    async def extract_term(self, content: str, instruction: str | None = None) -> str:
        """Extract a search term from one post.

        Raises:
            EnhancementError: No extractor configured or extraction failed.
        """

        if self._extractor is None:
            raise EnhancementError("search term extraction is not configured")
        return await self._extractor.extract(content, instruction)

    async def _search(self, query: SearchQuery) -> list[ResultItem]:
        started = time.monotonic()
        outcome = await self._orchestrator.run(query)
        items = outcome.raise_for_state()
        ranked = rank(items)
        logger.info(
            "Search completed",
            extra={
                "result_count": len(ranked),
                "attempts": outcome.attempts,
                "latency_ms": round((time.monotonic() - started) * 1000, 2),
            },
        )
        return ranked

    async def aclose(self) -> None:
        if self._on_close is not None:
            await self._on_close()


def create_service(
    settings: Settings,
    *,
    job_client: JobClient | None = None,
    extractor: TermExtractor | None = None,
    enricher: BatchEnricher | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> SearchService:
    """Build a `SearchService` from settings.

    Without an API key the upstream job API and the term extractor are replaced by
    mocks; the orchestrator behaves the same either way. An `enricher`, when given,
    takes over the enhancement pass from the per-item extractor.
    """

    closers: list[Callable[[], Awaitable[None]]] = []

    if job_client is None:
        if settings.mock_mode:
            job_client = MockJobClient(seed=settings.mock_seed)
        else:
            http_client = HttpJobClient(
                api_key=settings.api_key or "",
                base_url=settings.api_base_url,
                timeout_s=settings.http_timeout_s,
                transport=transport,
            )
            closers.append(http_client.aclose)
            job_client = http_client

    if extractor is None:
        if settings.mock_mode:
            extractor = MockTermExtractor()
        elif settings.openai_api_key:
            llm = AsyncLLMClient(settings)
            closers.append(llm.aclose)
            extractor = LLMTermExtractor(llm)
        else:
            logger.warning("No TWEETSEARCH_OPENAI_API_KEY set; enhancement will pass items through")

    policy = PollPolicy(
        base_interval_ms=settings.poll_interval_ms,
        max_interval_ms=settings.poll_max_interval_ms,
        timeout_ms=settings.poll_timeout_ms,
        max_attempts=settings.poll_max_attempts,
    )
    orchestrator = PollingOrchestrator(job_client, policy, clock=clock, sleep=sleep)
    stage = EnhancementStage(
        enricher=enricher,
        extractor=extractor,
        enabled=settings.enhancement_enabled,
        max_concurrency=settings.enhance_max_concurrency,
    )

    async def _close() -> None:
        for close in closers:
            await close()

    logger.info("Search service created", extra={"mock": settings.mock_mode})
    return SearchService(
        orchestrator=orchestrator,
        stage=stage,
        extractor=extractor,
        default_top_k=settings.enhance_top_k,
        mock_mode=settings.mock_mode,
        on_close=_close,
    )
