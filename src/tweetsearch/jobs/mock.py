"""In-memory job API used when no API key is configured."""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass, field

from tweetsearch.errors import SubmissionError, TransportError
from tweetsearch.logging import get_logger
from tweetsearch.models.search import EngagementMetrics, JobHandle, JobStatus, ResultItem, SearchQuery

logger = get_logger(__name__)

DEFAULT_MOCK_QUERY = "artificial intelligence"


def generate_mock_items(
    query: str = DEFAULT_MOCK_QUERY,
    count: int = 5,
    rng: random.Random | None = None,
) -> list[ResultItem]:
    """Generate `count` fake posts about `query` with random engagement."""

    rng = rng or random.Random()
    items: list[ResultItem] = []
    for i in range(count):
        items.append(
            ResultItem(
                id=f"mock-tweet-{i + 1}",
                content=f"This is mock tweet #{i + 1} about {query}.",
                metrics=EngagementMetrics(
                    retweet_count=rng.randrange(100),
                    like_count=rng.randrange(500),
                    quote_count=rng.randrange(20),
                    reply_count=rng.randrange(50),
                    bookmark_count=rng.randrange(10),
                ),
            )
        )
    return items


@dataclass
class _MockJob:
    query: SearchQuery
    polls_left: int


@dataclass
class MockJobClient:
    """Job client that completes jobs locally after `polls_until_done` status reads.

    Results are generated on fetch. A job can be fetched once and is then forgotten.
    """

    polls_until_done: int = 1
    seed: int | None = None
    _rng: random.Random = field(init=False)
    _jobs: dict[str, _MockJob] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        if self.polls_until_done < 1:
            raise ValueError("polls_until_done must be >= 1")
        self._rng = random.Random(self.seed)

    async def submit(self, query: SearchQuery) -> JobHandle:
        if not query.text:
            raise SubmissionError("Submit failed: empty query", client_error=True)
        job_id = str(uuid.UUID(int=self._rng.getrandbits(128)))
        self._jobs[job_id] = _MockJob(query=query, polls_left=self.polls_until_done)
        logger.debug("Mock job submitted", extra={"job_uuid": job_id})
        return JobHandle(id=job_id)

    async def poll_status(self, handle: JobHandle) -> JobStatus:
        job = self._jobs.get(handle.id)
        if job is None:
            return JobStatus.failed(f"unknown job {handle.id}")
        if job.polls_left > 1:
            job.polls_left -= 1
            return JobStatus.processing()
        job.polls_left = 0
        return JobStatus.done()

    async def fetch_results(self, handle: JobHandle) -> list[ResultItem]:
        job = self._jobs.get(handle.id)
        if job is None:
            raise TransportError(f"API Error: 404 - unknown job {handle.id}")
        if job.polls_left > 0:
            raise TransportError(f"API Error: 409 - job {handle.id} is not done")
        # The handle is spent once its results are out.
        del self._jobs[handle.id]
        return generate_mock_items(job.query.text, job.query.max_results, self._rng)

    @property
    def pending_jobs(self) -> int:
        """Jobs submitted and not yet retrieved."""

        return len(self._jobs)
