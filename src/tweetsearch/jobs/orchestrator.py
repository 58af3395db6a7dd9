"""Job lifecycle: submit, poll with backoff until done or deadline, retrieve.

State machine per run::

    SUBMITTING -> POLLING -> RETRIEVING -> SUCCEEDED
         |           |            |
         v           v            v
       FAILED   FAILED/TIMED_OUT FAILED

Transport errors while polling are transient and polling continues. An explicit job
failure ends the run at once. Errors at submission or retrieval are final; neither step
is retried.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from tweetsearch.errors import (
    JobFailedError,
    SearchTimeoutError,
    SubmissionError,
    TransportError,
    TweetSearchError,
)
from tweetsearch.jobs.backoff import PollPolicy
from tweetsearch.jobs.client import JobClient
from tweetsearch.logging import get_logger, set_job_id
from tweetsearch.models.search import JobHandle, JobStatusKind, ResultItem, SearchQuery

logger = get_logger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class RunState(str, Enum):
    SUBMITTING = "submitting"
    POLLING = "polling"
    RETRIEVING = "retrieving"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


TERMINAL_STATES = frozenset({RunState.SUCCEEDED, RunState.TIMED_OUT, RunState.FAILED})


@dataclass
class PollOutcome:
    """Result of one orchestrator run."""

    state: RunState
    items: list[ResultItem] = field(default_factory=list)
    error: TweetSearchError | None = None
    job_id: str | None = None
    attempts: int = 0
    elapsed_s: float = 0.0
    history: list[RunState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.SUCCEEDED

    def raise_for_state(self) -> list[ResultItem]:
        """Return the items of a successful run, or raise the typed error of a failed one."""

        if self.state is RunState.SUCCEEDED:
            return self.items
        if self.error is not None:
            raise self.error
        raise TweetSearchError(f"run ended in state {self.state.value}")


class PollingOrchestrator:
    """Drives one job from submission to results.

    The orchestrator holds no per-run state, so one instance can serve concurrent runs.
    `clock` returns seconds (monotonic) and `sleep` suspends for seconds; both are
    injectable for tests.
    """

    def __init__(
        self,
        client: JobClient,
        policy: PollPolicy | None = None,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._policy = policy or PollPolicy()
        self._clock = clock
        self._sleep = sleep

    @property
    def policy(self) -> PollPolicy:
        return self._policy

    async def run(self, query: SearchQuery) -> PollOutcome:
        """Run the job lifecycle for `query`. Never raises for upstream failures."""

        outcome = PollOutcome(state=RunState.SUBMITTING, history=[RunState.SUBMITTING])

        def transition(state: RunState) -> None:
            logger.debug("Run state %s -> %s", outcome.state.value, state.value)
            outcome.state = state
            outcome.history.append(state)

        logger.info(
            "Submitting search job",
            extra={"query_len": len(query.text), "max_results": query.max_results},
        )
        try:
            handle = await self._client.submit(query)
        except TweetSearchError as e:
            logger.error("Search job submission failed: %s", e)
            outcome.error = e if isinstance(e, SubmissionError) else SubmissionError(str(e))
            transition(RunState.FAILED)
            return outcome

        outcome.job_id = handle.id
        set_job_id(handle.id)
        started = self._clock()
        transition(RunState.POLLING)

        await self._poll(handle, outcome, started, transition)

        if outcome.state is RunState.RETRIEVING:
            await self._retrieve(handle, outcome, transition)

        outcome.elapsed_s = self._clock() - started
        logger.info(
            "Search run finished",
            extra={
                "state": outcome.state.value,
                "attempts": outcome.attempts,
                "result_count": len(outcome.items),
                "elapsed_ms": int(outcome.elapsed_s * 1000),
            },
        )
        return outcome

    async def _poll(
        self,
        handle: JobHandle,
        outcome: PollOutcome,
        started: float,
        transition: Callable[[RunState], None],
    ) -> None:
        policy = self._policy
        attempt = 0

        while True:
            elapsed_ms = (self._clock() - started) * 1000
            if policy.deadline_passed(elapsed_ms) or policy.attempts_exhausted(attempt):
                logger.error(
                    "Job polling timed out",
                    extra={"attempts": attempt, "elapsed_ms": int(elapsed_ms)},
                )
                outcome.error = SearchTimeoutError(
                    f"Job timed out after {int(elapsed_ms)}ms ({attempt} polls)"
                )
                transition(RunState.TIMED_OUT)
                return

            attempt += 1
            outcome.attempts = attempt
            wait_ms = policy.wait_ms(attempt)
            logger.debug(
                "Polling job status",
                extra={"attempt": attempt, "elapsed_ms": int(elapsed_ms), "wait_ms": wait_ms},
            )

            try:
                status = await self._client.poll_status(handle)
            except TransportError as e:
                logger.warning(
                    "Job status poll failed, will retry",
                    extra={"attempt": attempt, "wait_ms": wait_ms, "error": str(e)},
                )
                await self._pause(wait_ms, started)
                continue

            if status.kind is JobStatusKind.DONE:
                transition(RunState.RETRIEVING)
                return

            if status.kind is JobStatusKind.FAILED:
                reason = status.reason or "Job failed with error"
                logger.error("Job reported failure: %s", reason)
                outcome.error = JobFailedError(f"Job failed: {reason}")
                transition(RunState.FAILED)
                return

            await self._pause(wait_ms, started)

    async def _pause(self, wait_ms: float, started: float) -> None:
        """Sleep the backoff interval, cut short at the deadline."""

        remaining_ms = self._policy.timeout_ms - (self._clock() - started) * 1000
        await self._sleep(max(min(wait_ms, remaining_ms), 0.0) / 1000)

    async def _retrieve(
        self,
        handle: JobHandle,
        outcome: PollOutcome,
        transition: Callable[[RunState], None],
    ) -> None:
        try:
            items = await self._client.fetch_results(handle)
        except TweetSearchError as e:
            logger.error("Fetching results of a finished job failed: %s", e)
            outcome.error = e if isinstance(e, TransportError) else TransportError(str(e))
            transition(RunState.FAILED)
            return
        except Exception as e:
            logger.exception("Unexpected error while fetching results")
            outcome.error = TransportError(f"Unexpected error while fetching results: {e}")
            transition(RunState.FAILED)
            return

        outcome.items = list(items)
        transition(RunState.SUCCEEDED)
