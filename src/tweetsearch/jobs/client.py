"""Upstream job API client.

A thin, single-attempt adapter: submit a search job, read its status, fetch its results.
Retrying is the orchestrator's business, not this layer's.
"""

from __future__ import annotations

import time
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from tweetsearch.errors import SubmissionError, TransportError
from tweetsearch.logging import get_logger
from tweetsearch.models.search import JobHandle, JobStatus, ResultItem, SearchQuery

logger = get_logger(__name__)

SEARCH_PATH = "/v1/search/live/twitter"


class JobClient(Protocol):
    """Job API interface."""

    async def submit(self, query: SearchQuery) -> JobHandle:
        """Submit a search job."""

    async def poll_status(self, handle: JobHandle) -> JobStatus:
        """Read the current status of a job."""

    async def fetch_results(self, handle: JobHandle) -> list[ResultItem]:
        """Fetch the results of a finished job."""


def parse_status(data: Any) -> JobStatus:
    """Interpret a status payload `{status, error?}`.

    An `error` field or an `error` status is a job failure, returned rather than raised.
    Unrecognized statuses are treated as still processing.
    """

    if not isinstance(data, dict):
        raise TransportError("status response not a JSON object")

    error = data.get("error")
    if error:
        return JobStatus.failed(str(error))

    status = str(data.get("status") or "").lower()
    if status == "done":
        return JobStatus.done()
    if status == "error":
        return JobStatus.failed("Job failed with error")
    if status == "pending":
        return JobStatus.pending()
    if status != "processing":
        logger.debug("Unrecognized job status", extra={"status": status})
    return JobStatus.processing()


def parse_results(data: Any) -> list[ResultItem]:
    """Parse a result payload: a list of upstream items, or `{results: [...]}`."""

    if data is None:
        return []
    if isinstance(data, dict) and isinstance(data.get("results"), list):
        data = data["results"]
    if not isinstance(data, list):
        raise TransportError("result response not a JSON list")

    items: list[ResultItem] = []
    for raw in data:
        if not isinstance(raw, dict):
            continue
        try:
            items.append(ResultItem.from_upstream(raw))
        except ValidationError as e:
            raise TransportError(f"malformed result item: {e.error_count()} validation error(s)") from e
    return items


class HttpJobClient:
    """Job API client over HTTP.

    Notes:
        - The API key is sent as a bearer token.
        - Pass `transport` to route requests somewhere other than the network (tests).
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError(
                "Missing TWEETSEARCH_API_KEY. "
                "Set it in environment variables or a .env file."
            )
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> HttpJobClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _url(self, suffix: str = "") -> str:
        return f"{self._base_url}{SEARCH_PATH}{suffix}"

    async def submit(self, query: SearchQuery) -> JobHandle:
        """Submit a search job.

        Raises:
            SubmissionError: On any non-success response or a response without a job id.
        """

        started = time.monotonic()
        payload = {"query": query.text, "max_results": query.max_results}
        try:
            resp = await self._client.post(self._url(), json=payload)
        except httpx.HTTPError as e:
            raise SubmissionError(f"Request Error: {e}") from e

        if resp.is_error:
            raise SubmissionError(
                f"API Error: {resp.status_code} - {resp.text}",
                client_error=resp.is_client_error,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise SubmissionError("submit response is not JSON") from e
        if not isinstance(data, dict):
            raise SubmissionError("submit response not a JSON object")

        error = data.get("error")
        if error:
            raise SubmissionError(f"Submit failed: {error}", client_error=True)

        uuid = data.get("uuid")
        if not uuid:
            raise SubmissionError("Invalid job submission response: missing uuid")

        logger.info(
            "Search job submitted",
            extra={
                "job_uuid": uuid,
                "query_len": len(query.text),
                "max_results": query.max_results,
                "latency_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return JobHandle(id=str(uuid))

    async def poll_status(self, handle: JobHandle) -> JobStatus:
        """Read the current status of a job.

        Raises:
            TransportError: On network failure or a non-success response.
        """

        data = await self._get_json(self._url(f"/status/{handle.id}"))
        return parse_status(data)

    async def fetch_results(self, handle: JobHandle) -> list[ResultItem]:
        """Fetch the results of a finished job.

        Raises:
            TransportError: On failure, including a job that is not done yet.
        """

        data = await self._get_json(self._url(f"/result/{handle.id}"))
        items = parse_results(data)
        logger.info("Search results fetched", extra={"job_uuid": handle.id, "result_count": len(items)})
        return items

    async def _get_json(self, url: str) -> Any:
        try:
            resp = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise TransportError(f"No response received from API: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request Error: {e}") from e

        if resp.is_error:
            raise TransportError(f"API Error: {resp.status_code} - {resp.text}")

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError("response is not JSON") from e
