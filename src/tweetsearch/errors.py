"""Error taxonomy.

Every error carries the HTTP status the API answers with. `EnhancementError` is the
exception that never leaves the enhancement stage; it is recorded on the item instead.
"""

from __future__ import annotations


class TweetSearchError(RuntimeError):
    """Base class for service errors."""

    http_status: int = 500


class InvalidQueryError(TweetSearchError):
    http_status = 400


class SubmissionError(TweetSearchError):
    """The upstream refused the job at submit time."""

    http_status = 502

    def __init__(self, message: str, *, client_error: bool = False) -> None:
        super().__init__(message)
        if client_error:
            self.http_status = 400


class TransportError(TweetSearchError):
    """Network-level failure talking to the upstream."""

    http_status = 502


class JobFailedError(TweetSearchError):
    """The upstream reported the job as failed."""

    http_status = 502


class SearchTimeoutError(TweetSearchError):
    """The deadline passed while the job was still pending. Callers may resubmit."""

    http_status = 504


class EnhancementError(TweetSearchError):
    pass


class UnknownToolError(TweetSearchError):
    http_status = 404

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' not found")
        self.name = name


class InvalidToolParametersError(TweetSearchError):
    http_status = 422
