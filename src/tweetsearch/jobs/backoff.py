"""Backoff and deadline arithmetic for job polling.

Pure functions; the orchestrator decides when to sleep.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_BASE_INTERVAL_MS = 2000
DEFAULT_MAX_INTERVAL_MS = 10000
DEFAULT_TIMEOUT_MS = 120000
BACKOFF_FACTOR = 1.5


@dataclass(frozen=True)
class PollPolicy:
    """Polling schedule for one orchestrator run."""

    base_interval_ms: float = DEFAULT_BASE_INTERVAL_MS
    max_interval_ms: float = DEFAULT_MAX_INTERVAL_MS
    timeout_ms: float = DEFAULT_TIMEOUT_MS
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        if self.base_interval_ms <= 0 or self.max_interval_ms <= 0:
            raise ValueError("poll intervals must be positive")
        if self.timeout_ms <= 0:
            raise ValueError("timeout must be positive")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def wait_ms(self, attempt: int) -> float:
        return backoff_ms(attempt, self.base_interval_ms, self.max_interval_ms)

    def deadline_passed(self, elapsed_ms: float) -> bool:
        return elapsed_ms >= self.timeout_ms

    def attempts_exhausted(self, attempt: int) -> bool:
        return self.max_attempts is not None and attempt >= self.max_attempts


def backoff_ms(
    attempt: int,
    base_interval_ms: float = DEFAULT_BASE_INTERVAL_MS,
    max_interval_ms: float = DEFAULT_MAX_INTERVAL_MS,
) -> float:
    """Wait after poll number `attempt` (1-based): `base * 1.5**(attempt-1)`, capped."""

    if attempt < 1:
        raise ValueError("attempt is 1-based")
    return min(base_interval_ms * BACKOFF_FACTOR ** (attempt - 1), max_interval_ms)


def backoff_schedule(
    attempts: int,
    base_interval_ms: float = DEFAULT_BASE_INTERVAL_MS,
    max_interval_ms: float = DEFAULT_MAX_INTERVAL_MS,
) -> list[float]:
    """The first `attempts` waits of the schedule."""

    return [backoff_ms(n, base_interval_ms, max_interval_ms) for n in range(1, attempts + 1)]
