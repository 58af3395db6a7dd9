"""Concurrency control utilities for async operations."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class ConcurrencyLimiter:
    """Caps how many coroutines run at once."""

    max_concurrent: int
    _semaphore: asyncio.Semaphore = field(init=False)
    _running: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._semaphore = asyncio.Semaphore(self.max_concurrent)

    async def __aenter__(self) -> ConcurrencyLimiter:
        await self._semaphore.acquire()
        self._running += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self._semaphore.release()
        self._running -= 1

    @property
    def running(self) -> int:
        """Get number of running tasks."""
        return self._running


async def map_ordered(
    func: Callable[[T], Awaitable[R]],
    items: Sequence[T],
    *,
    max_concurrent: int = 1,
) -> list[R]:
    """Apply `func` to every item with at most `max_concurrent` in flight.

    Results come back in input order. With `max_concurrent=1` items are processed
    strictly one after another.
    """

    if max_concurrent <= 1:
        return [await func(item) for item in items]

    limiter = ConcurrencyLimiter(max_concurrent)

    async def _run(item: T) -> R:
        async with limiter:
            return await func(item)

    return list(await asyncio.gather(*(_run(item) for item in items)))
