"""Bounded-concurrency and timeout helpers for the embedding pipeline.

Two patterns are exposed:

1. **throttled_gather** -- ``asyncio.gather`` with every awaitable wrapped in
   an acquire/release of a caller-supplied semaphore.  The semaphore is
   always passed in explicitly so limits stay scoped to the component that
   owns them.

2. **call_with_timeout** -- runs one external call under ``asyncio.wait_for``
   and converts a timeout into a domain error, so a hung embedder or catalog
   query fails fast into the job's ordinary retry path instead of pinning a
   worker slot.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``semaphore`` slots at a time.

    Results come back in input order, mirroring ``asyncio.gather``.
    """

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


async def call_with_timeout(
    coro: Awaitable[_T],
    timeout_seconds: float | None,
    on_timeout: Callable[[], Exception],
) -> _T:
    """Await *coro*, raising ``on_timeout()`` if it exceeds *timeout_seconds*.

    A ``None`` or non-positive timeout disables the limit.
    """
    if timeout_seconds is None or timeout_seconds <= 0:
        return await coro
    try:
        return await asyncio.wait_for(coro, timeout=timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise on_timeout() from exc
