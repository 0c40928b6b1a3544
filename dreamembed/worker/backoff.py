"""Exponential retry backoff for failed embedding jobs."""

from __future__ import annotations

from datetime import datetime, timedelta


def compute_backoff_seconds(attempts: int, base_seconds: float, max_seconds: float) -> float:
    """Return the delay before retry number *attempts*: ``base * 2**attempts``, capped.

    *attempts* is the attempt count after the failure being handled, so the
    first retry waits ``2 * base``.
    """
    if attempts < 0:
        raise ValueError(f"attempts must be >= 0, got {attempts}")
    # Guard the exponent so a huge attempt count cannot overflow a float.
    exponent = min(attempts, 62)
    return float(min(base_seconds * (2**exponent), max_seconds))


def next_retry_at(now: datetime, attempts: int, base_seconds: float, max_seconds: float) -> datetime:
    return now + timedelta(seconds=compute_backoff_seconds(attempts, base_seconds, max_seconds))
