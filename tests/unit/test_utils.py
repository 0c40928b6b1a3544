"""Unit tests for error classification, concurrency helpers, backoff and clock."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from dreamembed.utils.clock import to_iso
from dreamembed.utils.concurrency import call_with_timeout, throttled_gather
from dreamembed.utils.errors import (
    ConfigurationError,
    DocumentValidationError,
    DreamEmbedError,
    EmbeddingError,
    InvalidInputError,
    PersistenceError,
    ProviderUnavailableError,
    RateLimitError,
    ThemeCatalogError,
    is_retryable,
)
from dreamembed.worker.backoff import compute_backoff_seconds, next_retry_at

# ======================================================================
# Errors
# ======================================================================


class TestErrors:
    def test_str_includes_provider(self) -> None:
        assert str(EmbeddingError("boom", provider_name="openai_embedding")) == "[openai_embedding] boom"
        assert str(PersistenceError("locked")) == "locked"

    @pytest.mark.parametrize(
        "exc",
        [
            EmbeddingError(),
            RateLimitError(),
            ProviderUnavailableError(),
            ThemeCatalogError(),
            PersistenceError(),
            RuntimeError("unexpected"),
        ],
    )
    def test_retryable(self, exc: Exception) -> None:
        assert is_retryable(exc) is True

    @pytest.mark.parametrize(
        "exc", [InvalidInputError(), DocumentValidationError(), ConfigurationError()]
    )
    def test_not_retryable(self, exc: Exception) -> None:
        assert is_retryable(exc) is False

    def test_hierarchy(self) -> None:
        assert issubclass(RateLimitError, EmbeddingError)
        assert issubclass(InvalidInputError, EmbeddingError)
        assert issubclass(ThemeCatalogError, DreamEmbedError)


# ======================================================================
# Backoff
# ======================================================================


class TestBackoff:
    def test_doubles_per_attempt(self) -> None:
        assert [compute_backoff_seconds(a, 60, 3600) for a in (1, 2, 3)] == [120.0, 240.0, 480.0]

    def test_capped(self) -> None:
        assert compute_backoff_seconds(10, 60, 3600) == 3600.0
        assert compute_backoff_seconds(10_000, 60, 3600) == 3600.0

    def test_negative_attempts_rejected(self) -> None:
        with pytest.raises(ValueError):
            compute_backoff_seconds(-1, 60, 3600)

    def test_next_retry_at(self) -> None:
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert next_retry_at(now, 1, 60, 3600) == now + timedelta(seconds=120)


# ======================================================================
# Concurrency helpers
# ======================================================================


class TestThrottledGather:
    @pytest.mark.asyncio
    async def test_respects_semaphore(self) -> None:
        running = 0
        peak = 0

        async def _work(i: int) -> int:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return i

        results = await throttled_gather([_work(i) for i in range(6)], semaphore=asyncio.Semaphore(2))

        assert results == [0, 1, 2, 3, 4, 5]
        assert peak == 2

    @pytest.mark.asyncio
    async def test_returns_exceptions_in_place(self) -> None:
        async def _fail() -> int:
            raise ValueError("bad")

        async def _ok() -> int:
            return 1

        results = await throttled_gather([_ok(), _fail()], semaphore=asyncio.Semaphore(1))
        assert results[0] == 1
        assert isinstance(results[1], ValueError)


class TestCallWithTimeout:
    @pytest.mark.asyncio
    async def test_returns_value(self) -> None:
        async def _fast() -> str:
            return "done"

        assert await call_with_timeout(_fast(), 1.0, on_timeout=lambda: EmbeddingError()) == "done"

    @pytest.mark.asyncio
    async def test_converts_timeout(self) -> None:
        with pytest.raises(EmbeddingError, match="too slow"):
            await call_with_timeout(asyncio.sleep(1), 0.01, on_timeout=lambda: EmbeddingError("too slow"))

    @pytest.mark.asyncio
    async def test_disabled_timeout(self) -> None:
        async def _value() -> int:
            await asyncio.sleep(0.01)
            return 7

        assert await call_with_timeout(_value(), None, on_timeout=lambda: EmbeddingError()) == 7
        assert await call_with_timeout(_value(), 0, on_timeout=lambda: EmbeddingError()) == 7


# ======================================================================
# Clock
# ======================================================================


class TestClock:
    def test_iso_is_fixed_width_utc(self) -> None:
        assert to_iso(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)) == "2026-03-01T12:00:00.000000+00:00"

    def test_naive_treated_as_utc(self) -> None:
        assert to_iso(datetime(2026, 3, 1)) == "2026-03-01T00:00:00.000000+00:00"

    def test_converts_other_zones(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        assert to_iso(datetime(2026, 3, 1, 2, 0, tzinfo=plus_two)) == "2026-03-01T00:00:00.000000+00:00"
