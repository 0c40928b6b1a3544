"""Shared pytest fixtures for the dreamembed test suite."""

from __future__ import annotations

import asyncio
import hashlib
import math
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from dreamembed.utils.logging import configure_logging

# Send log lines to stderr before any module logger is cached, so CLI tests
# read only the JSON result from stdout.
configure_logging(stream=sys.stderr)

from dreamembed.interfaces.embedding_provider import IEmbeddingProvider  # noqa: E402
from dreamembed.models.theme import Theme  # noqa: E402
from dreamembed.providers.store.sqlite_job_store import SQLiteJobStore  # noqa: E402
from dreamembed.providers.theme_catalog.sqlite_theme_catalog import SQLiteThemeCatalog  # noqa: E402

# ---------------------------------------------------------------------------
# Fake embedder
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Deterministic in-process embedder.

    Returns ``vector`` for every input when one is given, otherwise a
    vector derived from the SHA-256 of the text.  ``error`` is raised on
    every call; ``gate`` (an :class:`asyncio.Event`) holds each call until
    it is set.
    """

    def __init__(
        self,
        dimension: int = 4,
        vector: list[float] | None = None,
        error: Exception | None = None,
        gate: asyncio.Event | None = None,
        model_version: str = "fake-embed-v1",
    ) -> None:
        self._dimension = dimension
        self._vector = vector
        self.error = error
        self._gate = gate
        self._model_version = model_version
        self.calls: list[str] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        if self._gate is not None:
            await self._gate.wait()
        if self.error is not None:
            raise self.error
        if self._vector is not None:
            return list(self._vector)
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [digest[i] / 255.0 + 0.01 for i in range(self._dimension)]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "fake_embedding"

    def get_model_version(self) -> str:
        return self._model_version

    def is_available(self) -> bool:
        return True


class SteppingClock:
    """Manually advanced clock for the worker and reaper."""

    def __init__(self, start: datetime | None = None) -> None:
        # Slightly ahead of wall time so freshly enqueued jobs are already due.
        self.now = start or datetime.now(timezone.utc) + timedelta(minutes=1)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ---------------------------------------------------------------------------
# Theme vectors
# ---------------------------------------------------------------------------

# A chunk embedded as QUERY_VECTOR scores exactly 0.82 against "falling",
# 0.71 against "anxiety" and 0.30 against "fear".
QUERY_VECTOR = [1.0, 0.0, 0.0, 0.0]


def _unit_with_cosine(cosine: float, axis: int) -> list[float]:
    vector = [cosine, 0.0, 0.0, 0.0]
    vector[axis] = math.sqrt(1.0 - cosine * cosine)
    return vector


CATALOG_THEMES = [
    Theme(
        code="falling",
        label="Falling",
        description="Dreams about falling or losing balance",
        embedding=_unit_with_cosine(0.82, 1),
    ),
    Theme(
        code="anxiety",
        label="Anxiety",
        description="Dreams marked by worry, dread, or nervousness",
        embedding=_unit_with_cosine(0.71, 2),
    ),
    Theme(
        code="fear",
        label="Fear",
        description="Dreams where fear is the dominant emotion",
        embedding=_unit_with_cosine(0.30, 3),
    ),
]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Return a fresh SQLite path inside the test's temp directory."""
    return tmp_path / "dreamembed-test.db"


@pytest.fixture
async def store(db_path: Path) -> SQLiteJobStore:
    s = SQLiteJobStore(db_path=db_path, max_attempts=3)
    await s.initialize()
    return s


@pytest.fixture
async def catalog(store: SQLiteJobStore, db_path: Path) -> SQLiteThemeCatalog:
    """Theme catalog sharing the store's database, seeded with three themes."""
    c = SQLiteThemeCatalog(db_path=db_path, cache_ttl_seconds=60)
    await c.initialize()
    for theme in CATALOG_THEMES:
        await c.upsert_theme(theme)
    return c


@pytest.fixture
def fake_embedder() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider(vector=QUERY_VECTOR)


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def long_narration() -> str:
    """A 2000-token narration (8000 characters, 4 chars per token)."""
    return "word " * 1600


@pytest.fixture
def short_narration() -> str:
    """A 30-character narration below the embedding floor."""
    return "I dreamt of a small blue door."


@pytest.fixture
def make_embedder():
    """Factory for :class:`FakeEmbeddingProvider` instances."""
    return FakeEmbeddingProvider


@pytest.fixture
def query_vector() -> list[float]:
    return list(QUERY_VECTOR)
