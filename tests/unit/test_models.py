"""Unit tests for dreamembed domain models."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from dreamembed.models import (
    Document,
    DocumentTheme,
    EmbeddingStatus,
    Job,
    JobStatus,
    QueueStats,
    TextChunk,
    Theme,
    ThemeMatch,
)

_NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


class TestEmbeddingStatus:
    def test_terminal_states(self) -> None:
        terminal = {s for s in EmbeddingStatus if s.is_terminal}
        assert terminal == {EmbeddingStatus.COMPLETED, EmbeddingStatus.FAILED, EmbeddingStatus.SKIPPED}

    def test_string_values(self) -> None:
        assert EmbeddingStatus("skipped") is EmbeddingStatus.SKIPPED
        assert JobStatus.PROCESSING.value == "processing"


class TestDocument:
    def test_defaults(self) -> None:
        doc = Document(id="doc-1")
        assert doc.raw_text is None
        assert doc.embedding_status == EmbeddingStatus.PENDING
        assert doc.embedding_attempts == 0

    def test_frozen(self) -> None:
        doc = Document(id="doc-1")
        with pytest.raises(ValidationError):
            doc.embedding_status = EmbeddingStatus.COMPLETED  # type: ignore[misc]


class TestJob:
    def test_processing_requires_started_at(self) -> None:
        with pytest.raises(ValidationError, match="started_at"):
            Job(id=1, document_id="d", status=JobStatus.PROCESSING, scheduled_at=_NOW)

    def test_attempts_remaining(self) -> None:
        job = Job(id=1, document_id="d", attempts=2, max_attempts=3, scheduled_at=_NOW)
        assert job.attempts_remaining == 1
        assert job.model_copy(update={"attempts": 5}).attempts_remaining == 0

    def test_parses_iso_timestamps(self) -> None:
        job = Job(id=1, document_id="d", scheduled_at="2026-03-01T00:00:00.000000+00:00")
        assert job.scheduled_at == _NOW


class TestChunkModels:
    def test_text_chunk_metadata(self) -> None:
        chunk = TextChunk(
            index=1,
            text="falling",
            token_count=2,
            start_char=10,
            end_char=17,
            overlap_with_previous=3,
            total_chunks=2,
        )
        assert chunk.to_metadata() == {
            "start_char": 10,
            "end_char": 17,
            "overlap_with_previous": 3,
            "total_chunks": 2,
        }

    def test_token_count_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            TextChunk(index=0, text="", token_count=0, start_char=0, end_char=0)


class TestThemes:
    def test_embedding_text_with_description(self) -> None:
        theme = Theme(code="falling", label="Falling", description="Dropping from heights")
        assert theme.embedding_text() == "Falling. Dropping from heights"

    def test_embedding_text_label_only(self) -> None:
        assert Theme(code="water", label="Water").embedding_text() == "Water"

    @pytest.mark.parametrize("similarity", [-0.01, 1.01])
    def test_similarity_bounds(self, similarity: float) -> None:
        with pytest.raises(ValidationError):
            ThemeMatch(code="a", label="A", similarity=similarity)

    def test_rank_is_one_based(self) -> None:
        with pytest.raises(ValidationError):
            DocumentTheme(document_id="d", theme_code="a", rank=0, similarity=0.7)


class TestQueueStats:
    def test_backlog(self) -> None:
        stats = QueueStats(jobs={"pending": 4, "processing": 2, "completed": 10, "failed": 1})
        assert stats.backlog == 6
        assert QueueStats().backlog == 0
