"""Outcome models for a processed job and for queue status reporting."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from dreamembed.models.embedding import ChunkEmbedding
from dreamembed.models.theme import DocumentTheme


class ProcessingOutcome(str, Enum):
    """Successful outcomes of processing a claimed job."""

    COMPLETED = "completed"
    SKIPPED = "skipped"


class DocumentEmbeddingResult(BaseModel):
    """Everything a successful run produced, held in memory until committed."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    outcome: ProcessingOutcome
    chunk_embeddings: list[ChunkEmbedding] = Field(default_factory=list)
    themes: list[DocumentTheme] = Field(default_factory=list)
    processing_time_ms: int = Field(default=0, ge=0)
    skip_reason: str | None = None


class QueueStats(BaseModel):
    """Per-status counts of documents and jobs, for dashboards and alerting."""

    model_config = ConfigDict(frozen=True)

    documents: dict[str, int] = Field(default_factory=dict)
    jobs: dict[str, int] = Field(default_factory=dict)

    @property
    def backlog(self) -> int:
        """Jobs still waiting for or undergoing processing."""
        return self.jobs.get("pending", 0) + self.jobs.get("processing", 0)
