"""Chunk-level models: chunker output and persisted chunk embeddings."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TextChunk(BaseModel):
    """One contiguous, token-bounded slice of a narration.

    Produced by :class:`~dreamembed.services.chunker.TextChunker`.  ``index``
    is order-significant and becomes ``chunk_index`` downstream.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    text: str
    token_count: int = Field(gt=0, description="Estimated token count (chars / chars_per_token).")
    start_char: int = Field(ge=0)
    end_char: int = Field(ge=0)
    overlap_with_previous: int = Field(
        default=0, ge=0, description="Characters repeated from the previous chunk."
    )
    total_chunks: int = Field(default=1, ge=1)

    def to_metadata(self) -> dict[str, Any]:
        """Positional metadata stored next to the chunk's embedding."""
        return {
            "start_char": self.start_char,
            "end_char": self.end_char,
            "overlap_with_previous": self.overlap_with_previous,
            "total_chunks": self.total_chunks,
        }


class ChunkEmbedding(BaseModel):
    """Dense vector for one chunk of one document under one model version.

    Unique on ``(document_id, chunk_index, embedding_version)``: reprocessing
    with the same version overwrites, a new version coexists.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    chunk_index: int = Field(ge=0)
    chunk_text: str
    token_count: int = Field(gt=0)
    embedding: list[float]
    embedding_version: str
    processing_time_ms: int = Field(default=0, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
