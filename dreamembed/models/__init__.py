"""Domain models for the embedding pipeline (pydantic v2, frozen)."""

from dreamembed.models.document import Document, EmbeddingStatus
from dreamembed.models.embedding import ChunkEmbedding, TextChunk
from dreamembed.models.job import Job, JobStatus
from dreamembed.models.result import DocumentEmbeddingResult, ProcessingOutcome, QueueStats
from dreamembed.models.theme import DocumentTheme, Theme, ThemeMatch

__all__ = [
    "ChunkEmbedding",
    "Document",
    "DocumentEmbeddingResult",
    "DocumentTheme",
    "EmbeddingStatus",
    "Job",
    "JobStatus",
    "ProcessingOutcome",
    "QueueStats",
    "TextChunk",
    "Theme",
    "ThemeMatch",
]
