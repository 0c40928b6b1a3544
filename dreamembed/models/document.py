"""Source narration documents and their embedding lifecycle.

# ─── STATE MACHINE ───────────────────────────────────────────────────
#
#   pending ──claim──→ processing ──→ completed   (terminal, success)
#      ↑                   │      ──→ skipped     (terminal, text too short
#      │                   │                       or language not allowed)
#      └──retry/reaper─────┤      ──→ failed      (terminal, attempts exhausted
#                          │                       or validation error)
#   failed ──operator reset──→ pending
#
# Only the worker pool, the reaper and the operator reset path mutate
# ``embedding_status``.  Models are frozen; transitions happen in the store.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingStatus(str, Enum):
    """Lifecycle states of a document's embedding."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (EmbeddingStatus.COMPLETED, EmbeddingStatus.FAILED, EmbeddingStatus.SKIPPED)


class Document(BaseModel):
    """A captured dream narration awaiting (or holding) its embeddings."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique document identifier.")
    raw_text: str | None = Field(default=None, description="Narration text; null until captured.")
    language: str | None = Field(
        default=None, description="Language code reported at capture (e.g. ``en-US``)."
    )
    embedding_status: EmbeddingStatus = EmbeddingStatus.PENDING
    embedding_error: str | None = Field(
        default=None, description="Human-readable cause of the last failure or skip."
    )
    embedding_attempts: int = Field(default=0, ge=0)
    embedding_started_at: datetime | None = None
    embedding_processed_at: datetime | None = None
    created_at: datetime | None = None
