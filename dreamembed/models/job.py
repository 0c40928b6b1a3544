"""Embedding job queue entries.

One job exists per document (unique ``document_id``).  A job moves
``pending → processing`` only through the store's atomic claim, which also
stamps ``started_at`` and a fresh ``claim_id``.  Every later transition of a
claimed job is conditioned on that ``claim_id`` so a worker that lost its
claim (to the reaper or an operator requeue) can never overwrite the job.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class JobStatus(str, Enum):
    """Lifecycle states for an embedding job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Job(BaseModel):
    """A unit of scheduled work: "embed this document"."""

    model_config = ConfigDict(frozen=True)

    id: int
    document_id: str
    status: JobStatus = JobStatus.PENDING
    priority: int = Field(default=0, description="Higher values are scheduled first.")
    attempts: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=3, ge=1)
    error_message: str | None = None
    scheduled_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    claim_id: str | None = Field(
        default=None, description="Token of the worker currently holding the job."
    )
    created_at: datetime | None = None

    @model_validator(mode="after")
    def _processing_needs_start(self) -> "Job":
        if self.status == JobStatus.PROCESSING and self.started_at is None:
            raise ValueError("a processing job must have started_at set")
        return self

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempts)
