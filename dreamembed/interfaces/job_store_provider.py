"""Abstract base class for the durable job store.

The store is the single source of truth for "who owns this job right now".
Workers never coordinate with each other directly: every ownership change is
one conditional update against the store.

All mutating operations on a claimed job take the :class:`Job` returned by
:meth:`IJobStoreProvider.claim_job` and are conditioned on its ``claim_id``;
if the claim has been lost in the meantime they write nothing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from dreamembed.models.document import Document
from dreamembed.models.embedding import ChunkEmbedding
from dreamembed.models.job import Job, JobStatus
from dreamembed.models.result import DocumentEmbeddingResult, QueueStats
from dreamembed.models.theme import DocumentTheme


# Concrete implementation: SQLiteJobStore (dreamembed/providers/store/)
class IJobStoreProvider(ABC):
    """Contract for document, job and result persistence."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_document(
        self, document_id: str, raw_text: str | None, language: str | None = None
    ) -> Document:
        """Insert a new document in ``pending`` state."""

    @abstractmethod
    async def set_document_text(self, document_id: str, raw_text: str | None) -> bool:
        """Replace a document's raw text.  Returns ``False`` if unknown."""

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return the document, or ``None`` if it does not exist."""

    # ------------------------------------------------------------------
    # Triggers and operator actions
    # ------------------------------------------------------------------

    @abstractmethod
    async def enqueue(self, document_id: str, priority: int = 0) -> bool:
        """Create the document's job if it has none.

        Idempotent: re-triggering an already-queued document is a no-op.
        Returns ``True`` only when a job was created.
        """

    @abstractmethod
    async def requeue(self, document_id: str, priority: int = 1) -> Job:
        """Force the document back to ``pending`` regardless of its status."""

    @abstractmethod
    async def reset_failed(self, document_id: str, attempts: int = 0) -> bool:
        """Return a ``failed`` document to ``pending`` with *attempts* reset.

        Returns ``False`` if the document is not currently ``failed``.
        """

    @abstractmethod
    async def enqueue_missing(self, priority: int = 0, limit: int | None = None) -> int:
        """Create jobs for pending documents with text that have none, newest first.

        Documents that already have a job are left alone.  Returns the number
        of jobs created.
        """

    @abstractmethod
    async def reset_all_failed(self, attempts: int = 0) -> list[str]:
        """Return every ``failed`` or orphaned ``processing`` document to ``pending``.

        Returns the ids of the documents that were reset.
        """

    # ------------------------------------------------------------------
    # Worker operations
    # ------------------------------------------------------------------

    @abstractmethod
    async def fetch_pending_jobs(self, limit: int, now: datetime | None = None) -> list[Job]:
        """Return up to *limit* claimable jobs, ``priority DESC, scheduled_at ASC``."""

    @abstractmethod
    async def claim_job(self, job_id: int, claim_id: str, now: datetime | None = None) -> Job | None:
        """Atomically move a job ``pending → processing``.

        Returns the claimed job, or ``None`` when the job was no longer
        pending (another worker won the race).
        """

    @abstractmethod
    async def complete_job(
        self,
        job: Job,
        result: DocumentEmbeddingResult,
        now: datetime | None = None,
    ) -> bool:
        """Commit chunk embeddings, replace theme associations, mark completed.

        All-or-nothing.  Returns ``False`` if the claim was lost.
        """

    @abstractmethod
    async def skip_job(self, job: Job, reason: str, now: datetime | None = None) -> bool:
        """Mark the document ``skipped`` and the job ``completed``."""

    @abstractmethod
    async def fail_job(
        self,
        job: Job,
        error_message: str,
        retry_at: datetime | None,
        now: datetime | None = None,
    ) -> JobStatus | None:
        """Record a failed attempt.

        The job goes back to ``pending`` at *retry_at* while attempts remain
        and *retry_at* is given; otherwise it becomes terminally ``failed``.
        Returns the resulting status, or ``None`` if the claim was lost.
        """

    @abstractmethod
    async def reap_stale_jobs(self, cutoff: datetime, now: datetime | None = None) -> list[Job]:
        """Recover ``processing`` jobs whose ``started_at`` is before *cutoff*."""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_job(self, document_id: str) -> Job | None:
        """Return the job for *document_id*, if any."""

    @abstractmethod
    async def get_chunk_embeddings(
        self, document_id: str, embedding_version: str | None = None
    ) -> list[ChunkEmbedding]:
        """Return the document's chunk embeddings in chunk order."""

    @abstractmethod
    async def get_document_themes(self, document_id: str) -> list[DocumentTheme]:
        """Return the document's theme associations in rank order."""

    @abstractmethod
    async def get_status_counts(self) -> QueueStats:
        """Return per-status counts of documents and jobs."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
