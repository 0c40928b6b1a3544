"""SQLite-backed durable job store.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IJobStoreProvider).
# Database: ``data/dreamembed.db`` -- documents, embedding jobs, chunk
#           embeddings and document-theme associations.
#
# Synchronization: the store is the only coordination point between
# workers.  Ownership changes are conditional UPDATEs inside
# ``BEGIN IMMEDIATE`` transactions:
#
#   claim     WHERE status = 'pending'                      -> new claim_id
#   complete  WHERE status = 'processing' AND claim_id = ?  -> 'completed'
#   fail      WHERE status = 'processing' AND claim_id = ?  -> 'pending'/'failed'
#   reap      WHERE status = 'processing' AND claim_id IS ? -> 'pending'/'failed'
#
# A worker whose claim was taken over (reaper, operator requeue) matches
# zero rows and writes nothing.
#
# Uses ``aiosqlite`` for async I/O and ``PRAGMA journal_mode=WAL`` so
# readers never block on the writer and never see a half-committed result.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from dreamembed.interfaces.job_store_provider import IJobStoreProvider
from dreamembed.models.document import Document, EmbeddingStatus
from dreamembed.models.embedding import ChunkEmbedding
from dreamembed.models.job import Job, JobStatus
from dreamembed.models.result import DocumentEmbeddingResult, QueueStats
from dreamembed.models.theme import DocumentTheme
from dreamembed.providers.store.connection import open_connection, transaction
from dreamembed.providers.store.schema import ALL_TABLES, CREATE_INDICES
from dreamembed.utils.clock import to_iso, utc_now
from dreamembed.utils.errors import DocumentValidationError, PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/dreamembed.db")

# Error text stored on jobs/documents is capped to keep rows small.
_MAX_ERROR_LENGTH = 2000

# ── Documents ─────────────────────────────────────────────────────────

_INSERT_DOCUMENT = """\
INSERT INTO documents (id, raw_text, language, embedding_status, created_at)
VALUES (?, ?, ?, 'pending', ?);
"""

_SELECT_DOCUMENT = """\
SELECT id, raw_text, language, embedding_status, embedding_error, embedding_attempts,
       embedding_started_at, embedding_processed_at, created_at
FROM documents WHERE id = ?;
"""

_UPDATE_DOCUMENT_TEXT = "UPDATE documents SET raw_text = ? WHERE id = ?;"

_DOCUMENT_EXISTS = "SELECT 1 FROM documents WHERE id = ?;"

# ── Jobs ──────────────────────────────────────────────────────────────

_JOB_COLUMNS = """\
id, document_id, status, priority, attempts, max_attempts, error_message,
scheduled_at, started_at, completed_at, claim_id, created_at"""

_SELECT_JOB_BY_ID = f"SELECT {_JOB_COLUMNS} FROM embedding_jobs WHERE id = ?;"

_SELECT_JOB_BY_DOCUMENT = f"SELECT {_JOB_COLUMNS} FROM embedding_jobs WHERE document_id = ?;"

_INSERT_JOB_IF_ABSENT = """\
INSERT INTO embedding_jobs (document_id, status, priority, attempts, max_attempts,
                            scheduled_at, created_at)
VALUES (?, 'pending', ?, 0, ?, ?, ?)
ON CONFLICT(document_id) DO NOTHING;
"""

_UPSERT_JOB_PENDING = """\
INSERT INTO embedding_jobs (document_id, status, priority, attempts, max_attempts,
                            scheduled_at, created_at)
VALUES (?, 'pending', ?, ?, ?, ?, ?)
ON CONFLICT(document_id)
DO UPDATE SET status        = 'pending',
              priority      = excluded.priority,
              attempts      = excluded.attempts,
              max_attempts  = excluded.max_attempts,
              error_message = NULL,
              scheduled_at  = excluded.scheduled_at,
              started_at    = NULL,
              completed_at  = NULL,
              claim_id      = NULL;
"""

_RESET_DOCUMENT_PENDING = """\
UPDATE documents
SET embedding_status = 'pending', embedding_error = NULL, embedding_attempts = ?,
    embedding_started_at = NULL, embedding_processed_at = NULL
WHERE id = ?;
"""

_RESET_FAILED_DOCUMENT = """\
UPDATE documents
SET embedding_status = 'pending', embedding_error = NULL, embedding_attempts = ?,
    embedding_started_at = NULL, embedding_processed_at = NULL
WHERE id = ? AND embedding_status = 'failed';
"""

# Documents with text that were never queued, newest first. The SELECT keeps
# its WHERE clause so SQLite parses the trailing upsert clause.
_INSERT_MISSING_JOBS = """\
INSERT INTO embedding_jobs (document_id, status, priority, attempts, max_attempts,
                            scheduled_at, created_at)
SELECT d.id, 'pending', ?, 0, ?, ?, ?
FROM documents d
WHERE d.raw_text IS NOT NULL
  AND d.embedding_status = 'pending'
  AND NOT EXISTS (SELECT 1 FROM embedding_jobs j WHERE j.document_id = d.id)
ORDER BY d.created_at DESC, d.id ASC
LIMIT ?
ON CONFLICT(document_id) DO NOTHING;
"""

# Failed documents, plus documents left 'processing' with no job holding them.
_SELECT_RESETTABLE_DOCUMENTS = """\
SELECT d.id FROM documents d
LEFT JOIN embedding_jobs j ON j.document_id = d.id
WHERE d.embedding_status = 'failed'
   OR (d.embedding_status = 'processing' AND (j.status IS NULL OR j.status <> 'processing'))
ORDER BY d.created_at ASC, d.id ASC;
"""

_SELECT_PENDING_JOBS = f"""\
SELECT {_JOB_COLUMNS} FROM embedding_jobs
WHERE status = 'pending' AND attempts < max_attempts AND scheduled_at <= ?
ORDER BY priority DESC, scheduled_at ASC, id ASC
LIMIT ?;
"""

_CLAIM_JOB = """\
UPDATE embedding_jobs
SET status = 'processing', started_at = ?, claim_id = ?, completed_at = NULL
WHERE id = ? AND status = 'pending' AND attempts < max_attempts;
"""

_MARK_DOCUMENT_PROCESSING = """\
UPDATE documents
SET embedding_status = 'processing', embedding_started_at = ?
WHERE id = ?;
"""

_COMPLETE_CLAIMED_JOB = """\
UPDATE embedding_jobs
SET status = 'completed', completed_at = ?, error_message = NULL
WHERE id = ? AND status = 'processing' AND claim_id = ?;
"""

_SELECT_CLAIMED_ATTEMPTS = """\
SELECT attempts, max_attempts FROM embedding_jobs
WHERE id = ? AND status = 'processing' AND claim_id = ?;
"""

_RETRY_CLAIMED_JOB = """\
UPDATE embedding_jobs
SET status = 'pending', attempts = ?, error_message = ?, scheduled_at = ?, claim_id = NULL
WHERE id = ? AND status = 'processing' AND claim_id IS ?;
"""

_FAIL_CLAIMED_JOB = """\
UPDATE embedding_jobs
SET status = 'failed', attempts = ?, error_message = ?, completed_at = ?, claim_id = NULL
WHERE id = ? AND status = 'processing' AND claim_id IS ?;
"""

_SELECT_STALE_JOBS = f"""\
SELECT {_JOB_COLUMNS} FROM embedding_jobs
WHERE status = 'processing' AND started_at < ?
ORDER BY started_at ASC;
"""

_RECORD_DOCUMENT_FAILURE = """\
UPDATE documents
SET embedding_status = ?, embedding_error = ?, embedding_attempts = ?,
    embedding_processed_at = ?
WHERE id = ?;
"""

_MARK_DOCUMENT_DONE = """\
UPDATE documents
SET embedding_status = ?, embedding_error = ?, embedding_processed_at = ?
WHERE id = ?;
"""

# ── Results ───────────────────────────────────────────────────────────

_UPSERT_CHUNK_EMBEDDING = """\
INSERT INTO chunk_embeddings (document_id, chunk_index, chunk_text, token_count, embedding,
                              embedding_version, processing_time_ms, metadata, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(document_id, chunk_index, embedding_version)
DO UPDATE SET chunk_text         = excluded.chunk_text,
              token_count        = excluded.token_count,
              embedding          = excluded.embedding,
              processing_time_ms = excluded.processing_time_ms,
              metadata           = excluded.metadata,
              created_at         = excluded.created_at;
"""

_DELETE_CHUNK_EMBEDDINGS = """\
DELETE FROM chunk_embeddings WHERE document_id = ? AND embedding_version = ?;
"""

_DELETE_DOCUMENT_THEMES = "DELETE FROM document_themes WHERE document_id = ?;"

_INSERT_DOCUMENT_THEME = """\
INSERT INTO document_themes (document_id, theme_code, rank, similarity, explanation,
                             chunk_index, extracted_at)
VALUES (?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_CHUNK_EMBEDDINGS = """\
SELECT document_id, chunk_index, chunk_text, token_count, embedding, embedding_version,
       processing_time_ms, metadata, created_at
FROM chunk_embeddings
WHERE document_id = ? AND (? IS NULL OR embedding_version = ?)
ORDER BY embedding_version ASC, chunk_index ASC;
"""

_SELECT_DOCUMENT_THEMES = """\
SELECT dt.document_id, dt.theme_code, dt.rank, dt.similarity, dt.explanation,
       dt.chunk_index, dt.extracted_at, t.label
FROM document_themes dt
LEFT JOIN themes t ON t.code = dt.theme_code
WHERE dt.document_id = ?
ORDER BY dt.rank ASC;
"""

_COUNT_DOCUMENTS = "SELECT embedding_status AS status, COUNT(*) AS n FROM documents GROUP BY embedding_status;"

_COUNT_JOBS = "SELECT status, COUNT(*) AS n FROM embedding_jobs GROUP BY status;"


def _truncate(message: str) -> str:
    if len(message) <= _MAX_ERROR_LENGTH:
        return message
    return message[: _MAX_ERROR_LENGTH - 3] + "..."


class SQLiteJobStore(IJobStoreProvider):
    """SQLite-backed documents, jobs and embedding results.

    Each operation opens its own connection, so one store instance is safe
    to share between concurrently running worker tasks; separate worker
    processes pointed at the same file coordinate through SQLite's write
    lock.
    """

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        max_attempts: int = 3,
        busy_timeout_seconds: float = 10.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._db_path = Path(db_path)
        self._max_attempts = max_attempts
        self._busy_timeout = busy_timeout_seconds

    def _connect(self):
        return open_connection(self._db_path, self.get_provider_name(), self._busy_timeout)

    async def initialize(self) -> None:
        """Create all tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            # WAL mode enables concurrent readers while a writer is active.
            await db.execute("PRAGMA journal_mode=WAL;")
            for ddl in ALL_TABLES:
                await db.execute(ddl)
            for idx_sql in CREATE_INDICES:
                await db.execute(idx_sql)
        logger.info("job_store_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_job_store"

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    # ── Documents ──────────────────────────────────────────────────────

    async def create_document(
        self, document_id: str, raw_text: str | None, language: str | None = None
    ) -> Document:
        now = to_iso(utc_now())
        async with self._connect() as db:
            try:
                await db.execute(_INSERT_DOCUMENT, (document_id, raw_text, language, now))
            except aiosqlite.IntegrityError as exc:
                raise PersistenceError(
                    message=f"Document {document_id!r} already exists",
                    provider_name=self.get_provider_name(),
                ) from exc
            cursor = await db.execute(_SELECT_DOCUMENT, (document_id,))
            row = await cursor.fetchone()
        logger.info("document_created", document_id=document_id, has_text=raw_text is not None)
        return self._row_to_document(row)

    async def set_document_text(self, document_id: str, raw_text: str | None) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(_UPDATE_DOCUMENT_TEXT, (raw_text, document_id))
            return cursor.rowcount > 0

    async def get_document(self, document_id: str) -> Document | None:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_DOCUMENT, (document_id,))
            row = await cursor.fetchone()
        return self._row_to_document(row) if row is not None else None

    # ── Triggers and operator actions ──────────────────────────────────

    async def enqueue(self, document_id: str, priority: int = 0) -> bool:
        now = to_iso(utc_now())
        async with self._connect() as db, transaction(db):
            await self._require_document(db, document_id)
            cursor = await db.execute(
                _INSERT_JOB_IF_ABSENT,
                (document_id, priority, self._max_attempts, now, now),
            )
            created = cursor.rowcount > 0
        logger.info("job_enqueued" if created else "job_already_queued", document_id=document_id)
        return created

    async def requeue(self, document_id: str, priority: int = 1) -> Job:
        now = to_iso(utc_now())
        async with self._connect() as db, transaction(db):
            await self._require_document(db, document_id)
            await db.execute(
                _UPSERT_JOB_PENDING,
                (document_id, priority, 0, self._max_attempts, now, now),
            )
            await db.execute(_RESET_DOCUMENT_PENDING, (0, document_id))
            job = await self._fetch_job(db, _SELECT_JOB_BY_DOCUMENT, document_id)
        logger.info("job_requeued", document_id=document_id, priority=priority)
        return job

    async def reset_failed(self, document_id: str, attempts: int = 0) -> bool:
        if not 0 <= attempts < self._max_attempts:
            raise ValueError(
                f"attempts must be in [0, {self._max_attempts}), got {attempts}"
            )
        now = to_iso(utc_now())
        async with self._connect() as db, transaction(db):
            cursor = await db.execute(_RESET_FAILED_DOCUMENT, (attempts, document_id))
            if cursor.rowcount == 0:
                return False
            await db.execute(
                _UPSERT_JOB_PENDING,
                (document_id, 0, attempts, self._max_attempts, now, now),
            )
        logger.info("failed_document_reset", document_id=document_id, attempts=attempts)
        return True

    async def enqueue_missing(self, priority: int = 0, limit: int | None = None) -> int:
        if limit is not None and limit <= 0:
            return 0
        now = to_iso(utc_now())
        async with self._connect() as db, transaction(db):
            cursor = await db.execute(
                _INSERT_MISSING_JOBS,
                (priority, self._max_attempts, now, now, -1 if limit is None else limit),
            )
            created = cursor.rowcount
        logger.info("missing_jobs_enqueued", count=created, priority=priority)
        return created

    async def reset_all_failed(self, attempts: int = 0) -> list[str]:
        if not 0 <= attempts < self._max_attempts:
            raise ValueError(
                f"attempts must be in [0, {self._max_attempts}), got {attempts}"
            )
        now = to_iso(utc_now())
        async with self._connect() as db, transaction(db):
            cursor = await db.execute(_SELECT_RESETTABLE_DOCUMENTS)
            document_ids = [r["id"] for r in await cursor.fetchall()]
            for document_id in document_ids:
                await db.execute(_RESET_DOCUMENT_PENDING, (attempts, document_id))
                await db.execute(
                    _UPSERT_JOB_PENDING,
                    (document_id, 0, attempts, self._max_attempts, now, now),
                )
        logger.info("failed_documents_reset", count=len(document_ids), attempts=attempts)
        return document_ids

    # ── Worker operations ──────────────────────────────────────────────

    async def fetch_pending_jobs(self, limit: int, now: datetime | None = None) -> list[Job]:
        if limit <= 0:
            return []
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_PENDING_JOBS, (to_iso(now or utc_now()), limit))
            rows = await cursor.fetchall()
        return [self._row_to_job(r) for r in rows]

    async def claim_job(self, job_id: int, claim_id: str, now: datetime | None = None) -> Job | None:
        started = to_iso(now or utc_now())
        async with self._connect() as db, transaction(db):
            cursor = await db.execute(_CLAIM_JOB, (started, claim_id, job_id))
            if cursor.rowcount == 0:
                return None
            job = await self._fetch_job(db, _SELECT_JOB_BY_ID, job_id)
            await db.execute(_MARK_DOCUMENT_PROCESSING, (started, job.document_id))
        return job

    async def complete_job(
        self,
        job: Job,
        result: DocumentEmbeddingResult,
        now: datetime | None = None,
    ) -> bool:
        finished = to_iso(now or utc_now())
        async with self._connect() as db, transaction(db):
            cursor = await db.execute(_COMPLETE_CLAIMED_JOB, (finished, job.id, job.claim_id))
            if cursor.rowcount == 0:
                return False

            # A re-run under the same version replaces the whole chunk set; a
            # shorter text must not leave the old run's trailing chunks behind.
            versions = sorted({ce.embedding_version for ce in result.chunk_embeddings})
            await db.executemany(
                _DELETE_CHUNK_EMBEDDINGS, [(job.document_id, v) for v in versions]
            )
            await db.executemany(
                _UPSERT_CHUNK_EMBEDDING,
                [
                    (
                        ce.document_id,
                        ce.chunk_index,
                        ce.chunk_text,
                        ce.token_count,
                        json.dumps(ce.embedding),
                        ce.embedding_version,
                        ce.processing_time_ms,
                        json.dumps(ce.metadata),
                        finished,
                    )
                    for ce in result.chunk_embeddings
                ],
            )

            # Old and new association sets never coexist: both statements
            # commit together or not at all.
            await db.execute(_DELETE_DOCUMENT_THEMES, (job.document_id,))
            await db.executemany(
                _INSERT_DOCUMENT_THEME,
                [
                    (
                        job.document_id,
                        dt.theme_code,
                        dt.rank,
                        dt.similarity,
                        dt.explanation,
                        dt.chunk_index,
                        finished,
                    )
                    for dt in result.themes
                ],
            )
            await db.execute(
                _MARK_DOCUMENT_DONE,
                (EmbeddingStatus.COMPLETED.value, None, finished, job.document_id),
            )
        return True

    async def skip_job(self, job: Job, reason: str, now: datetime | None = None) -> bool:
        finished = to_iso(now or utc_now())
        async with self._connect() as db, transaction(db):
            cursor = await db.execute(_COMPLETE_CLAIMED_JOB, (finished, job.id, job.claim_id))
            if cursor.rowcount == 0:
                return False
            await db.execute(
                _MARK_DOCUMENT_DONE,
                (EmbeddingStatus.SKIPPED.value, _truncate(reason), finished, job.document_id),
            )
        return True

    async def fail_job(
        self,
        job: Job,
        error_message: str,
        retry_at: datetime | None,
        now: datetime | None = None,
    ) -> JobStatus | None:
        failed_at = to_iso(now or utc_now())
        async with self._connect() as db, transaction(db):
            cursor = await db.execute(_SELECT_CLAIMED_ATTEMPTS, (job.id, job.claim_id))
            row = await cursor.fetchone()
            if row is None:
                return None
            return await self._record_attempt_failure(
                db,
                job_id=job.id,
                document_id=job.document_id,
                claim_id=job.claim_id,
                attempts=row["attempts"] + 1,
                max_attempts=row["max_attempts"],
                error_message=_truncate(error_message),
                retry_at=to_iso(retry_at) if retry_at is not None else None,
                now=failed_at,
            )

    async def reap_stale_jobs(self, cutoff: datetime, now: datetime | None = None) -> list[Job]:
        reaped_at = to_iso(now or utc_now())
        reaped: list[Job] = []
        async with self._connect() as db, transaction(db):
            cursor = await db.execute(_SELECT_STALE_JOBS, (to_iso(cutoff),))
            stale = [self._row_to_job(r) for r in await cursor.fetchall()]
            for job in stale:
                message = (
                    f"Job timed out: processing since {to_iso(job.started_at)} "
                    f"exceeded the stale-job timeout"
                )
                status = await self._record_attempt_failure(
                    db,
                    job_id=job.id,
                    document_id=job.document_id,
                    claim_id=job.claim_id,
                    attempts=job.attempts + 1,
                    max_attempts=job.max_attempts,
                    error_message=message,
                    retry_at=reaped_at,
                    now=reaped_at,
                )
                if status is not None:
                    reaped.append(await self._fetch_job(db, _SELECT_JOB_BY_ID, job.id))
        return reaped

    async def _record_attempt_failure(
        self,
        db: aiosqlite.Connection,
        *,
        job_id: int,
        document_id: str,
        claim_id: str | None,
        attempts: int,
        max_attempts: int,
        error_message: str,
        retry_at: str | None,
        now: str,
    ) -> JobStatus | None:
        """Apply one counted failure to a held job and mirror it on the document."""
        if retry_at is not None and attempts < max_attempts:
            cursor = await db.execute(
                _RETRY_CLAIMED_JOB, (attempts, error_message, retry_at, job_id, claim_id)
            )
            status = JobStatus.PENDING
            doc_status, processed_at = EmbeddingStatus.PENDING, None
        else:
            cursor = await db.execute(
                _FAIL_CLAIMED_JOB, (attempts, error_message, now, job_id, claim_id)
            )
            status = JobStatus.FAILED
            doc_status, processed_at = EmbeddingStatus.FAILED, now

        if cursor.rowcount == 0:
            return None
        await db.execute(
            _RECORD_DOCUMENT_FAILURE,
            (doc_status.value, error_message, attempts, processed_at, document_id),
        )
        return status

    # ── Queries ────────────────────────────────────────────────────────

    async def get_job(self, document_id: str) -> Job | None:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_JOB_BY_DOCUMENT, (document_id,))
            row = await cursor.fetchone()
        return self._row_to_job(row) if row is not None else None

    async def get_chunk_embeddings(
        self, document_id: str, embedding_version: str | None = None
    ) -> list[ChunkEmbedding]:
        async with self._connect() as db:
            cursor = await db.execute(
                _SELECT_CHUNK_EMBEDDINGS, (document_id, embedding_version, embedding_version)
            )
            rows = await cursor.fetchall()

        return [
            ChunkEmbedding(
                document_id=r["document_id"],
                chunk_index=r["chunk_index"],
                chunk_text=r["chunk_text"],
                token_count=r["token_count"],
                embedding=json.loads(r["embedding"]),
                embedding_version=r["embedding_version"],
                processing_time_ms=r["processing_time_ms"],
                metadata=json.loads(r["metadata"]) if r["metadata"] else {},
                created_at=r["created_at"],
            )
            for r in rows
        ]

    async def get_document_themes(self, document_id: str) -> list[DocumentTheme]:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_DOCUMENT_THEMES, (document_id,))
            rows = await cursor.fetchall()
        return [DocumentTheme(**dict(r)) for r in rows]

    async def get_status_counts(self) -> QueueStats:
        async with self._connect() as db:
            doc_rows = await (await db.execute(_COUNT_DOCUMENTS)).fetchall()
            job_rows = await (await db.execute(_COUNT_JOBS)).fetchall()

        documents = {s.value: 0 for s in EmbeddingStatus}
        documents.update({r["status"]: r["n"] for r in doc_rows})
        jobs = {s.value: 0 for s in JobStatus}
        jobs.update({r["status"]: r["n"] for r in job_rows})
        return QueueStats(documents=documents, jobs=jobs)

    # ── Helpers ────────────────────────────────────────────────────────

    async def _require_document(self, db: aiosqlite.Connection, document_id: str) -> None:
        cursor = await db.execute(_DOCUMENT_EXISTS, (document_id,))
        if await cursor.fetchone() is None:
            raise DocumentValidationError(
                message=f"Document {document_id!r} does not exist",
                provider_name=self.get_provider_name(),
            )

    async def _fetch_job(self, db: aiosqlite.Connection, sql: str, key: Any) -> Job:
        cursor = await db.execute(sql, (key,))
        row = await cursor.fetchone()
        if row is None:
            raise PersistenceError(
                message=f"Job {key!r} vanished mid-transaction",
                provider_name=self.get_provider_name(),
            )
        return self._row_to_job(row)

    @staticmethod
    def _row_to_job(row: aiosqlite.Row) -> Job:
        return Job(**dict(row))

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> Document:
        return Document(**dict(row))
