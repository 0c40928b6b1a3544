"""Polling worker pool that drives embedding jobs to a terminal state.

# ─── DESIGN ────────────────────────────────────────────────────────────
#
# One poll cycle:
#   1. fetch up to (concurrency_limit - active) claimable jobs,
#      ordered priority DESC, scheduled_at ASC
#   2. claim each with a fresh claim_id (conditional UPDATE); a lost race
#      is counted and skipped, not an error
#   3. process every claimed job in its own asyncio task
#   4. commit the in-memory result, or record the failure with an
#      exponential-backoff retry time
#
# Between cycles the loop waits on an asyncio.Event with a timeout, so
# stop() interrupts the wait immediately instead of busy-polling.
#
# Failures are recorded on the job and document, never raised out of the
# loop.  Only configuration errors at startup are fatal, and those are
# raised before the worker is constructed.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable

import structlog
from structlog.contextvars import bound_contextvars

from dreamembed.interfaces.job_store_provider import IJobStoreProvider
from dreamembed.models.job import Job, JobStatus
from dreamembed.models.result import DocumentEmbeddingResult, ProcessingOutcome
from dreamembed.services.embedding_service import EmbeddingService
from dreamembed.utils.clock import utc_now
from dreamembed.utils.errors import is_retryable
from dreamembed.worker.backoff import next_retry_at

logger = structlog.get_logger(logger_name=__name__)


@dataclass
class WorkerCounters:
    """Per-outcome counters since the worker was created."""

    claimed: int = 0
    completed: int = 0
    skipped: int = 0
    retried: int = 0
    failed: int = 0
    claim_conflicts: int = 0
    claims_lost: int = 0


class EmbeddingWorker:
    """Claims pending jobs and processes them with bounded concurrency.

    Parameters
    ----------
    store:
        The shared job store; the only coordination point between workers.
    service:
        Computes each job's embeddings and themes.
    concurrency_limit:
        Maximum number of jobs processed at the same time by this worker.
    poll_interval_seconds:
        Wait between poll cycles.
    retry_backoff_base_seconds, retry_backoff_max_seconds:
        A retryable failure reschedules the job ``base * 2**attempts``
        seconds later, capped at the maximum.
    worker_id:
        Label bound into every log line; random when omitted.
    clock:
        Source of "now"; injectable for tests.
    """

    def __init__(
        self,
        store: IJobStoreProvider,
        service: EmbeddingService,
        concurrency_limit: int = 2,
        poll_interval_seconds: float = 5.0,
        retry_backoff_base_seconds: float = 60.0,
        retry_backoff_max_seconds: float = 3600.0,
        worker_id: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be >= 1")
        self._store = store
        self._service = service
        self._concurrency_limit = concurrency_limit
        self._poll_interval = poll_interval_seconds
        self._backoff_base = retry_backoff_base_seconds
        self._backoff_max = retry_backoff_max_seconds
        self._worker_id = worker_id or f"worker-{uuid.uuid4().hex[:8]}"
        self._clock = clock

        self._active: dict[int, asyncio.Task[None]] = {}
        self._stop_event = asyncio.Event()
        self._running = False
        self._counters = WorkerCounters()

    @property
    def worker_id(self) -> str:
        return self._worker_id

    @property
    def active_count(self) -> int:
        return len(self._active)

    @property
    def counters(self) -> WorkerCounters:
        return self._counters

    # ─── Poll cycle ───────────────────────────────────────────────────

    async def poll_once(self) -> int:
        """Claim up to the free slot count and start processing.  Returns claims made."""
        free_slots = self._concurrency_limit - len(self._active)
        if free_slots <= 0:
            return 0

        candidates = await self._store.fetch_pending_jobs(free_slots, now=self._clock())
        claimed = 0
        for candidate in candidates:
            if candidate.id in self._active:
                continue
            job = await self._store.claim_job(candidate.id, uuid.uuid4().hex, now=self._clock())
            if job is None:
                self._counters.claim_conflicts += 1
                logger.debug("job_claim_conflict", job_id=candidate.id, worker_id=self._worker_id)
                continue

            self._counters.claimed += 1
            claimed += 1
            task = asyncio.create_task(self._run_job(job), name=f"embed-job-{job.id}")
            self._active[job.id] = task
            task.add_done_callback(lambda _t, job_id=job.id: self._active.pop(job_id, None))
        return claimed

    async def drain(self) -> None:
        """Wait for every in-flight job task to finish."""
        while self._active:
            await asyncio.gather(*list(self._active.values()), return_exceptions=True)

    async def run_once(self) -> int:
        """One full cycle: poll, then wait for the claimed jobs to finish."""
        claimed = await self.poll_once()
        await self.drain()
        return claimed

    async def run(self) -> None:
        """Poll until :meth:`stop` is called, then let in-flight jobs finish."""
        self._running = True
        self._stop_event.clear()
        logger.info(
            "worker_started",
            worker_id=self._worker_id,
            concurrency_limit=self._concurrency_limit,
            poll_interval_seconds=self._poll_interval,
        )
        try:
            while not self._stop_event.is_set():
                try:
                    await self.poll_once()
                except Exception as exc:
                    # The store may be briefly unavailable; the next cycle retries.
                    logger.warning(
                        "poll_failed", worker_id=self._worker_id, error=str(exc), exc_info=True
                    )
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            await self.drain()
            self._running = False
            logger.info("worker_stopped", worker_id=self._worker_id, **asdict(self._counters))

    def stop(self) -> None:
        """Ask :meth:`run` to exit after the current cycle."""
        self._stop_event.set()

    def get_status(self) -> dict[str, Any]:
        return {
            "worker_id": self._worker_id,
            "running": self._running,
            "active_jobs": sorted(self._active),
            "concurrency_limit": self._concurrency_limit,
            "poll_interval_seconds": self._poll_interval,
            "counters": asdict(self._counters),
        }

    # ─── Job execution ────────────────────────────────────────────────

    async def _run_job(self, job: Job) -> None:
        with bound_contextvars(job_id=job.id, document_id=job.document_id, worker_id=self._worker_id):
            logger.info("job_claimed", attempt=job.attempts + 1, max_attempts=job.max_attempts)
            try:
                result = await self._service.process(job)
                await self._commit(job, result)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                await self._record_failure(job, exc)

    async def _commit(self, job: Job, result: DocumentEmbeddingResult) -> None:
        if result.outcome == ProcessingOutcome.SKIPPED:
            committed = await self._store.skip_job(job, result.skip_reason or "skipped", now=self._clock())
        else:
            committed = await self._store.complete_job(job, result, now=self._clock())

        if not committed:
            self._counters.claims_lost += 1
            logger.warning("job_claim_lost", stage="commit")
            return

        if result.outcome == ProcessingOutcome.SKIPPED:
            self._counters.skipped += 1
            logger.info("job_skipped", reason=result.skip_reason)
        else:
            self._counters.completed += 1
            logger.info("job_completed", chunks=len(result.chunk_embeddings), themes=len(result.themes))

        logger.info(
            "embedding_job_metrics",
            outcome=result.outcome.value,
            chunks_processed=len(result.chunk_embeddings),
            themes_extracted=len(result.themes),
            top_themes=[t.theme_code for t in result.themes],
            processing_time_ms=result.processing_time_ms,
            embedding_version=self._service.embedding_version,
        )

    async def _record_failure(self, job: Job, exc: Exception) -> None:
        message = str(exc) or exc.__class__.__name__
        now = self._clock()
        attempts = job.attempts + 1
        retry_at = (
            next_retry_at(now, attempts, self._backoff_base, self._backoff_max)
            if is_retryable(exc)
            else None
        )

        try:
            status = await self._store.fail_job(job, message, retry_at, now=now)
        except Exception as store_exc:
            # The job stays 'processing'; the reaper recovers it and counts the attempt.
            logger.error(
                "job_failure_not_recorded",
                error=message,
                store_error=str(store_exc),
                exc_info=True,
            )
            return

        if status is None:
            self._counters.claims_lost += 1
            logger.warning("job_claim_lost", stage="failure", error=message)
        elif status == JobStatus.PENDING:
            self._counters.retried += 1
            logger.warning(
                "job_retry_scheduled",
                error=message,
                error_type=exc.__class__.__name__,
                attempts=attempts,
                retry_at=retry_at.isoformat() if retry_at else None,
            )
        else:
            self._counters.failed += 1
            logger.error(
                "job_failed",
                error=message,
                error_type=exc.__class__.__name__,
                attempts=attempts,
                retryable=retry_at is not None,
            )
