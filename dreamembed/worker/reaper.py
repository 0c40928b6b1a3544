"""Periodic recovery of jobs abandoned by crashed workers.

A job whose ``started_at`` is older than the stale timeout while still
``processing`` is assumed orphaned.  The reaper counts that as a failed
attempt and returns the job to ``pending`` (retried on the next poll, no
extra backoff) or, once attempts are exhausted, to ``failed``.  The store
applies the same conditional-update discipline the workers use, so a
worker that legitimately finishes at the same moment and the reaper can
never both win.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Callable

import structlog

from dreamembed.interfaces.job_store_provider import IJobStoreProvider
from dreamembed.models.job import Job, JobStatus
from dreamembed.utils.clock import utc_now

logger = structlog.get_logger(logger_name=__name__)


class StaleJobReaper:
    """Sweeps the job store for stale ``processing`` jobs on a fixed interval."""

    def __init__(
        self,
        store: IJobStoreProvider,
        stale_timeout_seconds: float = 1800.0,
        interval_seconds: float = 300.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if stale_timeout_seconds <= 0 or interval_seconds <= 0:
            raise ValueError("stale timeout and interval must be positive")
        self._store = store
        self._stale_timeout = timedelta(seconds=stale_timeout_seconds)
        self._interval = interval_seconds
        self._clock = clock
        self._stop_event = asyncio.Event()
        self._sweeps = 0
        self._reaped_total = 0

    async def sweep(self, now: datetime | None = None) -> list[Job]:
        """Reap every job that has been processing longer than the timeout."""
        now = now or self._clock()
        cutoff = now - self._stale_timeout
        reaped = await self._store.reap_stale_jobs(cutoff, now=now)
        self._sweeps += 1
        self._reaped_total += len(reaped)

        if reaped:
            logger.warning(
                "stale_jobs_reaped",
                count=len(reaped),
                requeued=[j.document_id for j in reaped if j.status == JobStatus.PENDING],
                failed=[j.document_id for j in reaped if j.status == JobStatus.FAILED],
                cutoff=cutoff.isoformat(),
            )
        else:
            logger.debug("stale_job_sweep_clean", cutoff=cutoff.isoformat())
        return reaped

    async def run(self) -> None:
        """Sweep immediately, then every interval until :meth:`stop` is called."""
        self._stop_event.clear()
        logger.info(
            "reaper_started",
            interval_seconds=self._interval,
            stale_timeout_seconds=self._stale_timeout.total_seconds(),
        )
        while not self._stop_event.is_set():
            try:
                await self.sweep()
            except Exception as exc:
                logger.warning("stale_job_sweep_failed", error=str(exc), exc_info=True)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
        logger.info("reaper_stopped", sweeps=self._sweeps, reaped=self._reaped_total)

    def stop(self) -> None:
        self._stop_event.set()

    def get_status(self) -> dict[str, float | int]:
        return {
            "interval_seconds": self._interval,
            "stale_timeout_seconds": self._stale_timeout.total_seconds(),
            "sweeps": self._sweeps,
            "reaped_total": self._reaped_total,
        }
