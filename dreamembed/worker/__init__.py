"""Long-running background components: the worker pool and the stale-job reaper."""

from dreamembed.worker.backoff import compute_backoff_seconds, next_retry_at
from dreamembed.worker.embedding_worker import EmbeddingWorker, WorkerCounters
from dreamembed.worker.reaper import StaleJobReaper

__all__ = [
    "EmbeddingWorker",
    "StaleJobReaper",
    "WorkerCounters",
    "compute_backoff_seconds",
    "next_retry_at",
]
