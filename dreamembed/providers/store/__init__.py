"""Durable job store implementations.

SQLite (via ``aiosqlite``) is the sole implementation.  To move the queue
onto another engine, implement IJobStoreProvider and wire it in main.py;
the claim/complete/fail conditional updates are the only part that needs
engine-specific care.
"""

from dreamembed.providers.store.sqlite_job_store import SQLiteJobStore

__all__ = ["SQLiteJobStore"]
