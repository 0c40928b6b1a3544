"""aiosqlite connection and transaction helpers.

Connections run in autocommit mode (``isolation_level=None``) so that
transaction boundaries are explicit: ``BEGIN IMMEDIATE`` takes SQLite's
write lock up front, which turns every read-then-write sequence inside a
transaction into one atomic step across processes.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from dreamembed.utils.errors import PersistenceError


@asynccontextmanager
async def open_connection(
    db_path: Path,
    provider_name: str,
    busy_timeout_seconds: float = 10.0,
) -> AsyncIterator[aiosqlite.Connection]:
    """Yield a configured connection; ``aiosqlite.Error`` becomes ``PersistenceError``."""
    try:
        async with aiosqlite.connect(
            str(db_path), timeout=busy_timeout_seconds, isolation_level=None
        ) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON;")
            yield db
    except aiosqlite.Error as exc:
        raise PersistenceError(message=str(exc), provider_name=provider_name) from exc


@asynccontextmanager
async def transaction(db: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """Run the enclosed statements as one ``BEGIN IMMEDIATE`` transaction."""
    await db.execute("BEGIN IMMEDIATE;")
    try:
        yield db
    except BaseException:
        await db.execute("ROLLBACK;")
        raise
    else:
        await db.execute("COMMIT;")
