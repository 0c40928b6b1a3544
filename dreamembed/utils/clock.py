"""UTC timestamp helpers.

Every timestamp the pipeline persists is timezone-aware UTC rendered with
microsecond precision, so string comparison in SQL matches time order.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Render *value* as a fixed-width UTC ISO-8601 string.

    Naive datetimes are assumed to already be in UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")
