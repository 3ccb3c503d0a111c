from __future__ import annotations
from datetime import datetime, timezone as dt_tz


def utcnow() -> datetime:
    return datetime.now(dt_tz.utc)


def as_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime read back from the database to an aware UTC value.

    Postgres TIMESTAMPTZ comes back aware; SQLite drops tzinfo, and those values
    were written as UTC, so a naive value is taken to be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_tz.utc)
    return dt.astimezone(dt_tz.utc)
