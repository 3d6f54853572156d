"""UTC datetime helpers. Stored timestamps (created_at, deleted_at) are UTC-aware."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalize a datetime read back from the store to UTC.

    Naive values (SQLite drops tzinfo) are assumed to already be UTC;
    aware values are converted. None passes through.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
