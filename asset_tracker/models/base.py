"""Shared column helpers for the model modules."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """
    Return the current UTC time as a naive datetime.

    Timestamps are stored without a zone.  SQLite drops tzinfo on the
    way back, so keeping every value naive UTC lets Python-side
    comparisons (e.g. the ``updated_at`` bump) work across backends.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value) -> str | None:
    """Serialize a date/datetime for JSON, passing None through."""
    return value.isoformat() if value is not None else None
