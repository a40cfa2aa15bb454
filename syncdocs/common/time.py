"""Clock helpers that always return timezone-aware UTC values."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return the current time as an aware UTC datetime."""
    return dt.datetime.now(dt.UTC)


def seconds_since(started_at: dt.datetime) -> float:
    """Return the seconds elapsed between ``started_at`` and now."""
    return (utcnow() - started_at).total_seconds()
