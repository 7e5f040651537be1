from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """MySQL DATETIME columns come back naive; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db(value: datetime) -> datetime:
    return as_utc(value).replace(tzinfo=None)
