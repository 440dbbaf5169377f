"""Datetime helpers shared by the alert and report services."""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Number of full days from ``start`` to ``end`` (truncated toward zero)."""
    delta = as_utc(end) - as_utc(start)
    days = delta.total_seconds() / 86400
    return int(days)


def month_start(value: datetime, months_back: int = 0) -> datetime:
    """First instant of the month ``months_back`` months before ``value``."""
    year = value.year
    month = value.month - months_back
    while month <= 0:
        month += 12
        year -= 1
    return datetime(year, month, 1, tzinfo=timezone.utc)
