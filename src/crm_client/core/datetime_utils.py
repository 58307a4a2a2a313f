"""Datetime helpers shared across the application."""

from __future__ import annotations

from datetime import UTC, date, datetime

__all__ = [
    "utcnow",
    "coerce_date",
    "coerce_datetime",
    "serialize_date",
    "serialize_datetime",
    "days_between",
]


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


def coerce_date(value: date | datetime | str | None) -> date | None:
    """Return ``value`` as a ``date``; empty strings map to ``None``."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if not text:
        return None
    # Accept both plain dates and full timestamps.
    return date.fromisoformat(text[:10])


def coerce_datetime(value: datetime | date | str | None) -> datetime | None:
    """Parse ISO 8601 (or ``YYYY-MM-DD HH:MM:SS``) input into an aware ``datetime``.

    Naive values are assumed to be UTC so that timestamps stay comparable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = value.strip()
        if not text:
            return None
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


def serialize_date(value: date | None) -> str | None:
    """Serialise ``value`` as ``YYYY-MM-DD``."""
    if value is None:
        return None
    return value.isoformat()


def serialize_datetime(value: datetime | None) -> str | None:
    """Serialise ``value`` to ISO 8601, normalising timezone-aware values."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.isoformat()
    return value.astimezone(UTC).isoformat()


def days_between(start: date, end: date) -> int:
    """Return the signed number of whole days from ``start`` to ``end``."""
    return (end - start).days
