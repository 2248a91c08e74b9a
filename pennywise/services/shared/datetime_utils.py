"""Datetime helpers."""

from datetime import UTC, datetime


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite hands these back) as UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def is_past(value: datetime, now: datetime | None = None) -> bool:
    return as_utc(value) <= (now or datetime.now(UTC))
