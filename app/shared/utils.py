"""Shared utility functions."""

from __future__ import annotations

from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    """Return aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Return current UTC calendar date."""
    return utc_now().date()


def truncate_to_minute(value: time) -> time:
    """Drop seconds and microseconds from a time-of-day."""
    return value.replace(second=0, microsecond=0, tzinfo=None)


def to_minutes(value: time) -> int:
    """Return minutes since midnight for a time-of-day."""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Build a time-of-day from minutes since midnight."""
    return time(minutes // 60, minutes % 60)


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")
