"""Naive-UTC time helpers used for timestamps and report windows."""

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, matching what PyMongo returns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def first_of_month(moment: datetime) -> datetime:
    return start_of_day(moment).replace(day=1)


def days_ago(moment: datetime, days: int) -> datetime:
    return moment - timedelta(days=days)
