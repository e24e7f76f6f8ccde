"""Timestamp encoding shared by the SQLite-backed stores."""

from __future__ import annotations

from datetime import datetime, timezone

from kickflip.utils.clock import Clock, utc_now

__all__ = ["Clock", "from_db_timestamp", "to_db_timestamp", "utc_now"]


def to_db_timestamp(value: datetime) -> str:
    """Fixed-width UTC timestamp so string comparison in SQL is chronological."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def from_db_timestamp(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)
