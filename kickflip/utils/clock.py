"""Time helpers.  Every component that needs "now" takes a ``Clock``."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Callable
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]

SEATTLE_TZ = ZoneInfo("America/Los_Angeles")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_today(clock: Clock = utc_now, tz: ZoneInfo = SEATTLE_TZ) -> date:
    """Today's date in Seattle."""
    return clock().astimezone(tz).date()


def start_of_day(day: date, tz: ZoneInfo = SEATTLE_TZ) -> datetime:
    """Local midnight at the start of *day*, as an aware datetime."""
    return datetime.combine(day, time.min, tzinfo=tz)
