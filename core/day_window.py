"""The local calendar day a subscription is scoped to."""

from __future__ import annotations

from datetime import datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from config import settings
from core.models.meal import DayWindow


def local_zone() -> tzinfo:
    if settings.local_timezone:
        return ZoneInfo(settings.local_timezone)
    return datetime.now().astimezone().tzinfo  # type: ignore[return-value]


def local_day_window(now: datetime | None = None, tz: tzinfo | None = None) -> DayWindow:
    """
    `[midnight today, midnight tomorrow)` in local time.

    Tomorrow's midnight is taken on the calendar, so a DST change day is
    23 or 25 hours long rather than a fixed 24.
    """
    tz = tz or local_zone()
    now = now.astimezone(tz) if now is not None else datetime.now(tz)
    today = now.date()
    start = datetime.combine(today, time.min, tzinfo=tz)
    end = datetime.combine(today + timedelta(days=1), time.min, tzinfo=tz)
    return DayWindow(start=start, end=end)
