from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from floorline.core.config import BUSINESS_TIMEZONE


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def business_day_window(business_date: date, tz_name: str | None = None) -> tuple[datetime, datetime]:
    """Return the naive-UTC ``[start, end)`` bounds of a local calendar day."""
    tz = ZoneInfo(tz_name or BUSINESS_TIMEZONE)
    local_start = datetime.combine(business_date, time.min, tzinfo=tz)
    local_end = datetime.combine(business_date + timedelta(days=1), time.min, tzinfo=tz)
    return (
        local_start.astimezone(timezone.utc).replace(tzinfo=None),
        local_end.astimezone(timezone.utc).replace(tzinfo=None),
    )


def parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
