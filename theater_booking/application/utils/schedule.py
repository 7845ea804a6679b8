from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from theater_booking.core.config import settings

_SLOT_START_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*(am|pm)", re.IGNORECASE)


def parse_slot_start(time_slot: str) -> tuple[int, int] | None:
    """Return the (hour, minute) a slot label like "6:00 PM - 9:00 PM" starts at."""
    match = _SLOT_START_PATTERN.search(time_slot or "")
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2))
    period = match.group(3).lower()
    if period == "pm" and hour != 12:
        hour += 12
    elif period == "am" and hour == 12:
        hour = 0
    if hour > 23 or minute > 59:
        return None
    return hour, minute


def is_within_cutoff(booking_date: str | None, time_slot: str | None, now: datetime, cutoff_minutes: int) -> bool:
    """True when the slot is today and starts less than `cutoff_minutes` from `now`."""
    if not booking_date or not time_slot:
        return False
    try:
        slot_day = date.fromisoformat(booking_date[:10])
    except ValueError:
        return False
    if slot_day != now.date():
        return False

    start = parse_slot_start(time_slot)
    if start is None:
        return False

    hour, minute = start
    slot_start = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    return now >= slot_start - timedelta(minutes=cutoff_minutes)


def business_now() -> datetime:
    return datetime.now(ZoneInfo(settings.BUSINESS_TIMEZONE))
