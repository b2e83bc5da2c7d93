"""
Service-local time helpers.

All "today" and "now" decisions are made in the service's fixed local
timezone, never in UTC, so day boundaries match the food bank's calendar.
"""
from datetime import date, datetime, time
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from foodbank.core.config import settings


@lru_cache(maxsize=8)
def get_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def service_timezone() -> ZoneInfo:
    """Timezone the food bank operates in."""
    return get_zone(settings.service_timezone)


def now_local() -> datetime:
    """Current instant, expressed in the service timezone."""
    return datetime.now(service_timezone())


def to_local(instant: datetime) -> datetime:
    """Convert an aware datetime to the service timezone (naive values are assumed local)."""
    tz = service_timezone()
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


def today_local(now: Optional[datetime] = None) -> date:
    return to_local(now or now_local()).date()


def parse_hhmm(value: str) -> time:
    """Parse an 'HH:MM' (or 'H:MM') string into a time. Raises ValueError."""
    hours, minutes = value.strip().split(":", 1)
    return time(int(hours), int(minutes[:2]))


def combine_local(day: date, hhmm: str) -> datetime:
    """Build an aware instant for a service-local date and 'HH:MM' slot."""
    return datetime.combine(day, parse_hhmm(hhmm), tzinfo=service_timezone())


def format_clock(instant: datetime) -> str:
    """Render an instant as a 12-hour clock time, e.g. '9:05 AM'."""
    local = to_local(instant)
    hour = local.hour % 12 or 12
    suffix = "PM" if local.hour >= 12 else "AM"
    return f"{hour}:{local.minute:02d} {suffix}"
