"""
Holiday Calendar
Decides whether the food bank is closed on a given date.

BC statutory holidays are computed from rules rather than looked up, so the
calendar works for any year:

- fixed dates: New Year's Day, Canada Day, Remembrance Day, Christmas,
  Boxing Day
- Nth weekday of a month: Family Day, BC Day, Labour Day, Thanksgiving
- Victoria Day: the Monday preceding May 25
- Good Friday: two days before Gregorian Easter Sunday
"""
from datetime import date, timedelta
from functools import lru_cache
from typing import Dict, Optional

MONDAY = 0

FIXED_HOLIDAYS = {
    (1, 1): "New Year's Day",
    (7, 1): "Canada Day",
    (11, 11): "Remembrance Day",
    (12, 25): "Christmas Day",
    (12, 26): "Boxing Day",
}

# (month, weekday, n, name)
NTH_WEEKDAY_HOLIDAYS = [
    (2, MONDAY, 3, "Family Day"),
    (8, MONDAY, 1, "BC Day"),
    (9, MONDAY, 1, "Labour Day"),
    (10, MONDAY, 2, "Thanksgiving"),
]


def easter_sunday(year: int) -> date:
    """
    Gregorian Easter Sunday (anonymous / Meeus-Jones-Butcher algorithm).

    Args:
        year: Calendar year

    Returns:
        Date of Easter Sunday in that year
    """
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    L = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * L) // 451
    month, day = divmod(h + L - 7 * m + 114, 31)
    return date(year, month, day + 1)


def good_friday(year: int) -> date:
    return easter_sunday(year) - timedelta(days=2)


def nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    """The n-th given weekday (Monday=0) of a month, e.g. 2nd Monday of October."""
    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    return first + timedelta(days=offset + 7 * (n - 1))


def weekday_before(day: date, weekday: int) -> date:
    """The last given weekday strictly before ``day``."""
    offset = (day.weekday() - weekday) % 7 or 7
    return day - timedelta(days=offset)


@lru_cache(maxsize=64)
def holidays_for_year(year: int) -> Dict[date, str]:
    """All closure dates for a year, mapped to the holiday name."""
    closures = {date(year, month, day): name for (month, day), name in FIXED_HOLIDAYS.items()}
    for month, weekday, n, name in NTH_WEEKDAY_HOLIDAYS:
        closures[nth_weekday(year, month, weekday, n)] = name
    closures[weekday_before(date(year, 5, 25), MONDAY)] = "Victoria Day"
    closures[good_friday(year)] = "Good Friday"
    return closures


def holiday_name(day: date) -> Optional[str]:
    return holidays_for_year(day.year).get(day)


def is_closed(day: date) -> bool:
    """True when the food bank is closed for a statutory holiday on ``day``."""
    return day in holidays_for_year(day.year)
