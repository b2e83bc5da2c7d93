"""Time helpers shared by the test modules."""
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

TZ = ZoneInfo("America/Vancouver")


def local(year, month, day, hour=0, minute=0) -> datetime:
    """Aware datetime in the service timezone."""
    return datetime(year, month, day, hour, minute, tzinfo=TZ)


class FrozenClock:
    """Callable clock that only moves when a test moves it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)
