"""
Next-Appointment Calculator
Works out the follow-up pickup a client receives when they check in, and
validates admin / client reschedule requests against the same rules.

Policy: clients may come back every 21 days, on a weekday the food bank is
open. Clients with an established Saturday cadence may also be booked on a
Saturday. The time is the catalog slot closest to the client's usual time.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, FrozenSet, List, Optional, Sequence
import logging
import random
import time as _time

from foodbank.core.clock import combine_local, parse_hhmm, to_local, today_local
from foodbank.core.config import settings
from foodbank.core.errors import CheckInFailure, FailureKind
from foodbank.models.appointment import AppointmentRecord
from foodbank.services.holidays import holiday_name, is_closed

logger = logging.getLogger(__name__)

SATURDAY = 5
WEEKDAYS: FrozenSet[int] = frozenset(range(0, 5))  # Monday..Friday
WEEKDAYS_AND_SATURDAY: FrozenSet[int] = frozenset(range(0, 6))


@dataclass(frozen=True)
class FollowUpSlot:
    """Resolved follow-up appointment"""
    date: date
    time: str
    instant: datetime
    ticket_number: str


def generate_ticket_number(is_taken: Optional[Callable[[str], bool]] = None, attempts: int = 100) -> str:
    """
    Ticket number printed for the client: 'T' + 6 clock digits + 3 random digits.

    Args:
        is_taken: Predicate telling whether a ticket is already held; candidates
            it accepts are drawn again
        attempts: Bound on redraws

    Raises:
        RuntimeError: If no unused ticket was drawn within ``attempts``
    """
    for _ in range(attempts):
        millis = str(int(_time.time() * 1000))
        ticket = f"T{millis[-6:]}{random.randint(0, 999):03d}"
        if is_taken is None or not is_taken(ticket):
            return ticket
    raise RuntimeError(f"No unused ticket number after {attempts} attempts")


def minutes_of_day(hhmm: str) -> int:
    t = parse_hhmm(hhmm)
    return t.hour * 60 + t.minute


class NextAppointmentCalculator:
    """
    Computes follow-up dates and times.

    Args:
        min_days: Minimum spacing between pickups
        slot_catalog: Allowed appointment times ('HH:MM'), in catalog order
        max_advances: Safety bound on day-by-day advancement past closures
        default_time: Slot used when the origin has no usable time
    """

    def __init__(
        self,
        min_days: int = 21,
        slot_catalog: Optional[Sequence[str]] = None,
        max_advances: int = 10,
        default_time: str = "10:00",
    ):
        self.min_days = min_days
        self.slot_catalog: List[str] = list(slot_catalog or settings.slot_catalog)
        self.max_advances = max_advances
        self.default_time = default_time

    @classmethod
    def from_settings(cls) -> "NextAppointmentCalculator":
        return cls(
            min_days=settings.next_appointment_min_days,
            slot_catalog=settings.slot_catalog,
            max_advances=settings.next_appointment_max_advances,
            default_time=settings.default_slot_time,
        )

    # ------------------------------------------------------------------
    # Date rules
    # ------------------------------------------------------------------

    def allowed_weekdays(self, origin: Optional[AppointmentRecord] = None) -> FrozenSet[int]:
        """Mon-Fri, extended to Saturday when the origin appointment was on a Saturday."""
        if origin is not None and to_local(origin.scheduled_instant).weekday() == SATURDAY:
            return WEEKDAYS_AND_SATURDAY
        return WEEKDAYS

    def is_open_day(self, day: date, allowed: FrozenSet[int] = WEEKDAYS) -> bool:
        return day.weekday() in allowed and not is_closed(day)

    def next_open_date(self, start: date, allowed: FrozenSet[int] = WEEKDAYS) -> date:
        """
        First open date on or after ``start``.

        Advances at most ``max_advances`` days past closures; beyond that the
        holiday calendar is ignored and only the weekday rule applies.
        """
        candidate = start
        advances = 0
        while not self.is_open_day(candidate, allowed) and advances < self.max_advances:
            candidate += timedelta(days=1)
            advances += 1

        if not self.is_open_day(candidate, allowed):
            logger.warning(
                f"[Scheduler] No open date within {self.max_advances} days of {start.isoformat()}; "
                f"falling back to next allowed weekday"
            )
            while candidate.weekday() not in allowed:
                candidate += timedelta(days=1)
        return candidate

    def next_date(self, origin: Optional[AppointmentRecord], today: date) -> date:
        return self.next_open_date(today + timedelta(days=self.min_days), self.allowed_weekdays(origin))

    def is_valid_weekday(self, day: date, origin: Optional[AppointmentRecord] = None) -> bool:
        return day.weekday() in self.allowed_weekdays(origin)

    def is_valid_appointment_date(self, day: date, origin: Optional[AppointmentRecord] = None) -> bool:
        """Allowed weekday and not a statutory holiday."""
        return self.is_open_day(day, self.allowed_weekdays(origin))

    def next_valid_appointment_date(self, start: date, origin: Optional[AppointmentRecord] = None) -> date:
        return self.next_open_date(start, self.allowed_weekdays(origin))

    # ------------------------------------------------------------------
    # Time rules
    # ------------------------------------------------------------------

    def closest_slot(self, hhmm: Optional[str]) -> str:
        """Catalog slot nearest to ``hhmm``; earlier slot wins ties."""
        if not hhmm:
            return self.default_time
        try:
            target = minutes_of_day(hhmm)
        except ValueError:
            return self.default_time
        return min(self.slot_catalog, key=lambda slot: abs(minutes_of_day(slot) - target))

    def is_valid_slot(self, hhmm: str) -> bool:
        return hhmm in self.slot_catalog

    # ------------------------------------------------------------------
    # Follow-up generation
    # ------------------------------------------------------------------

    def calculate(
        self,
        origin: AppointmentRecord,
        now: datetime,
        ticket_taken: Optional[Callable[[str], bool]] = None,
    ) -> FollowUpSlot:
        """
        Resolve the follow-up slot for a client checking in on ``origin``.

        Args:
            origin: The record the client just checked in on
            now: Current instant (its service-local date is "today")
            ticket_taken: Predicate for tickets already held by other records

        Returns:
            Follow-up date, time, instant and a fresh ticket number
        """
        next_day = self.next_date(origin, today_local(now))
        next_time = self.closest_slot(origin.scheduled_time)
        slot = FollowUpSlot(
            date=next_day,
            time=next_time,
            instant=combine_local(next_day, next_time),
            ticket_number=generate_ticket_number(ticket_taken),
        )
        logger.info(
            f"[Scheduler] Follow-up for client {origin.client_id}: "
            f"{slot.date.isoformat()} {slot.time} (ticket {slot.ticket_number})"
        )
        return slot

    def validate_reschedule(
        self,
        origin: AppointmentRecord,
        new_date: date,
        new_time: str,
    ) -> Optional[CheckInFailure]:
        """
        Check a requested follow-up against spacing, weekday, holiday and slot rules.

        Returns:
            None when the request is acceptable, otherwise an InvalidDate failure
        """
        earliest = origin.scheduled_date + timedelta(days=self.min_days)
        details = {"requested_date": new_date.isoformat(), "requested_time": new_time}

        if new_date < earliest:
            return CheckInFailure(
                FailureKind.INVALID_DATE,
                f"Next appointment must be at least {self.min_days} days after "
                f"{origin.scheduled_date.isoformat()} (on or after {earliest.isoformat()}).",
                {**details, "earliest_date": earliest.isoformat()},
            )

        if not self.is_valid_weekday(new_date, origin):
            days = "Monday to Saturday" if SATURDAY in self.allowed_weekdays(origin) else "Monday to Friday"
            return CheckInFailure(
                FailureKind.INVALID_DATE,
                f"{new_date.strftime('%A')} is not an appointment day; choose {days}.",
                details,
            )

        closed_for = holiday_name(new_date)
        if closed_for:
            return CheckInFailure(
                FailureKind.INVALID_DATE,
                f"The food bank is closed on {new_date.isoformat()} ({closed_for}).",
                {**details, "holiday": closed_for},
            )

        if not self.is_valid_slot(new_time):
            return CheckInFailure(
                FailureKind.INVALID_DATE,
                f"{new_time} is not an available appointment time.",
                {**details, "valid_times": list(self.slot_catalog)},
            )
        return None
