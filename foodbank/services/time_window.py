"""Time-Window Validator: accepts or rejects an arrival against the scheduled time."""
from datetime import datetime, timedelta
from typing import Optional

from foodbank.core.clock import format_clock
from foodbank.core.errors import CheckInFailure, FailureKind
from foodbank.models.appointment import CHECKED_IN_STATUSES, AppointmentRecord


def validate_arrival(
    record: AppointmentRecord,
    now: datetime,
    tolerance: timedelta = timedelta(minutes=30),
) -> Optional[CheckInFailure]:
    """
    Check a matched record against the arrival time.

    Args:
        record: The matched record
        now: Arrival instant
        tolerance: Allowed distance on either side of the scheduled instant

    Returns:
        None when the check-in may proceed, otherwise the rejection
    """
    scheduled = record.scheduled_instant
    clock_time = format_clock(scheduled)
    tolerance_minutes = int(tolerance.total_seconds() // 60)
    details = {"scheduled_time": clock_time, "scheduled_instant": scheduled.isoformat()}

    if record.status in CHECKED_IN_STATUSES:
        return CheckInFailure(
            FailureKind.ALREADY_CHECKED_IN,
            "You have already checked in for this appointment. Please wait for a volunteer to assist you.",
            {**details, "status": record.status.value},
        )

    if now < scheduled - tolerance:
        minutes_early = int((scheduled - now).total_seconds() // 60)
        return CheckInFailure(
            FailureKind.TOO_EARLY,
            f"Your appointment is at {clock_time}. Check-in opens {tolerance_minutes} minutes before.",
            {**details, "minutes_early": minutes_early},
        )

    if now > scheduled + tolerance:
        minutes_late = int((now - scheduled).total_seconds() // 60)
        return CheckInFailure(
            FailureKind.TOO_LATE,
            f"Your appointment was at {clock_time} and you are {minutes_late} minutes late. "
            f"Check-in closes {tolerance_minutes} minutes after the appointment time.",
            {**details, "minutes_late": minutes_late},
        )

    return None
