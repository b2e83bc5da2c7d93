"""
Eligibility Matcher
Resolves arrival credentials (phone + last name) to exactly one record.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional
import enum
import logging

from foodbank.core.clock import today_local
from foodbank.core.errors import CheckInFailure, FailureKind
from foodbank.core.normalize import normalize_name, phone_digits
from foodbank.models.appointment import CHECKED_IN_STATUSES, MATCHABLE_STATUSES, AppointmentRecord
from foodbank.services.record_store import RecordStore

logger = logging.getLogger(__name__)


class FallbackPolicy(str, enum.Enum):
    """What to do when several records match but none is scheduled today"""
    EARLIEST = "earliest"  # route the client to the earliest-scheduled match
    STRICT = "strict"  # treat it as no match


@dataclass(frozen=True)
class MatchResult:
    record: Optional[AppointmentRecord] = None
    failure: Optional[CheckInFailure] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


class EligibilityMatcher:
    """
    Picks the record a client is checking in for.

    Args:
        store: Record store to search
        window: Distance from "now" within which today's records are preferred
        fallback: Policy when several records match and none is today
        help_phone: Number quoted to clients when nothing matches
    """

    def __init__(
        self,
        store: RecordStore,
        window: timedelta = timedelta(minutes=30),
        fallback: FallbackPolicy = FallbackPolicy.EARLIEST,
        help_phone: str = "",
    ):
        self.store = store
        self.window = window
        self.fallback = FallbackPolicy(fallback)
        self.help_phone = help_phone

    def candidates(self, phone: str, last_name: str) -> List[AppointmentRecord]:
        """All matchable records for the given normalized credentials."""
        return self.store.find(
            lambda r: r.status in MATCHABLE_STATUSES
            and phone_digits(r.phone_digits or r.phone_number) == phone
            and normalize_name(r.last_name) == last_name
        )

    def match(self, phone_raw: str, last_name_raw: str, now: datetime) -> MatchResult:
        """
        Select exactly one eligible record.

        Args:
            phone_raw: Phone number as typed by the client
            last_name_raw: Last name as typed by the client
            now: Current instant

        Returns:
            MatchResult carrying the record, or a NotFound failure
        """
        phone = phone_digits(phone_raw)
        last_name = normalize_name(last_name_raw)
        matches = self.candidates(phone, last_name) if phone and last_name else []

        if not matches:
            logger.info(f"[Match] No eligible record for phone={phone} last_name={last_name!r}")
            return MatchResult(failure=self._not_found())
        if len(matches) == 1:
            return MatchResult(record=matches[0])

        selected = self.disambiguate(matches, now)
        if selected is None:
            logger.info(
                f"[Match] {len(matches)} records for phone={phone} but none today; "
                f"fallback policy '{self.fallback.value}' rejects"
            )
            return MatchResult(failure=self._not_found())
        logger.info(f"[Match] {len(matches)} candidate records, selected {selected.id}")
        return MatchResult(record=selected)

    def disambiguate(self, matches: List[AppointmentRecord], now: datetime) -> Optional[AppointmentRecord]:
        def earliest(records):
            return min(records, key=lambda r: r.scheduled_instant)

        today = today_local(now)
        todays = [r for r in matches if r.scheduled_date == today]
        if not todays:
            if self.fallback == FallbackPolicy.STRICT:
                return None
            return earliest(matches)

        in_window = [r for r in todays if abs(r.scheduled_instant - now) <= self.window]
        if in_window:
            return min(in_window, key=lambda r: (abs(r.scheduled_instant - now), r.scheduled_instant))

        # Nobody close to now: route to today's earliest and let the
        # time-window validator say why it is rejected.
        return earliest(todays)

    def checked_in_today(self, phone_raw: str, last_name_raw: str, now: datetime) -> Optional[AppointmentRecord]:
        """Today's record these credentials already checked in on, if any."""
        phone = phone_digits(phone_raw)
        last_name = normalize_name(last_name_raw)
        if not phone or not last_name:
            return None
        today = today_local(now)
        done = self.store.find(
            lambda r: r.status in CHECKED_IN_STATUSES
            and r.scheduled_date == today
            and phone_digits(r.phone_digits or r.phone_number) == phone
            and normalize_name(r.last_name) == last_name
        )
        if not done:
            return None
        return max(done, key=lambda r: (r.check_in_at or r.updated_at, r.id))

    def _not_found(self) -> CheckInFailure:
        message = "Appointment not found."
        if self.help_phone:
            message += f" Please call {self.help_phone} or wait for a volunteer."
        return CheckInFailure(FailureKind.NOT_FOUND, message)
