"""
Check-in Orchestrator
Runs the counter transaction: match -> validate -> commit check-in ->
schedule follow-up, plus the admin operations that mutate records.

The check-in commit and the follow-up are two phases. The follow-up is
best-effort: if it fails the check-in still succeeds and the origin record
keeps empty next-* fields.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Tuple
import logging

from foodbank.core.clock import combine_local, now_local, today_local
from foodbank.core.config import settings
from foodbank.core.errors import CheckInFailure
from foodbank.core.normalize import phone_digits, split_full_name
from foodbank.models.appointment import (
    MATCHABLE_STATUSES,
    AppointmentRecord,
    AppointmentStatus,
    RecordSource,
)
from foodbank.services.matcher import EligibilityMatcher, FallbackPolicy
from foodbank.services.record_store import RecordStore
from foodbank.services.scheduler import NextAppointmentCalculator, generate_ticket_number
from foodbank.services.time_window import validate_arrival

logger = logging.getLogger(__name__)

FOLLOW_UP_UNAVAILABLE = "No follow-up appointment scheduled yet. Please see a volunteer to book one."


@dataclass
class CheckInResult:
    record: Optional[AppointmentRecord] = None
    follow_up: Optional[AppointmentRecord] = None
    failure: Optional[CheckInFailure] = None
    warning: Optional[str] = None
    data_version: int = 0

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class RescheduleResult:
    record: Optional[AppointmentRecord] = None
    follow_up: Optional[AppointmentRecord] = None
    failure: Optional[CheckInFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def build_follow_up(origin: AppointmentRecord, instant: datetime, ticket_number: str, now: datetime) -> AppointmentRecord:
    """New pending record for the client's next pickup, carrying their household snapshot."""
    return AppointmentRecord(
        client_id=origin.client_id,
        scheduled_instant=instant,
        status=AppointmentStatus.PENDING,
        source=RecordSource.AUTO_GENERATED,
        generated_from_id=origin.id,
        is_auto_generated=True,
        first_name=origin.first_name,
        last_name=origin.last_name,
        phone_number=origin.phone_number,
        phone_digits=origin.phone_digits,
        email=origin.email,
        adults=origin.adults or 1,
        seniors=origin.seniors,
        children=origin.children,
        children_ages=origin.children_ages,
        household_size=origin.household_size,
        dietary_considerations=origin.dietary_considerations or "None",
        items_provided=origin.items_provided or "Standard",
        location=origin.location,
        program=origin.program,
        ticket_number=ticket_number,
        created_at=now,
        updated_at=now,
    )


class CheckInService:
    """
    Composes the matcher, validator, store and calculator.

    Args:
        store: Record store
        matcher: Eligibility matcher bound to the same store
        calculator: Next-appointment calculator
        tolerance: Check-in window on either side of the scheduled time
        clock: Callable returning the current aware datetime
    """

    def __init__(
        self,
        store: RecordStore,
        matcher: EligibilityMatcher,
        calculator: NextAppointmentCalculator,
        tolerance: timedelta = timedelta(minutes=30),
        clock: Callable[[], datetime] = now_local,
    ):
        self.store = store
        self.matcher = matcher
        self.calculator = calculator
        self.tolerance = tolerance
        self.clock = clock

    @classmethod
    def from_settings(cls, store: RecordStore, clock: Callable[[], datetime] = now_local) -> "CheckInService":
        matcher = EligibilityMatcher(
            store,
            window=timedelta(minutes=settings.match_window_minutes),
            fallback=FallbackPolicy(settings.match_fallback_policy),
            help_phone=settings.help_phone,
        )
        return cls(
            store,
            matcher,
            NextAppointmentCalculator.from_settings(),
            tolerance=timedelta(minutes=settings.checkin_tolerance_minutes),
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Counter check-in
    # ------------------------------------------------------------------

    def check_in(self, phone_raw: str, last_name: str, now: Optional[datetime] = None) -> CheckInResult:
        """
        Check a client in by phone number and last name.

        Args:
            phone_raw: Phone number as typed
            last_name: Last name as typed
            now: Arrival instant (defaults to the service clock)

        Returns:
            CheckInResult with the updated record and follow-up, or a failure
        """
        now = now or self.clock()
        self.store.purge_expired(now)

        with self.store.transaction():
            match = self.matcher.match(phone_raw, last_name, now)
            if not match.ok or match.record.scheduled_date != today_local(now):
                # A repeat arrival would otherwise land on the new follow-up
                earlier = self.matcher.checked_in_today(phone_raw, last_name, now)
                if earlier is not None:
                    failure = validate_arrival(earlier, now, self.tolerance)
                    logger.info(f"[CheckIn] Client {earlier.client_id} already checked in on record {earlier.id}")
                    return CheckInResult(record=earlier, failure=failure, data_version=self.store.data_version)
            if not match.ok:
                return CheckInResult(failure=match.failure, data_version=self.store.data_version)

            failure = validate_arrival(match.record, now, self.tolerance)
            if failure is not None:
                logger.info(
                    f"[CheckIn] Rejected {failure.kind.value} for client {match.record.client_id} "
                    f"(record {match.record.id}): {failure.message}"
                )
                return CheckInResult(record=match.record, failure=failure, data_version=self.store.data_version)

            checked_in = self.store.update(
                match.record.id,
                status=AppointmentStatus.COLLECTED,
                check_in_at=now,
                phone_number=phone_raw.strip() or match.record.phone_number,
            )
            logger.info(f"[CheckIn] Client {checked_in.client_id} checked in on record {checked_in.id}")

            checked_in, follow_up, warning = self._schedule_follow_up(checked_in, now)
            return CheckInResult(
                record=checked_in,
                follow_up=follow_up,
                warning=warning,
                data_version=self.store.data_version,
            )

    def _schedule_follow_up(
        self, origin: AppointmentRecord, now: datetime
    ) -> Tuple[AppointmentRecord, Optional[AppointmentRecord], Optional[str]]:
        follow_up_id = None
        try:
            slot = self.calculator.calculate(origin, now, ticket_taken=self.store.ticket_in_use)
            follow_up = self.store.insert(build_follow_up(origin, slot.instant, slot.ticket_number, now))
            follow_up_id = follow_up.id
            origin = self.store.update(
                origin.id,
                next_date=slot.date,
                next_time=slot.time,
                next_instant=slot.instant,
                ticket_number=slot.ticket_number,
            )
            return origin, follow_up, None
        except Exception:
            logger.error(f"[CheckIn] Failed to generate next appointment for client {origin.client_id}", exc_info=True)
            if follow_up_id is not None:
                self.store.delete(follow_up_id)
            return self.store.get(origin.id) or origin, None, FOLLOW_UP_UNAVAILABLE

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def complete(
        self,
        record_id: str,
        dietary_restrictions: Optional[List[str]] = None,
        allergies: str = "",
        unwanted_foods: str = "",
        diaper_size: str = "",
        has_mobility_issues: bool = False,
        additional_info: str = "",
        email: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AppointmentRecord:
        """Record the special requests gathered after check-in and mark the pickup complete."""
        now = now or self.clock()
        with self.store.transaction():
            record = self.store.require(record_id)
            changes = dict(
                status=AppointmentStatus.COLLECTED,
                check_in_at=record.check_in_at or now,
                completed_at=now,
                dietary_restrictions=list(dietary_restrictions or []),
                allergies=allergies,
                unwanted_foods=unwanted_foods,
                diaper_size=diaper_size,
                has_mobility_issues=has_mobility_issues,
                additional_info=additional_info,
            )
            if email is not None:
                changes["email"] = email
            record = self.store.update(record_id, **changes)
        logger.info(f"[CheckIn] Completed record {record.id} for client {record.client_id}")
        return record

    def create_manual(
        self,
        client_id: str,
        full_name: str,
        phone_number: str,
        scheduled_instant: Optional[datetime] = None,
        status: AppointmentStatus = AppointmentStatus.PENDING,
        notes: str = "",
        now: Optional[datetime] = None,
    ) -> AppointmentRecord:
        """Admin-entered appointment for a client missing from the day's sheet."""
        now = now or self.clock()
        first_name, last_name = split_full_name(full_name)
        record = AppointmentRecord(
            client_id=client_id,
            scheduled_instant=scheduled_instant or now,
            status=status,
            source=RecordSource.MANUAL,
            first_name=first_name,
            last_name=last_name,
            phone_number=phone_number,
            phone_digits=phone_digits(phone_number),
            location=settings.default_location,
            program=settings.default_program,
            notes=notes,
            check_in_at=now if status == AppointmentStatus.COLLECTED else None,
            completed_at=now if status == AppointmentStatus.COLLECTED else None,
            created_at=now,
            updated_at=now,
        )
        record = self.store.insert(record)
        logger.info(f"[CheckIn] Manual record {record.id} created for client {client_id}")
        return record

    def update_status(
        self,
        record_id: str,
        status: AppointmentStatus,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AppointmentRecord:
        now = now or self.clock()
        changes = {"status": status}
        if notes:
            changes["notes"] = notes
        if status == AppointmentStatus.COLLECTED:
            changes["completed_at"] = now
        with self.store.transaction():
            self.store.require(record_id)
            record = self.store.update(record_id, **changes)
        logger.info(f"[CheckIn] Record {record_id} status -> {status.value}")
        return record

    def reschedule(
        self,
        record_id: str,
        new_date: date,
        new_time: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RescheduleResult:
        """
        Move a client's next appointment to a requested date and time.

        The request must satisfy the same spacing, weekday and holiday rules
        as an automatically generated follow-up. A record that has not been
        checked in yet is marked Rescheduled, since the client will come on
        the new date instead.
        """
        now = now or self.clock()
        new_time = new_time or self.calculator.default_time
        with self.store.transaction():
            origin = self.store.require(record_id)
            failure = self.calculator.validate_reschedule(origin, new_date, new_time)
            if failure is not None:
                logger.info(f"[CheckIn] Reschedule of {record_id} rejected: {failure.message}")
                return RescheduleResult(record=origin, failure=failure)

            instant = combine_local(new_date, new_time)
            ticket_number = origin.ticket_number or generate_ticket_number(self.store.ticket_in_use)
            changes = dict(
                next_date=new_date,
                next_time=new_time,
                next_instant=instant,
                ticket_number=ticket_number,
            )
            if origin.status in MATCHABLE_STATUSES and origin.check_in_at is None:
                changes["status"] = AppointmentStatus.RESCHEDULED
            origin = self.store.update(record_id, **changes)

            pending = self.store.find(
                lambda r: r.generated_from_id == origin.id and r.status in MATCHABLE_STATUSES
            )
            if pending:
                follow_up = self.store.update(pending[0].id, scheduled_instant=instant, ticket_number=ticket_number)
            else:
                follow_up = self.store.insert(build_follow_up(origin, instant, ticket_number, now))

        logger.info(f"[CheckIn] Record {record_id} rescheduled to {new_date.isoformat()} {new_time}")
        return RescheduleResult(record=origin, follow_up=follow_up)
