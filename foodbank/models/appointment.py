"""
Appointment Model
In-memory appointment / check-in record held by the record store
"""
from datetime import date, datetime
from typing import List, Optional
import enum

from pydantic import BaseModel, Field, computed_field

from foodbank.core.clock import to_local


class AppointmentStatus(str, enum.Enum):
    """Enum for appointment status"""
    PENDING = "Pending"
    COLLECTED = "Collected"
    SHIPPED = "Shipped"
    NOT_COLLECTED = "Not Collected"
    RESCHEDULED = "Rescheduled"
    CANCELLED = "Cancelled"


# Only these can be matched at the counter; Not Collected is a missed
# window that may still be rescued.
MATCHABLE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.NOT_COLLECTED})
CHECKED_IN_STATUSES = frozenset({AppointmentStatus.COLLECTED, AppointmentStatus.SHIPPED})


class RecordSource(str, enum.Enum):
    CSV = "csv"
    MANUAL = "manual"
    AUTO_GENERATED = "auto-generated"


class AppointmentRecord(BaseModel):
    """
    One appointment / check-in entry.

    ``scheduled_instant`` is the only source of truth for when the
    appointment happens; ``scheduled_date`` and ``scheduled_time`` are
    derived from it in the service timezone.
    """
    id: str = ""
    client_id: str

    # Scheduling
    scheduled_instant: datetime
    pick_up_date_raw: str = ""
    status: AppointmentStatus = AppointmentStatus.PENDING

    # Provenance
    source: RecordSource = RecordSource.CSV
    generated_from_id: Optional[str] = None
    is_auto_generated: bool = False
    import_id: Optional[str] = None

    # Household / contact snapshot
    first_name: str = ""
    last_name: str = ""
    phone_number: str = ""
    phone_digits: str = ""
    email: str = ""
    adults: int = 0
    seniors: int = 0
    children: int = 0
    children_ages: str = ""
    household_size: int = 1
    dietary_considerations: str = "None"
    items_provided: str = ""
    location: str = ""
    program: str = ""
    notes: str = ""

    # Special requests captured when the check-in is completed
    dietary_restrictions: List[str] = Field(default_factory=list)
    allergies: str = ""
    unwanted_foods: str = ""
    diaper_size: str = ""
    has_mobility_issues: bool = False
    additional_info: str = ""

    # Follow-up slot, filled by a successful check-in or a reschedule
    next_date: Optional[date] = None
    next_time: Optional[str] = None
    next_instant: Optional[datetime] = None
    ticket_number: Optional[str] = None

    # Timestamps
    created_at: datetime
    updated_at: datetime
    check_in_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @computed_field
    @property
    def scheduled_date(self) -> date:
        return to_local(self.scheduled_instant).date()

    @computed_field
    @property
    def scheduled_time(self) -> str:
        return to_local(self.scheduled_instant).strftime("%H:%M")

    @computed_field
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def dedup_key(self):
        return (self.client_id, self.scheduled_date)

    @property
    def has_follow_up(self) -> bool:
        return self.next_instant is not None

    def __repr__(self):
        return (
            f"<AppointmentRecord(id={self.id!r}, client_id={self.client_id!r}, "
            f"scheduled={self.scheduled_instant.isoformat()}, status='{self.status.value}')>"
        )
