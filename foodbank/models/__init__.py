from foodbank.models.appointment import (
    AppointmentRecord,
    AppointmentStatus,
    RecordSource,
    MATCHABLE_STATUSES,
    CHECKED_IN_STATUSES,
)
from foodbank.models.help_request import HelpRequest, HelpRequestStatus

__all__ = [
    "AppointmentRecord",
    "AppointmentStatus",
    "RecordSource",
    "MATCHABLE_STATUSES",
    "CHECKED_IN_STATUSES",
    "HelpRequest",
    "HelpRequestStatus",
]
