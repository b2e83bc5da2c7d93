from foodbank.schemas.appointment import (
    AppointmentResponse,
    AppointmentListResponse,
    AppointmentStatusUpdate,
    ManualAppointmentCreate,
    RescheduleRequest,
    RescheduleResponse,
    SlotCatalogResponse,
    CalendarDayResponse,
)
from foodbank.schemas.checkin import (
    CheckInRequest,
    CheckInResponse,
    CheckInCompleteRequest,
    CheckInCompleteResponse,
    CheckInStatsResponse,
    FollowUpInfo,
    HouseholdInfo,
)
from foodbank.schemas.client import (
    ClientSearchRequest,
    ClientSearchResponse,
    ClientUpdate,
    ClientUpdateResponse,
)
from foodbank.schemas.help_request import (
    HelpRequestCreate,
    HelpRequestStatusUpdate,
    HelpRequestResponse,
    HelpRequestListResponse,
)
from foodbank.schemas.status import (
    CSVImportResponse,
    DailyStatusResponse,
    DataVersionResponse,
)

__all__ = [
    "AppointmentResponse",
    "AppointmentListResponse",
    "AppointmentStatusUpdate",
    "ManualAppointmentCreate",
    "RescheduleRequest",
    "RescheduleResponse",
    "SlotCatalogResponse",
    "CalendarDayResponse",
    "CheckInRequest",
    "CheckInResponse",
    "CheckInCompleteRequest",
    "CheckInCompleteResponse",
    "CheckInStatsResponse",
    "FollowUpInfo",
    "HouseholdInfo",
    "ClientSearchRequest",
    "ClientSearchResponse",
    "ClientUpdate",
    "ClientUpdateResponse",
    "HelpRequestCreate",
    "HelpRequestStatusUpdate",
    "HelpRequestResponse",
    "HelpRequestListResponse",
    "CSVImportResponse",
    "DailyStatusResponse",
    "DataVersionResponse",
]
