from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Optional
from datetime import date, datetime
import re

from foodbank.models.appointment import AppointmentStatus, RecordSource

HHMM = re.compile(r"^\d{2}:\d{2}$")


class AppointmentResponse(BaseModel):
    """Schema for an appointment record"""
    id: str
    client_id: str
    full_name: str
    first_name: str
    last_name: str
    phone_number: str
    email: str
    status: AppointmentStatus
    source: RecordSource
    scheduled_instant: datetime
    scheduled_date: date
    scheduled_time: str
    household_size: int
    adults: int
    seniors: int
    children: int
    children_ages: str
    dietary_considerations: str
    items_provided: str
    location: str
    program: str
    notes: str
    dietary_restrictions: List[str] = []
    allergies: str = ""
    unwanted_foods: str = ""
    diaper_size: str = ""
    has_mobility_issues: bool = False
    additional_info: str = ""
    is_auto_generated: bool
    generated_from_id: Optional[str] = None
    next_date: Optional[date] = None
    next_time: Optional[str] = None
    next_instant: Optional[datetime] = None
    ticket_number: Optional[str] = None
    check_in_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AppointmentListResponse(BaseModel):
    """Schema for a list of appointments with the store's data version"""
    total: int
    data_version: int
    appointments: List[AppointmentResponse]


class AppointmentStatusUpdate(BaseModel):
    """Schema for an admin status edit"""
    status: AppointmentStatus = Field(..., description="New status for the appointment")
    notes: Optional[str] = Field(None, max_length=1000, description="Optional staff notes")


class ManualAppointmentCreate(BaseModel):
    """Schema for an admin-entered appointment"""
    client_id: str = Field(..., min_length=1, max_length=100, description="External client number")
    client_name: str = Field(..., min_length=1, max_length=255, description="Full name of the client")
    phone_number: str = Field(..., min_length=7, max_length=30, description="Client phone number")
    scheduled_date: Optional[date] = Field(None, description="Pickup date (YYYY-MM-DD); defaults to now")
    scheduled_time: Optional[str] = Field(None, description="Pickup time (HH:MM)")
    status: AppointmentStatus = Field(AppointmentStatus.PENDING, description="Initial status")
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("scheduled_time")
    @classmethod
    def check_time_format(cls, v):
        if v is not None and not HHMM.match(v):
            raise ValueError("scheduled_time must be HH:MM")
        return v


class RescheduleRequest(BaseModel):
    """Schema for moving a client's next appointment"""
    new_date: date = Field(..., description="Requested date (YYYY-MM-DD)")
    new_time: Optional[str] = Field(None, description="Requested time slot (HH:MM); defaults to 10:00")

    @field_validator("new_time")
    @classmethod
    def check_time_format(cls, v):
        if v is not None and not HHMM.match(v):
            raise ValueError("new_time must be HH:MM")
        return v


class RescheduleResponse(BaseModel):
    message: str
    appointment: AppointmentResponse
    follow_up: Optional[AppointmentResponse] = None


class SlotCatalogResponse(BaseModel):
    slots: List[str]
    default_time: str
    min_days: int


class CalendarDayResponse(BaseModel):
    """Whether the food bank takes appointments on a date"""
    day: date
    weekday: str
    is_open: bool
    holiday: Optional[str] = None
    next_valid_date: date
