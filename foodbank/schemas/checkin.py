from pydantic import BaseModel, Field, EmailStr
from typing import List, Optional
from datetime import date, datetime

from foodbank.schemas.appointment import AppointmentResponse


class CheckInRequest(BaseModel):
    """Schema for a client arriving at the counter"""
    phone_number: str = Field(..., min_length=1, max_length=30, description="Phone number as typed by the client")
    last_name: str = Field(..., min_length=1, max_length=255, description="Client last name")


class FollowUpInfo(BaseModel):
    """Next appointment handed to the client after check-in"""
    date: date
    time: str
    instant: datetime
    ticket_number: str
    record_id: Optional[str] = None


class HouseholdInfo(BaseModel):
    first_name: str
    last_name: str
    adults: int
    seniors: int
    children: int
    children_ages: str
    household_size: int
    dietary_considerations: str
    items_provided: str
    email: str


class CheckInResponse(BaseModel):
    """Schema for a successful check-in"""
    message: str
    check_in_id: str
    client_id: str
    client_name: str
    phone_number: str
    appointment_time: datetime
    scheduled_time: str
    status: str
    location: str
    household: HouseholdInfo
    next_appointment: Optional[FollowUpInfo] = None
    warning: Optional[str] = None
    data_version: int


class CheckInCompleteRequest(BaseModel):
    """Schema for special requests gathered after check-in"""
    check_in_id: str = Field(..., description="Record id returned by the check-in")
    dietary_restrictions: List[str] = Field(default_factory=list)
    allergies: str = Field("", max_length=1000)
    unwanted_foods: str = Field("", max_length=1000)
    diaper_size: str = Field("", max_length=50)
    has_mobility_issues: bool = False
    additional_info: str = Field("", max_length=2000)
    email: Optional[EmailStr] = None


class CheckInCompleteResponse(BaseModel):
    message: str
    appointment: AppointmentResponse


class CheckInStatsResponse(BaseModel):
    """Schema for check-in statistics"""
    total: int
    pending: int
    checked_in: int
    completed: int
    not_collected: int
    completion_rate: int
