from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import List, Optional
from datetime import datetime

from foodbank.models.help_request import HelpRequestStatus


class HelpRequestCreate(BaseModel):
    """Schema for a client asking for assistance from the kiosk"""
    client_phone: str = Field(..., min_length=1, max_length=30, description="Phone number as typed by the client")
    client_last_name: str = Field(..., min_length=1, max_length=255, description="Client last name")
    client_email: Optional[EmailStr] = None
    message: str = Field(..., min_length=1, max_length=2000, description="What the client needs help with")
    current_page: Optional[str] = Field(None, max_length=255, description="Kiosk page the request came from")
    has_existing_appointment: bool = False


class HelpRequestStatusUpdate(BaseModel):
    status: HelpRequestStatus = Field(..., description="pending, in_progress or resolved")


class HelpRequestResponse(BaseModel):
    """Schema for a stored help request"""
    id: int
    client_phone: str
    client_last_name: str
    client_email: Optional[str] = None
    message: str
    current_page: Optional[str] = None
    has_existing_appointment: bool
    status: HelpRequestStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HelpRequestListResponse(BaseModel):
    total: int
    data_version: int
    requests: List[HelpRequestResponse]
