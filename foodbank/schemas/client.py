from pydantic import BaseModel, Field, EmailStr
from typing import List, Optional

from foodbank.schemas.appointment import AppointmentResponse


class ClientSearchRequest(BaseModel):
    """Schema for an admin client search; an empty query lists everyone in scope"""
    query: str = Field("", max_length=255, description="Part of a name, client number or phone number")


class ClientSearchResponse(BaseModel):
    total: int
    data_version: int
    clients: List[AppointmentResponse]


class ClientUpdate(BaseModel):
    """Schema for an admin edit of a client's contact and household details"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=255)
    last_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone_number: Optional[str] = Field(None, min_length=7, max_length=30)
    email: Optional[EmailStr] = None
    adults: Optional[int] = Field(None, ge=0)
    seniors: Optional[int] = Field(None, ge=0)
    children: Optional[int] = Field(None, ge=0)
    children_ages: Optional[str] = Field(None, max_length=255)
    dietary_considerations: Optional[str] = Field(None, max_length=1000)
    items_provided: Optional[str] = Field(None, max_length=1000)
    location: Optional[str] = Field(None, max_length=255)
    program: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)


class ClientUpdateResponse(BaseModel):
    message: str
    client_id: str
    updated: int = Field(..., description="Number of appointment records changed")
    data_version: int
    appointments: List[AppointmentResponse]
