"""
Help Request Model
Assistance requests raised by clients from the check-in kiosk
"""
from datetime import datetime
from typing import Optional
import enum

from pydantic import BaseModel


class HelpRequestStatus(str, enum.Enum):
    """Enum for help request workflow status"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class HelpRequest(BaseModel):
    id: int
    client_phone: str
    client_last_name: str
    client_email: Optional[str] = None
    message: str
    current_page: Optional[str] = None
    has_existing_appointment: bool = False
    status: HelpRequestStatus = HelpRequestStatus.PENDING

    # Timestamps
    created_at: datetime
    updated_at: datetime

    def __repr__(self):
        return f"<HelpRequest(id={self.id}, last_name='{self.client_last_name}', status='{self.status.value}')>"
