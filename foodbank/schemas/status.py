from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime


class CSVImportResponse(BaseModel):
    """Schema for the outcome of a CSV upload"""
    success: bool = True
    filename: str
    total: int = Field(..., description="Valid rows in the file")
    added: int = Field(..., description="New or changed appointments")
    duplicates: int = Field(..., description="Rows identical to an existing appointment")
    skipped: int = Field(..., description="Rows that could not be parsed")
    csv_date: Optional[date] = None
    today_date: date
    expires_at: datetime
    data_version: int
    warning: Optional[str] = None


class DailyStatusResponse(BaseModel):
    """Schema for the admin status bar"""
    today: date
    csv_present: bool
    record_count: int
    csv_count: int
    today_count: int
    csv_date: Optional[date] = None
    last_import_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    open_help_requests: int = 0
    data_version: int


class DataVersionResponse(BaseModel):
    data_version: int
