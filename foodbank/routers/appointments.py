"""
Appointment Router
Admin endpoints for listing, entering, editing and rescheduling appointments
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from datetime import date, datetime
from typing import Callable, Optional
import logging

from foodbank.core.clock import combine_local, today_local
from foodbank.core.config import settings
from foodbank.core.errors import RecordNotFoundError, failure_exception
from foodbank.core.store import get_checkin_service, get_clock, get_store
from foodbank.schemas.appointment import (
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatusUpdate,
    CalendarDayResponse,
    ManualAppointmentCreate,
    RescheduleRequest,
    RescheduleResponse,
    SlotCatalogResponse,
)
from foodbank.services.checkin_service import CheckInService
from foodbank.services.holidays import holiday_name
from foodbank.services.record_store import RecordStore
from foodbank.services.scheduler import NextAppointmentCalculator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])


@router.get("", response_model=AppointmentListResponse)
def list_appointments(
    scope: str = Query("today", pattern="^(today|all)$", description="'today' or 'all'"),
    source: Optional[str] = Query(None, description="Filter by source (csv, manual, auto-generated)"),
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Get appointments, by default only those scheduled for today.

    Args:
        scope: 'today' (service-local date) or 'all'
        source: Optional source filter
        store: Record store
        clock: Service clock

    Returns:
        Appointments sorted by scheduled time, with the data version
    """
    now = clock()
    store.purge_expired(now)
    with store.transaction():
        if scope == "today":
            records = store.today_records(today_local(now))
        else:
            records = store.all_records()
        version = store.data_version

    if source:
        records = [r for r in records if r.source.value == source]
    records.sort(key=lambda r: r.scheduled_instant)

    return AppointmentListResponse(
        total=len(records),
        data_version=version,
        appointments=[AppointmentResponse.model_validate(r) for r in records],
    )


@router.get("/slots", response_model=SlotCatalogResponse)
def get_slot_catalog():
    """Get the appointment times clients can be booked into"""
    return SlotCatalogResponse(
        slots=list(settings.slot_catalog),
        default_time=settings.default_slot_time,
        min_days=settings.next_appointment_min_days,
    )


@router.get("/calendar/{day}", response_model=CalendarDayResponse)
def get_calendar_day(day: date):
    """
    Check a date against the appointment calendar.

    Args:
        day: Date to check (YYYY-MM-DD)

    Returns:
        Whether the date takes appointments, the holiday closing it (if any)
        and the first valid appointment date on or after it
    """
    calculator = NextAppointmentCalculator.from_settings()
    return CalendarDayResponse(
        day=day,
        weekday=day.strftime("%A"),
        is_open=calculator.is_valid_appointment_date(day),
        holiday=holiday_name(day),
        next_valid_date=calculator.next_valid_appointment_date(day),
    )


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_manual_appointment(
    payload: ManualAppointmentCreate,
    service: CheckInService = Depends(get_checkin_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Enter an appointment by hand for a client missing from the uploaded sheet.

    Args:
        payload: Client details and optional pickup date/time
        service: Check-in orchestrator
        clock: Service clock

    Returns:
        Created appointment record
    """
    now = clock()
    scheduled = None
    if payload.scheduled_date:
        scheduled = combine_local(payload.scheduled_date, payload.scheduled_time or settings.default_slot_time)

    record = service.create_manual(
        client_id=payload.client_id,
        full_name=payload.client_name,
        phone_number=payload.phone_number,
        scheduled_instant=scheduled,
        status=payload.status,
        notes=payload.notes or "",
        now=now,
    )
    return AppointmentResponse.model_validate(record)


@router.put("/{record_id}/status", response_model=AppointmentResponse)
def update_appointment_status(
    record_id: str,
    payload: AppointmentStatusUpdate,
    service: CheckInService = Depends(get_checkin_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Update only the status of an appointment.

    Raises:
        HTTPException: If the record does not exist
    """
    try:
        record = service.update_status(record_id, payload.status, payload.notes, now=clock())
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return AppointmentResponse.model_validate(record)


@router.put("/{record_id}/reschedule", response_model=RescheduleResponse)
def reschedule_appointment(
    record_id: str,
    payload: RescheduleRequest,
    service: CheckInService = Depends(get_checkin_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Move a client's next appointment to a requested date and time.

    The request must keep the 21-day spacing, fall on an appointment weekday,
    avoid statutory holidays and use a catalog time.

    Raises:
        HTTPException: 404 if the record does not exist, 422 InvalidDate otherwise
    """
    try:
        result = service.reschedule(record_id, payload.new_date, payload.new_time, now=clock())
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if not result.ok:
        raise failure_exception(result.failure)

    return RescheduleResponse(
        message="Next appointment date updated successfully",
        appointment=AppointmentResponse.model_validate(result.record),
        follow_up=AppointmentResponse.model_validate(result.follow_up) if result.follow_up else None,
    )


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(record_id: str, store: RecordStore = Depends(get_store)):
    """Remove a single appointment record."""
    if not store.delete(record_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Record '{record_id}' not found"
        )
    logger.info(f"[Appointment] Deleted record {record_id}")
