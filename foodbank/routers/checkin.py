"""
Check-in Router
Handles the client counter check-in and its follow-up endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, status
from datetime import datetime
from typing import Callable
import logging

from foodbank.core.errors import RecordNotFoundError, failure_exception
from foodbank.core.store import get_checkin_service, get_clock, get_store
from foodbank.models.appointment import AppointmentRecord
from foodbank.schemas.appointment import AppointmentListResponse, AppointmentResponse
from foodbank.schemas.checkin import (
    CheckInRequest,
    CheckInResponse,
    CheckInCompleteRequest,
    CheckInCompleteResponse,
    CheckInStatsResponse,
    FollowUpInfo,
    HouseholdInfo,
)
from foodbank.services.checkin_service import CheckInService
from foodbank.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/checkin", tags=["Check-In"])


def build_checkin_response(record: AppointmentRecord, follow_up: AppointmentRecord, warning, data_version: int) -> CheckInResponse:
    next_appointment = None
    if record.has_follow_up:
        next_appointment = FollowUpInfo(
            date=record.next_date,
            time=record.next_time,
            instant=record.next_instant,
            ticket_number=record.ticket_number,
            record_id=follow_up.id if follow_up else None,
        )

    return CheckInResponse(
        message="Check-in successful",
        check_in_id=record.id,
        client_id=record.client_id,
        client_name=record.full_name,
        phone_number=record.phone_number,
        appointment_time=record.scheduled_instant,
        scheduled_time=record.scheduled_time,
        status=record.status.value,
        location=record.location,
        household=HouseholdInfo(
            first_name=record.first_name,
            last_name=record.last_name,
            adults=record.adults,
            seniors=record.seniors,
            children=record.children,
            children_ages=record.children_ages,
            household_size=record.household_size,
            dietary_considerations=record.dietary_considerations,
            items_provided=record.items_provided,
            email=record.email,
        ),
        next_appointment=next_appointment,
        warning=warning,
        data_version=data_version,
    )


@router.post("", response_model=CheckInResponse, status_code=status.HTTP_200_OK)
def check_in(
    payload: CheckInRequest,
    service: CheckInService = Depends(get_checkin_service),
):
    """
    Check a client in at the counter. Public endpoint used by the kiosk.

    Args:
        payload: Phone number and last name typed by the client
        service: Check-in orchestrator

    Returns:
        The matched appointment and, when it could be scheduled, the next appointment

    Raises:
        HTTPException: NotFound, AlreadyCheckedIn, TooEarly or TooLate
    """
    logger.info(f"[CheckIn] Attempt for last name '{payload.last_name.strip()}'")
    result = service.check_in(payload.phone_number, payload.last_name)

    if not result.ok:
        raise failure_exception(result.failure)

    return build_checkin_response(result.record, result.follow_up, result.warning, result.data_version)


@router.post("/complete", response_model=CheckInCompleteResponse)
def complete_check_in(
    payload: CheckInCompleteRequest,
    service: CheckInService = Depends(get_checkin_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Save the special requests a client gave after checking in.

    Args:
        payload: Record id and special requests
        service: Check-in orchestrator
        clock: Service clock

    Returns:
        Updated appointment record
    """
    try:
        record = service.complete(
            payload.check_in_id,
            dietary_restrictions=payload.dietary_restrictions,
            allergies=payload.allergies,
            unwanted_foods=payload.unwanted_foods,
            diaper_size=payload.diaper_size,
            has_mobility_issues=payload.has_mobility_issues,
            additional_info=payload.additional_info,
            email=payload.email,
            now=clock(),
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return CheckInCompleteResponse(
        message="Check-in process completed successfully",
        appointment=AppointmentResponse.model_validate(record),
    )


@router.get("", response_model=AppointmentListResponse)
def list_check_ins(
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Get every record held by the store together with the data version.
    Dashboards compare the version to skip re-rendering.
    """
    store.purge_expired(clock())
    with store.transaction():
        records = store.all_records()
        version = store.data_version
    return AppointmentListResponse(
        total=len(records),
        data_version=version,
        appointments=[AppointmentResponse.model_validate(r) for r in records],
    )


@router.get("/stats", response_model=CheckInStatsResponse)
def get_check_in_stats(
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Get check-in statistics for the records still held"""
    store.purge_expired(clock())
    return CheckInStatsResponse(**store.stats())


@router.get("/{record_id}", response_model=AppointmentResponse)
def get_check_in(
    record_id: str,
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Get a single record by id.

    Raises:
        HTTPException: If the record does not exist (or has expired)
    """
    store.purge_expired(clock())
    record = store.get(record_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Check-in '{record_id}' not found"
        )
    return AppointmentResponse.model_validate(record)
