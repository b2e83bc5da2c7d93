"""
Help Request Router
Kiosk assistance requests and their admin workflow
"""
from fastapi import APIRouter, Depends, HTTPException, status
from datetime import datetime
from typing import Callable
import logging

from foodbank.core.store import get_clock, get_store
from foodbank.schemas.help_request import (
    HelpRequestCreate,
    HelpRequestListResponse,
    HelpRequestResponse,
    HelpRequestStatusUpdate,
)
from foodbank.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/help-requests", tags=["Help Requests"])


@router.post("", response_model=HelpRequestResponse, status_code=status.HTTP_201_CREATED)
def submit_help_request(
    payload: HelpRequestCreate,
    store: RecordStore = Depends(get_store),
):
    """
    Ask a volunteer for help. Public endpoint used by the kiosk.

    Args:
        payload: Client credentials, message and the page they were on
        store: Record store

    Returns:
        The stored help request
    """
    request = store.add_help_request(
        client_phone=payload.client_phone.strip(),
        client_last_name=payload.client_last_name.strip(),
        message=payload.message.strip(),
        client_email=str(payload.client_email) if payload.client_email else None,
        current_page=payload.current_page,
        has_existing_appointment=payload.has_existing_appointment,
    )
    logger.info(f"[HelpRequest] #{request.id} from '{request.client_last_name}' on {request.current_page or 'unknown page'}")
    return HelpRequestResponse.model_validate(request)


@router.get("", response_model=HelpRequestListResponse)
def list_help_requests(
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Get every help request, most recent first"""
    store.purge_expired(clock())
    with store.transaction():
        requests = store.help_requests()
        version = store.data_version
    return HelpRequestListResponse(
        total=len(requests),
        data_version=version,
        requests=[HelpRequestResponse.model_validate(r) for r in requests],
    )


@router.put("/{request_id}/status", response_model=HelpRequestResponse)
def update_help_request_status(
    request_id: int,
    payload: HelpRequestStatusUpdate,
    store: RecordStore = Depends(get_store),
):
    """
    Move a help request to pending, in_progress or resolved.

    Raises:
        HTTPException: If the help request does not exist
    """
    request = store.update_help_request_status(request_id, payload.status)
    if request is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Help request {request_id} not found"
        )
    logger.info(f"[HelpRequest] #{request_id} is now {request.status.value}")
    return HelpRequestResponse.model_validate(request)
