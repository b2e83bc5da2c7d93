"""
Client Router
Admin client search, lookup and contact / household edits
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from datetime import datetime
from typing import Callable
import logging

from foodbank.core.clock import today_local
from foodbank.core.errors import ClientNotFoundError
from foodbank.core.store import get_clock, get_store
from foodbank.schemas.appointment import AppointmentResponse
from foodbank.schemas.client import (
    ClientSearchRequest,
    ClientSearchResponse,
    ClientUpdate,
    ClientUpdateResponse,
)
from foodbank.services import clients
from foodbank.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/clients", tags=["Clients"])


@router.post("/search", response_model=ClientSearchResponse)
def search_clients(
    payload: ClientSearchRequest,
    scope: str = Query("today", pattern="^(today|all)$", description="'today' or 'all'"),
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Search clients by part of their name, client number or phone number.

    Args:
        payload: Search text; empty lists every client in scope
        scope: 'today' (service-local date) or 'all'
        store: Record store
        clock: Service clock

    Returns:
        Matching appointment records, which carry the client's details
    """
    now = clock()
    store.purge_expired(now)
    day = today_local(now) if scope == "today" else None
    with store.transaction():
        records = clients.search_clients(store, payload.query, day)
        version = store.data_version
    return ClientSearchResponse(
        total=len(records),
        data_version=version,
        clients=[AppointmentResponse.model_validate(r) for r in records],
    )


@router.get("/{client_id}", response_model=AppointmentResponse)
def get_client(
    client_id: str,
    scope: str = Query("today", pattern="^(today|all)$", description="'today' or 'all'"),
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Get a client's details by client number.

    Raises:
        HTTPException: If no record in scope has this client number
    """
    now = clock()
    store.purge_expired(now)
    day = today_local(now) if scope == "today" else None
    try:
        record = clients.get_client(store, client_id, day)
    except ClientNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return AppointmentResponse.model_validate(record)


@router.put("/{client_id}", response_model=ClientUpdateResponse)
def update_client(
    client_id: str,
    payload: ClientUpdate,
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Update a client's contact and household details on all their records.

    Args:
        client_id: External client number
        payload: Fields to change; omitted fields are left alone
        store: Record store
        clock: Service clock

    Returns:
        The updated records and the new data version

    Raises:
        HTTPException: If no held record has this client number
    """
    now = clock()
    store.purge_expired(now)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in changes:
        changes["email"] = str(changes["email"])

    try:
        records = clients.edit_client(store, client_id, changes, now=now)
    except ClientNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return ClientUpdateResponse(
        message="Client details updated successfully",
        client_id=client_id,
        updated=len(records) if changes else 0,
        data_version=store.data_version,
        appointments=[AppointmentResponse.model_validate(r) for r in records],
    )
