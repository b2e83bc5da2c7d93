# File: store.py
# Path: foodbank/core/store.py

from datetime import datetime, timedelta
from typing import Callable

from fastapi import Depends, Request

from foodbank.core.clock import now_local
from foodbank.core.config import settings
from foodbank.core.errors import StoreUnavailableError
from foodbank.services.checkin_service import CheckInService
from foodbank.services.record_store import RecordStore


def build_store() -> RecordStore:
    """Create the process-lifetime record store from settings."""
    return RecordStore(retention=timedelta(hours=settings.record_retention_hours), clock=now_local)


def get_clock() -> Callable[[], datetime]:
    """
    Dependency returning the service clock.
    Tests override this to freeze "now".
    """
    return now_local


def get_store(request: Request) -> RecordStore:
    """
    Dependency function for FastAPI endpoints.
    Returns the record store owned by the running application.
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise StoreUnavailableError("Record store is not initialized")
    return store


def get_checkin_service(
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> CheckInService:
    return CheckInService.from_settings(store, clock=clock)
