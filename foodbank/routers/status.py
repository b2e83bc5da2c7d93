"""
Status Router
Daily data status, data version polling and admin reset
"""
from fastapi import APIRouter, Depends
from datetime import datetime
from typing import Callable
import logging

from foodbank.core.store import get_clock, get_store
from foodbank.schemas.status import DailyStatusResponse, DataVersionResponse
from foodbank.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/status", tags=["Status"])


@router.get("/day", response_model=DailyStatusResponse)
def get_daily_status(
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Get today's data status: whether a sheet is loaded, how many records
    are held and when they expire. Expired records are purged first.
    """
    now = clock()
    store.purge_expired(now)
    return DailyStatusResponse(**store.daily_status(now))


@router.get("/version", response_model=DataVersionResponse)
def get_data_version(
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Cheap poll for dashboards: the version changes whenever any record does,
    including when records expire.
    """
    store.purge_expired(clock())
    return DataVersionResponse(data_version=store.data_version)


@router.delete("/clear")
def clear_all_data(store: RecordStore = Depends(get_store)):
    """
    Remove every record from the store. This action is irreversible.
    """
    store.clear()
    logger.warning("[Status] All data cleared by admin request")
    return {
        "success": True,
        "message": "All data cleared successfully",
        "data_version": store.data_version,
    }
