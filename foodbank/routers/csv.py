"""
CSV Router
Upload of the daily appointment sheet and export of the day's results
"""
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response
from datetime import datetime
from typing import Callable
import logging

from foodbank.core.config import settings
from foodbank.core.errors import CSVImportError
from foodbank.core.store import get_clock, get_store
from foodbank.schemas.status import CSVImportResponse
from foodbank.services import csv_import
from foodbank.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/csv", tags=["CSV"])

ALLOWED_CONTENT_TYPES = {"text/csv", "application/vnd.ms-excel", "application/csv", "text/plain"}


@router.post("/upload", response_model=CSVImportResponse, status_code=status.HTTP_200_OK)
async def upload_csv(
    file: UploadFile = File(..., description="Daily appointment sheet (.csv)"),
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Import the day's appointment sheet.

    Rows sharing a client number and pickup date with an existing record
    update it rather than creating a second appointment.

    Args:
        file: Uploaded CSV file
        store: Record store
        clock: Service clock

    Returns:
        Import counts, the sheet's date and any warning (e.g. the sheet is not for today)

    Raises:
        HTTPException: If the file is not a CSV, is too large or cannot be read
    """
    filename = file.filename or "upload.csv"
    if not (filename.lower().endswith(".csv") or file.content_type in ALLOWED_CONTENT_TYPES):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed"
        )

    content = await file.read()
    if len(content) > settings.max_upload_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds maximum size of {settings.max_upload_size} bytes"
        )

    try:
        result = csv_import.import_csv(store, content, filename, now=clock())
    except CSVImportError as e:
        logger.warning(f"[CSV] Rejected {filename}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return CSVImportResponse(
        filename=result.filename,
        total=result.total,
        added=result.added,
        duplicates=result.duplicates,
        skipped=result.skipped,
        csv_date=result.csv_date,
        today_date=result.today_date,
        expires_at=result.expires_at,
        data_version=result.data_version,
        warning=result.warning,
    )


@router.get("/export")
def export_csv(
    store: RecordStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Export every uploaded client with their updated status and next pickup.
    Columns follow the upload format, followed by Next Pick Up Date, Status
    and Special Requests.
    """
    now = clock()
    store.purge_expired(now)
    content = csv_import.export_csv(store)
    filename = f"foodbank-appointments-{now.strftime('%Y-%m-%d')}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
