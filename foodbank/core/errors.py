"""
Check-in failure taxonomy.

Expected business outcomes (no matching record, arriving too early, ...)
are returned as ``CheckInFailure`` values. Exceptions are reserved for
faults the caller cannot resolve at the counter.
"""
from dataclasses import dataclass, field
from typing import Any, Dict
import enum

from fastapi import HTTPException, status


class FailureKind(str, enum.Enum):
    """Reasons a check-in or reschedule request can be turned away"""
    NOT_FOUND = "NotFound"
    ALREADY_CHECKED_IN = "AlreadyCheckedIn"
    TOO_EARLY = "TooEarly"
    TOO_LATE = "TooLate"
    INVALID_DATE = "InvalidDate"
    STORE_UNAVAILABLE = "StoreUnavailable"


@dataclass(frozen=True)
class CheckInFailure:
    kind: FailureKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, **self.details}


class StoreUnavailableError(RuntimeError):
    """Raised when the record store cannot serve a request."""


class RecordNotFoundError(LookupError):
    """Raised when an admin operation names a record id the store does not hold."""

    def __init__(self, record_id: str):
        super().__init__(f"Record '{record_id}' not found")
        self.record_id = record_id


class ClientNotFoundError(LookupError):
    """Raised when no held record carries the requested client number."""

    def __init__(self, client_id: str):
        super().__init__(f"Client '{client_id}' not found")
        self.client_id = client_id


class CSVImportError(ValueError):
    """Raised when an uploaded CSV cannot be read at all."""


HTTP_STATUS_BY_KIND = {
    FailureKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.ALREADY_CHECKED_IN: status.HTTP_409_CONFLICT,
    FailureKind.TOO_EARLY: status.HTTP_400_BAD_REQUEST,
    FailureKind.TOO_LATE: status.HTTP_400_BAD_REQUEST,
    FailureKind.INVALID_DATE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    FailureKind.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def failure_exception(failure: CheckInFailure) -> HTTPException:
    """HTTP error carrying the failure kind and the details staff need at the counter."""
    return HTTPException(status_code=HTTP_STATUS_BY_KIND[failure.kind], detail=failure.to_dict())
