"""
Record Store
Versioned, self-expiring in-memory collection of appointment records.

Every successful mutation bumps ``data_version`` so polling dashboards can
skip re-rendering when nothing changed. Records are dropped 24 hours after
they were created, whatever their status; the sweep is run by callers
before check-ins and status reads rather than on a timer.
"""
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple
import logging
import threading
import uuid

from foodbank.core.clock import now_local, today_local
from foodbank.core.errors import RecordNotFoundError
from foodbank.models.appointment import AppointmentRecord, AppointmentStatus, RecordSource
from foodbank.models.help_request import HelpRequest, HelpRequestStatus

logger = logging.getLogger(__name__)

# Fields a CSV import owns; an overwrite replaces exactly these.
CSV_CONTENT_FIELDS = (
    "client_id",
    "scheduled_instant",
    "pick_up_date_raw",
    "first_name",
    "last_name",
    "phone_number",
    "phone_digits",
    "email",
    "adults",
    "seniors",
    "children",
    "children_ages",
    "household_size",
    "dietary_considerations",
    "items_provided",
    "location",
    "program",
    "notes",
)

DedupKey = Tuple[str, date]


@dataclass
class ImportStats:
    total: int = 0
    added: int = 0
    duplicates: int = 0
    inserted_ids: List[str] = field(default_factory=list)
    updated_ids: List[str] = field(default_factory=list)


def csv_content(record: AppointmentRecord) -> tuple:
    return tuple(getattr(record, name) for name in CSV_CONTENT_FIELDS)


class RecordStore:
    """
    Owned, thread-safe record container.

    Args:
        retention: How long a record lives after ``created_at``
        clock: Callable returning the current aware datetime
    """

    def __init__(
        self,
        retention: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = now_local,
    ):
        self.retention = retention
        self.clock = clock
        self._records: Dict[str, AppointmentRecord] = {}
        self._version = 0
        self._last_import_at: Optional[datetime] = None
        self._last_csv_date: Optional[date] = None
        self._help_requests: Dict[int, HelpRequest] = {}
        self._next_help_id = 1
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Locking / versioning
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["RecordStore"]:
        """Hold the store lock across several reads and writes."""
        with self._lock:
            yield self

    @property
    def data_version(self) -> int:
        with self._lock:
            return self._version

    def _bump(self) -> int:
        self._version += 1
        return self._version

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> Optional[AppointmentRecord]:
        with self._lock:
            record = self._records.get(record_id)
            return record.model_copy(deep=True) if record else None

    def require(self, record_id: str) -> AppointmentRecord:
        record = self.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def all_records(self) -> List[AppointmentRecord]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._records.values()]

    def find(self, predicate: Callable[[AppointmentRecord], bool]) -> List[AppointmentRecord]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._records.values() if predicate(r)]

    def ticket_in_use(self, ticket_number: str) -> bool:
        with self._lock:
            return any(r.ticket_number == ticket_number for r in self._records.values())

    def today_records(self, today: Optional[date] = None) -> List[AppointmentRecord]:
        """Records scheduled for the service-local 'today'."""
        day = today or today_local(self.clock())
        return self.find(lambda r: r.scheduled_date == day)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, record: AppointmentRecord) -> AppointmentRecord:
        """Add a record, assigning an id when it has none."""
        with self._lock:
            now = self.clock()
            record = record.model_copy(deep=True)
            if not record.id:
                record.id = self._new_id(record.source)
            if record.id in self._records:
                raise ValueError(f"Record '{record.id}' already exists")
            record.updated_at = now
            self._records[record.id] = record
            self._bump()
            return record.model_copy(deep=True)

    def update(self, record_id: str, **changes) -> AppointmentRecord:
        """
        Apply field changes to a record.

        Raises:
            RecordNotFoundError: If the id is unknown (e.g. already expired)
        """
        with self._lock:
            current = self._records.get(record_id)
            if current is None:
                raise RecordNotFoundError(record_id)
            changes.pop("id", None)
            changes.setdefault("updated_at", self.clock())
            updated = current.model_copy(update=changes, deep=True)
            self._records[record_id] = updated
            self._bump()
            return updated.model_copy(deep=True)

    def delete(self, record_id: str) -> bool:
        with self._lock:
            if self._records.pop(record_id, None) is None:
                return False
            self._bump()
            return True

    def clear(self) -> None:
        """Drop every record (admin reset, tests)."""
        with self._lock:
            count = len(self._records)
            self._records.clear()
            self._help_requests.clear()
            self._last_import_at = None
            self._last_csv_date = None
            self._bump()
        logger.info(f"[Store] Cleared {count} record(s)")

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """
        Remove records and help requests older than the retention window.

        Returns:
            Number of records removed; the data version moves once if anything was
        """
        now = now or self.clock()
        cutoff = now - self.retention
        with self._lock:
            expired = [rid for rid, r in self._records.items() if r.created_at < cutoff]
            for rid in expired:
                del self._records[rid]
            stale_requests = [hid for hid, h in self._help_requests.items() if h.created_at < cutoff]
            for hid in stale_requests:
                del self._help_requests[hid]
            if expired or stale_requests:
                self._bump()
        if expired or stale_requests:
            logger.info(
                f"[Store] Purged {len(expired)} expired record(s) and {len(stale_requests)} help request(s)"
            )
        return len(expired)

    def import_records(
        self,
        candidates: Sequence[AppointmentRecord],
        csv_date: Optional[date] = None,
    ) -> ImportStats:
        """
        Commit parsed CSV rows with (client_id, scheduled_date) deduplication.

        A row whose key matches an existing CSV record and whose content is
        identical counts as a duplicate. A matching row with different
        content overwrites the CSV fields of the existing record and counts
        as added once per key. A new key is inserted and counts as added.
        """
        stats = ImportStats(total=len(candidates))
        with self._lock:
            now = self.clock()
            index: Dict[DedupKey, str] = {
                r.dedup_key: rid for rid, r in self._records.items() if r.source == RecordSource.CSV
            }
            counted = set()
            for candidate in candidates:
                key = candidate.dedup_key
                existing_id = index.get(key)
                if existing_id is not None:
                    existing = self._records[existing_id]
                    if csv_content(existing) == csv_content(candidate):
                        stats.duplicates += 1
                        continue
                    changes = {name: getattr(candidate, name) for name in CSV_CONTENT_FIELDS}
                    changes["import_id"] = candidate.import_id
                    changes["updated_at"] = now
                    self._records[existing_id] = existing.model_copy(update=changes, deep=True)
                    if existing_id not in stats.updated_ids:
                        stats.updated_ids.append(existing_id)
                else:
                    record = candidate.model_copy(deep=True)
                    record.id = record.id or self._new_id(RecordSource.CSV)
                    record.source = RecordSource.CSV
                    record.updated_at = now
                    self._records[record.id] = record
                    index[key] = record.id
                    stats.inserted_ids.append(record.id)
                if key not in counted:
                    counted.add(key)
                    stats.added += 1

            if stats.inserted_ids or stats.updated_ids:
                self._bump()
            self._last_import_at = now
            if csv_date is not None:
                self._last_csv_date = csv_date

        logger.info(
            f"[Store] Import committed: total={stats.total} added={stats.added} "
            f"duplicates={stats.duplicates} version={self._version}"
        )
        return stats

    # ------------------------------------------------------------------
    # Help requests
    # ------------------------------------------------------------------

    def add_help_request(
        self,
        client_phone: str,
        client_last_name: str,
        message: str,
        client_email: Optional[str] = None,
        current_page: Optional[str] = None,
        has_existing_appointment: bool = False,
    ) -> HelpRequest:
        """Store a kiosk assistance request; ids are sequential for the process lifetime."""
        with self._lock:
            now = self.clock()
            request = HelpRequest(
                id=self._next_help_id,
                client_phone=client_phone,
                client_last_name=client_last_name,
                client_email=client_email,
                message=message,
                current_page=current_page,
                has_existing_appointment=has_existing_appointment,
                created_at=now,
                updated_at=now,
            )
            self._next_help_id += 1
            self._help_requests[request.id] = request
            self._bump()
            return request.model_copy(deep=True)

    def help_requests(self) -> List[HelpRequest]:
        """Every held help request, most recent first."""
        with self._lock:
            requests = [h.model_copy(deep=True) for h in self._help_requests.values()]
        return sorted(requests, key=lambda h: (h.created_at, h.id), reverse=True)

    def update_help_request_status(self, request_id: int, status: HelpRequestStatus) -> Optional[HelpRequest]:
        """Move a help request along its workflow; None when the id is unknown."""
        with self._lock:
            current = self._help_requests.get(request_id)
            if current is None:
                return None
            updated = current.model_copy(update={"status": status, "updated_at": self.clock()})
            self._help_requests[request_id] = updated
            self._bump()
            return updated.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def daily_status(self, now: Optional[datetime] = None) -> dict:
        """Snapshot for the admin status bar."""
        now = now or self.clock()
        today = today_local(now)
        with self._lock:
            csv_records = [r for r in self._records.values() if r.source == RecordSource.CSV]
            oldest = min((r.created_at for r in csv_records), default=None)
            return {
                "today": today,
                "csv_present": bool(csv_records),
                "record_count": len(self._records),
                "csv_count": len(csv_records),
                "today_count": sum(1 for r in self._records.values() if r.scheduled_date == today),
                "csv_date": self._last_csv_date,
                "last_import_at": self._last_import_at,
                "expires_at": oldest + self.retention if oldest else None,
                "open_help_requests": sum(
                    1 for h in self._help_requests.values() if h.status != HelpRequestStatus.RESOLVED
                ),
                "data_version": self._version,
            }

    def stats(self) -> dict:
        with self._lock:
            records = list(self._records.values())
        total = len(records)
        completed = sum(1 for r in records if r.status == AppointmentStatus.COLLECTED)
        checked_in = sum(1 for r in records if r.check_in_at is not None)
        pending = sum(1 for r in records if r.status == AppointmentStatus.PENDING)
        return {
            "total": total,
            "pending": pending,
            "checked_in": checked_in,
            "completed": completed,
            "not_collected": sum(1 for r in records if r.status == AppointmentStatus.NOT_COLLECTED),
            "completion_rate": round(completed / total * 100) if total else 0,
        }

    @staticmethod
    def _new_id(source: RecordSource) -> str:
        prefix = {
            RecordSource.CSV: "csv",
            RecordSource.MANUAL: "manual",
            RecordSource.AUTO_GENERATED: "auto",
        }[RecordSource(source)]
        return f"{prefix}-{uuid.uuid4().hex[:12]}"
