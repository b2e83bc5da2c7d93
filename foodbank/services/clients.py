"""
Client Lookup
Admin search over the clients held in the record store, and edits of a
client's contact / household snapshot.

The store keeps no separate client table: every appointment record carries
its client's snapshot, so a client is found through their records.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional
import logging

from foodbank.core.errors import ClientNotFoundError
from foodbank.core.normalize import normalize_name, phone_digits
from foodbank.models.appointment import AppointmentRecord
from foodbank.services.record_store import RecordStore

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "first_name",
    "last_name",
    "phone_number",
    "email",
    "adults",
    "seniors",
    "children",
    "children_ages",
    "dietary_considerations",
    "items_provided",
    "location",
    "program",
    "notes",
)

HOUSEHOLD_FIELDS = ("adults", "seniors", "children")


def matches_query(record: AppointmentRecord, query: str) -> bool:
    """Case-insensitive substring match on names and client number, digit match on phone."""
    term = normalize_name(query)
    if not term:
        return True
    if (
        term in record.first_name.lower()
        or term in record.last_name.lower()
        or term in record.full_name.lower()
        or term in record.client_id.lower()
    ):
        return True
    digits = phone_digits(query)
    return bool(digits) and digits in record.phone_digits


def search_clients(store: RecordStore, query: str, day: Optional[date] = None) -> List[AppointmentRecord]:
    """
    Find records whose client matches ``query``.

    Args:
        store: Record store
        query: Part of a name, client number or phone number; empty matches all
        day: Only search records scheduled on this date; None searches everything held

    Returns:
        Matching records ordered by scheduled time
    """
    if day is None:
        records = store.find(lambda r: matches_query(r, query))
    else:
        records = store.find(lambda r: r.scheduled_date == day and matches_query(r, query))
    return sorted(records, key=lambda r: (r.scheduled_instant, r.client_id))


def get_client(store: RecordStore, client_id: str, day: Optional[date] = None) -> AppointmentRecord:
    """
    The client's record for ``day`` (or their earliest held record).

    Raises:
        ClientNotFoundError: If no held record has this client number
    """
    records = store.find(lambda r: r.client_id == client_id)
    if day is not None:
        records = [r for r in records if r.scheduled_date == day]
    if not records:
        raise ClientNotFoundError(client_id)
    return min(records, key=lambda r: r.scheduled_instant)


def edit_client(
    store: RecordStore,
    client_id: str,
    changes: Dict[str, Any],
    now: Optional[datetime] = None,
) -> List[AppointmentRecord]:
    """
    Apply contact / household edits to every record of a client.

    The derived ``phone_digits`` and ``household_size`` follow the edited
    values so the client stays matchable at the counter.

    Raises:
        ClientNotFoundError: If no held record has this client number
        ValueError: If a field outside the editable snapshot is given
    """
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

    with store.transaction():
        records = store.find(lambda r: r.client_id == client_id)
        if not records:
            raise ClientNotFoundError(client_id)
        if not changes:
            return records

        updated = []
        for record in records:
            record_changes = dict(changes)
            if "phone_number" in changes:
                record_changes["phone_digits"] = phone_digits(changes["phone_number"])
            if any(name in changes for name in HOUSEHOLD_FIELDS):
                counts = [changes.get(name, getattr(record, name)) for name in HOUSEHOLD_FIELDS]
                record_changes["household_size"] = sum(counts) or 1
            if now is not None:
                record_changes["updated_at"] = now
            updated.append(store.update(record.id, **record_changes))

    logger.info(
        f"[Clients] Edited client {client_id} ({', '.join(sorted(changes))}) on {len(updated)} record(s)"
    )
    return sorted(updated, key=lambda r: r.scheduled_instant)
