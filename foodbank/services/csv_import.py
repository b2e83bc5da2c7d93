"""
CSV import / export for daily appointment sheets.

Uploaded sheets come from more than one export tool, so each canonical
field accepts a prioritized list of header spellings. Row normalization is
kept separate from the store: parsing builds candidate records, and only
the final commit takes the store lock.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
import csv
import io
import logging
import re

from foodbank.core.clock import format_clock, service_timezone, to_local, today_local
from foodbank.core.config import settings
from foodbank.core.errors import CSVImportError
from foodbank.core.normalize import phone_digits, split_full_name
from foodbank.models.appointment import AppointmentRecord, AppointmentStatus, RecordSource
from foodbank.services.record_store import RecordStore

logger = logging.getLogger(__name__)

# Canonical field -> accepted header spellings, highest priority first.
# Lookup is case-insensitive after trimming.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "name": ("Name", "Full Name", "Client Name", "fullName", "clientName"),
    "phone": ("Phone Number", "Phone", "Phone #", "Phone#", "phone_number", "phoneNumber"),
    "client_id": ("Client #", "Client ID", "clientId", "client_id", "clientid", "id"),
    "pick_up_date": ("Pick Up Date", "pickup_date", "pick_up_date", "pickUpDate", "date"),
    "adults": ("Adults",),
    "seniors": ("Seniors",),
    "children": ("Children",),
    "children_ages": ("Children's Ages", "Children Ages", "children_ages"),
    "dietary": ("Dietary Considerations", "dietaryConsiderations", "dietary", "dietary_considerations"),
    "items": ("Items Provided", "items"),
    "email": ("Email",),
    "location": ("Location", "Food Bank Site", "Site"),
    "program": ("Program", "Program Name", "Program Type", "programType"),
    "notes": ("Notes", "Appointment Notes", "appointmentNotes", "Staff Notes", "staffNotes"),
}

EXPORT_HEADERS = [
    "Client #",
    "Name",
    "Pick Up Date",
    "Dietary Considerations",
    "Items Provided",
    "Adults",
    "Seniors",
    "Children",
    "Children's Ages",
    "Email",
    "Phone Number",
    "Next Pick Up Date",
    "Status",
    "Special Requests",
]

PICKUP_PATTERN = re.compile(
    r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})\s*@\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$"
)


class CSVRowError(ValueError):
    """A single row could not be turned into an appointment."""


@dataclass
class ParsedCSV:
    candidates: List[AppointmentRecord] = field(default_factory=list)
    skipped: List[Tuple[int, str]] = field(default_factory=list)
    csv_date: Optional[date] = None


@dataclass
class ImportResult:
    filename: str
    total: int
    added: int
    duplicates: int
    skipped: int
    csv_date: Optional[date]
    today_date: date
    expires_at: datetime
    data_version: int
    warning: Optional[str] = None


# ----------------------------------------------------------------------
# Pickup date codec
# ----------------------------------------------------------------------

def parse_pickup_datetime(text: str) -> datetime:
    """
    Parse 'YYYY-MM-DD @ H:MM AM/PM' into an aware service-local instant.

    Raises:
        CSVRowError: If the text is not in that format or names an impossible time
    """
    match = PICKUP_PATTERN.match(text or "")
    if not match:
        raise CSVRowError(f"Unrecognized pick up date '{text}'")
    year, month, day, hour, minute, meridiem = match.groups()
    if not 1 <= int(hour) <= 12:
        raise CSVRowError(f"Invalid pick up date '{text}': hour must be 1-12")
    hour24 = int(hour) % 12
    if meridiem.upper() == "PM":
        hour24 += 12
    try:
        return datetime(int(year), int(month), int(day), hour24, int(minute), tzinfo=service_timezone())
    except ValueError as e:
        raise CSVRowError(f"Invalid pick up date '{text}': {e}") from e


def format_pickup_datetime(instant: datetime) -> str:
    """Inverse of ``parse_pickup_datetime``."""
    local = to_local(instant)
    return f"{local.strftime('%Y-%m-%d')} @ {format_clock(local)}"


# ----------------------------------------------------------------------
# Row normalization
# ----------------------------------------------------------------------

def pick(row: Mapping[str, Optional[str]], canonical: str, default: str = "") -> str:
    """Value of the first present, non-empty alias for ``canonical``."""
    lowered = {str(k).strip().lower(): v for k, v in row.items() if k is not None}
    for alias in FIELD_ALIASES[canonical]:
        value = lowered.get(alias.lower())
        if value is not None and str(value).strip():
            return str(value).strip()
    return default


def parse_count(value: str) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def normalize_row(
    row: Mapping[str, Optional[str]],
    created_at: datetime,
    import_id: Optional[str] = None,
) -> AppointmentRecord:
    """
    Turn one loosely-shaped CSV row into a candidate record.

    Raises:
        CSVRowError: If client id, first/last name or pick up date is missing or invalid
    """
    client_id = pick(row, "client_id")
    first_name, last_name = split_full_name(pick(row, "name"))
    if not client_id:
        raise CSVRowError("Missing client id")
    if not first_name or not last_name:
        raise CSVRowError(f"Client {client_id}: a first and last name are required")

    raw_date = pick(row, "pick_up_date")
    if not raw_date:
        raise CSVRowError(f"Client {client_id}: missing pick up date")
    scheduled = parse_pickup_datetime(raw_date)

    adults = parse_count(pick(row, "adults", "0"))
    seniors = parse_count(pick(row, "seniors", "0"))
    children = parse_count(pick(row, "children", "0"))
    phone = pick(row, "phone")

    return AppointmentRecord(
        client_id=client_id,
        scheduled_instant=scheduled,
        pick_up_date_raw=raw_date,
        status=AppointmentStatus.PENDING,
        source=RecordSource.CSV,
        import_id=import_id,
        first_name=first_name,
        last_name=last_name,
        phone_number=phone,
        phone_digits=phone_digits(phone),
        email=pick(row, "email"),
        adults=adults,
        seniors=seniors,
        children=children,
        children_ages=pick(row, "children_ages"),
        household_size=(adults + seniors + children) or 1,
        dietary_considerations=pick(row, "dietary", "None"),
        items_provided=pick(row, "items"),
        location=pick(row, "location", settings.default_location),
        program=pick(row, "program", settings.default_program),
        notes=pick(row, "notes"),
        created_at=created_at,
        updated_at=created_at,
    )


def parse_csv(content, created_at: datetime, import_id: Optional[str] = None) -> ParsedCSV:
    """
    Parse a whole CSV sheet into candidate records.

    Args:
        content: Raw bytes or text of the upload
        created_at: Creation timestamp stamped on every candidate
        import_id: Identifier of this upload

    Returns:
        Candidates, skipped (line, reason) pairs and the first row's date

    Raises:
        CSVImportError: If the file is not UTF-8 or has no header and data rows
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise CSVImportError("CSV file must be UTF-8 encoded") from e

    lines = [line for line in content.splitlines() if line.strip()]
    if len(lines) < 2:
        raise CSVImportError("CSV file must have at least a header and one data row")

    reader = csv.DictReader(io.StringIO(content), skipinitialspace=True)
    parsed = ParsedCSV()
    for row in reader:
        try:
            candidate = normalize_row(row, created_at, import_id)
        except CSVRowError as e:
            parsed.skipped.append((reader.line_num, str(e)))
            continue
        if parsed.csv_date is None:
            parsed.csv_date = candidate.scheduled_date
        parsed.candidates.append(candidate)
    return parsed


# ----------------------------------------------------------------------
# Import
# ----------------------------------------------------------------------

def import_csv(store: RecordStore, content, filename: str, now: Optional[datetime] = None) -> ImportResult:
    """
    Parse an uploaded sheet and commit it to the store.

    Parsing happens without the store lock; ``RecordStore.import_records``
    holds it only for the commit.
    """
    now = now or store.clock()
    import_id = f"csv_{int(now.timestamp() * 1000)}"
    parsed = parse_csv(content, created_at=now, import_id=import_id)
    if parsed.skipped:
        logger.warning(f"[CSV] {filename}: skipped {len(parsed.skipped)} row(s): {parsed.skipped[:5]}")

    stats = store.import_records(parsed.candidates, csv_date=parsed.csv_date)
    today = today_local(now)

    warnings = []
    if stats.duplicates:
        warnings.append(f"{stats.duplicates} duplicate record(s) were skipped")
    if parsed.csv_date and parsed.csv_date != today:
        logger.error(f"[CSV] Date mismatch: CSV date {parsed.csv_date} vs today {today}")
        warnings.append(
            f"The CSV file contains appointments for {parsed.csv_date.isoformat()}, but today's date is "
            f"{today.isoformat()}. Client check-ins will not find these appointments today."
        )

    result = ImportResult(
        filename=filename,
        total=stats.total,
        added=stats.added,
        duplicates=stats.duplicates,
        skipped=len(parsed.skipped),
        csv_date=parsed.csv_date,
        today_date=today,
        expires_at=now + store.retention,
        data_version=store.data_version,
        warning=". ".join(warnings) or None,
    )
    logger.info(
        f"[CSV] Imported {filename}: total={result.total} added={result.added} "
        f"duplicates={result.duplicates} skipped={result.skipped}"
    )
    return result


# ----------------------------------------------------------------------
# Export
# ----------------------------------------------------------------------

def format_next_appointment(record: AppointmentRecord) -> str:
    """Next pickup as 'YYYY-MM-DD @ H:MM AM/PM', or 'NA' when missed or not scheduled."""
    if record.status == AppointmentStatus.NOT_COLLECTED:
        return "NA"
    if record.next_instant is not None:
        return format_pickup_datetime(record.next_instant)
    return "NA"


def format_special_requests(record: AppointmentRecord) -> str:
    requests = []
    if record.has_mobility_issues:
        requests.append("Mobility Assistance Required")
    if record.allergies.strip():
        requests.append(f"Allergies: {record.allergies.strip()}")
    if record.dietary_restrictions:
        requests.append(f"Dietary: {', '.join(record.dietary_restrictions)}")
    if record.unwanted_foods.strip():
        requests.append(f"Unwanted: {record.unwanted_foods.strip()}")
    if record.diaper_size.strip():
        requests.append(f"Diaper Size: {record.diaper_size.strip()}")
    if record.additional_info.strip():
        requests.append(f"Notes: {record.additional_info.strip()}")
    return "; ".join(requests)


def merged_dietary(record: AppointmentRecord) -> str:
    """CSV dietary text merged with restrictions given at check-in, without repeats."""
    items: List[str] = []
    sources: Sequence[str] = [record.dietary_considerations, *record.dietary_restrictions]
    for source in sources:
        for item in (source or "").split(","):
            item = item.strip()
            if item and item != "None" and item not in items:
                items.append(item)
    return ", ".join(items) or "None"


def export_csv(store: RecordStore) -> str:
    """One row per CSV-sourced record, original columns first, then status columns."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for record in store.find(lambda r: r.source == RecordSource.CSV):
        writer.writerow([
            record.client_id,
            record.full_name,
            record.pick_up_date_raw or format_pickup_datetime(record.scheduled_instant),
            merged_dietary(record),
            record.items_provided,
            record.adults,
            record.seniors,
            record.children,
            record.children_ages,
            record.email,
            record.phone_number,
            format_next_appointment(record),
            record.status.value,
            format_special_requests(record),
        ])
    return buffer.getvalue()


