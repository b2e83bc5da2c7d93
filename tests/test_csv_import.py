import csv
import io
from datetime import date

import pytest

from foodbank.core.errors import CSVImportError
from foodbank.models.appointment import AppointmentStatus, RecordSource
from foodbank.services import csv_import
from foodbank.services.csv_import import (
    EXPORT_HEADERS,
    CSVRowError,
    format_pickup_datetime,
    parse_csv,
    parse_pickup_datetime,
)

from tests.helpers import local


SHEET = (
    "Client #,Name,Pick Up Date,Dietary Considerations,Items Provided,Adults,Seniors,Children,"
    "Children's Ages,Email,Phone Number\n"
    "1001,Jane Doe,2025-10-01 @ 10:00 AM,None,Standard,2,0,1,4,jane@example.com,(250) 555-0100\n"
    "1002,Sam Lee,2025-10-01 @ 1:15 PM,Halal,Standard,1,1,0,,,(250) 555-0101\n"
)


def read_export(text):
    return list(csv.reader(io.StringIO(text)))


# =============================================================================
# Pickup date codec
# =============================================================================

def test_parse_pickup_datetime():
    assert parse_pickup_datetime("2025-10-01 @ 9:00 AM") == local(2025, 10, 1, 9, 0)
    assert parse_pickup_datetime("2025-10-01 @ 12:30 PM") == local(2025, 10, 1, 12, 30)
    assert parse_pickup_datetime("2025-10-01 @ 12:05 AM") == local(2025, 10, 1, 0, 5)
    assert parse_pickup_datetime(" 2025-10-01@2:45pm ") == local(2025, 10, 1, 14, 45)


@pytest.mark.parametrize("text", [
    "2025-10-01 @ 9:00 AM",
    "2025-10-01 @ 12:30 PM",
    "2025-03-09 @ 2:15 PM",
    "2025-11-02 @ 11:45 AM",
])
def test_pickup_datetime_round_trips(text):
    assert format_pickup_datetime(parse_pickup_datetime(text)) == text


@pytest.mark.parametrize("text", [
    "2025-10-01 10:00",
    "10/01/2025 @ 9:00 AM",
    "2025-02-30 @ 9:00 AM",
    "2025-10-01 @ 13:30 PM",
    "2025-10-01 @ 0:15 AM",
    "",
])
def test_unparseable_pickup_dates(text):
    with pytest.raises(CSVRowError):
        parse_pickup_datetime(text)


# =============================================================================
# Parsing
# =============================================================================

def test_parse_sheet(clock):
    parsed = parse_csv(SHEET.encode("utf-8"), created_at=clock(), import_id="csv_1")

    assert parsed.csv_date == date(2025, 10, 1)
    assert parsed.skipped == []
    jane, sam = parsed.candidates
    assert jane.client_id == "1001"
    assert (jane.first_name, jane.last_name) == ("Jane", "Doe")
    assert jane.phone_digits == "2505550100"
    assert jane.household_size == 3
    assert jane.pick_up_date_raw == "2025-10-01 @ 10:00 AM"
    assert jane.source == RecordSource.CSV
    assert jane.import_id == "csv_1"
    assert sam.scheduled_time == "13:15"
    assert sam.dietary_considerations == "Halal"


def test_header_aliases_are_case_insensitive(clock):
    sheet = (
        "client id,FULL NAME,phone,pickup_date,adults,Site,Program Type\n"
        "77,Ana Maria Lopez,250 555 0199,2025-10-01 @ 9:15 AM,3,North Hall,Holiday Hamper\n"
    )

    record = parse_csv(sheet, created_at=clock()).candidates[0]

    assert record.client_id == "77"
    assert record.first_name == "Ana"
    assert record.last_name == "Maria Lopez"
    assert record.phone_digits == "2505550199"
    assert record.location == "North Hall"
    assert record.program == "Holiday Hamper"
    assert record.household_size == 3


def test_quoted_fields_with_commas_and_newlines(clock):
    sheet = (
        'Client #,Name,Pick Up Date,Notes\n'
        '1001,Jane Doe,2025-10-01 @ 10:00 AM,"Needs help, uses walker\nsecond line"\n'
    )

    record = parse_csv(sheet, created_at=clock()).candidates[0]

    assert record.notes == "Needs help, uses walker\nsecond line"


def test_invalid_rows_are_skipped(clock):
    sheet = SHEET + (
        "1003,Cher,2025-10-01 @ 10:00 AM\n"
        ",No Id,2025-10-01 @ 10:00 AM\n"
        "1005,Pat Kim,tomorrow\n"
    )

    parsed = parse_csv(sheet, created_at=clock())

    assert len(parsed.candidates) == 2
    assert [line for line, _ in parsed.skipped] == [4, 5, 6]


def test_sheet_without_data_rows_is_rejected(clock):
    with pytest.raises(CSVImportError):
        parse_csv("Client #,Name,Pick Up Date\n\n", created_at=clock())


def test_non_utf8_sheet_is_rejected(clock):
    with pytest.raises(CSVImportError):
        parse_csv(b"\xff\xfeClient #\n\xff\n", created_at=clock())


# =============================================================================
# Import
# =============================================================================

def test_import_sheet(store, clock):
    result = csv_import.import_csv(store, SHEET.encode("utf-8"), "today.csv", now=clock())

    assert (result.total, result.added, result.duplicates, result.skipped) == (2, 2, 0, 0)
    assert result.csv_date == result.today_date == date(2025, 10, 1)
    assert result.warning is None
    assert result.data_version == store.data_version == 1
    assert len(store.today_records(date(2025, 10, 1))) == 2


def test_reimport_is_idempotent(store, clock):
    csv_import.import_csv(store, SHEET, "today.csv", now=clock())

    result = csv_import.import_csv(store, SHEET, "today.csv", now=clock())

    assert result.added == 0
    assert result.duplicates == 2
    assert "2 duplicate record(s)" in result.warning
    assert len(store) == 2


def test_reimport_with_changed_household_overwrites(store, clock):
    csv_import.import_csv(store, SHEET, "today.csv", now=clock())
    changed = SHEET.replace("1001,Jane Doe,2025-10-01 @ 10:00 AM,None,Standard,2,0,1",
                            "1001,Jane Doe,2025-10-01 @ 10:00 AM,None,Standard,4,0,1")

    result = csv_import.import_csv(store, changed, "today-v2.csv", now=clock())

    assert result.added == 1
    assert result.duplicates == 1
    jane = [r for r in store.all_records() if r.client_id == "1001"]
    assert len(jane) == 1
    assert jane[0].household_size == 5


def test_date_mismatch_is_a_warning(store, clock):
    clock.set(local(2025, 10, 2, 8, 0))

    result = csv_import.import_csv(store, SHEET, "yesterday.csv", now=clock())

    assert result.added == 2
    assert result.csv_date == date(2025, 10, 1)
    assert result.today_date == date(2025, 10, 2)
    assert "2025-10-01" in result.warning
    assert "2025-10-02" in result.warning


# =============================================================================
# Export
# =============================================================================

def test_export_columns_and_status(store, clock, make_record):
    csv_import.import_csv(store, SHEET, "today.csv", now=clock())
    jane, sam = sorted(store.all_records(), key=lambda r: r.client_id)
    store.update(
        jane.id,
        status=AppointmentStatus.COLLECTED,
        next_instant=local(2025, 10, 22, 10, 0),
        dietary_restrictions=["Vegetarian"],
        allergies="Peanuts",
        has_mobility_issues=True,
    )
    store.update(sam.id, status=AppointmentStatus.NOT_COLLECTED, next_instant=local(2025, 10, 22, 13, 15))
    store.insert(make_record(client_id="9999", source=RecordSource.AUTO_GENERATED))

    rows = read_export(csv_import.export_csv(store))

    assert rows[0] == EXPORT_HEADERS
    assert len(rows) == 3
    exported = {row[0]: dict(zip(EXPORT_HEADERS, row)) for row in rows[1:]}
    assert exported["1001"]["Pick Up Date"] == "2025-10-01 @ 10:00 AM"
    assert exported["1001"]["Next Pick Up Date"] == "2025-10-22 @ 10:00 AM"
    assert exported["1001"]["Status"] == "Collected"
    assert exported["1001"]["Dietary Considerations"] == "Vegetarian"
    assert exported["1001"]["Special Requests"] == (
        "Mobility Assistance Required; Allergies: Peanuts; Dietary: Vegetarian"
    )
    assert exported["1002"]["Next Pick Up Date"] == "NA"
    assert exported["1002"]["Status"] == "Not Collected"


def test_export_pending_without_follow_up_is_na(store, clock):
    csv_import.import_csv(store, SHEET, "today.csv", now=clock())

    rows = read_export(csv_import.export_csv(store))

    assert {row[EXPORT_HEADERS.index("Next Pick Up Date")] for row in rows[1:]} == {"NA"}
