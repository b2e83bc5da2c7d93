import logging
import re
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from foodbank.core.errors import FailureKind
from foodbank.services import scheduler
from foodbank.services.holidays import is_closed
from foodbank.services.scheduler import NextAppointmentCalculator, generate_ticket_number

from tests.helpers import local


# =============================================================================
# Date selection
# =============================================================================

def test_wednesday_origin_gets_date_three_weeks_out(calculator, make_record):
    origin = make_record(scheduled_instant=local(2025, 10, 1, 10, 0))

    slot = calculator.calculate(origin, local(2025, 10, 1, 9, 55))

    assert slot.date == date(2025, 10, 22)
    assert slot.time == "10:00"
    assert slot.instant == local(2025, 10, 22, 10, 0)
    assert slot.date != date(2025, 10, 13)


def test_thanksgiving_is_skipped(calculator, make_record):
    origin = make_record(scheduled_instant=local(2025, 9, 22, 11, 0))

    slot = calculator.calculate(origin, local(2025, 9, 22, 11, 5))

    # 2025-09-22 + 21 days is Thanksgiving Monday
    assert slot.date == date(2025, 10, 14)


def test_christmas_and_boxing_day_then_weekend_are_skipped(calculator, make_record):
    origin = make_record(scheduled_instant=local(2025, 12, 4, 9, 0))

    assert calculator.calculate(origin, local(2025, 12, 4, 9, 0)).date == date(2025, 12, 29)


def test_saturday_cadence_keeps_saturday(calculator, make_record):
    origin = make_record(scheduled_instant=local(2025, 10, 4, 10, 0))

    slot = calculator.calculate(origin, local(2025, 10, 4, 10, 0))

    assert slot.date == date(2025, 10, 25)
    assert slot.date.weekday() == 5


def test_weekday_origin_never_lands_on_saturday(calculator, make_record):
    # Origin was a Wednesday but the client checks in on a Saturday
    origin = make_record(scheduled_instant=local(2025, 10, 1, 10, 0))

    slot = calculator.calculate(origin, local(2025, 10, 4, 10, 0))

    assert slot.date == date(2025, 10, 27)


def test_next_date_properties_hold_all_year(calculator, make_record):
    day = date(2025, 1, 1)
    while day.year == 2025:
        origin = make_record(scheduled_instant=local(day.year, day.month, day.day, 9, 0))
        result = calculator.next_date(origin, day)

        assert result >= day + timedelta(days=21)
        assert result.weekday() in calculator.allowed_weekdays(origin)
        assert not is_closed(result)
        day += timedelta(days=1)


def test_bounded_advance_falls_back_to_weekday_rule(make_record, caplog):
    calculator = NextAppointmentCalculator(min_days=21, max_advances=0)

    with caplog.at_level(logging.WARNING):
        result = calculator.next_open_date(date(2025, 12, 25))

    # Christmas is a Thursday: allowed weekday, holiday ignored after the bound
    assert result == date(2025, 12, 25)
    assert "falling back" in caplog.text


# =============================================================================
# Time selection
# =============================================================================

@pytest.mark.parametrize("origin_time,expected", [
    ("09:00", "09:00"),
    ("09:07", "09:00"),
    ("09:08", "09:15"),
    ("11:40", "12:00"),
    ("08:00", "09:00"),
    ("16:30", "14:45"),
])
def test_closest_slot(calculator, origin_time, expected):
    assert calculator.closest_slot(origin_time) == expected


def test_closest_slot_tie_prefers_earlier_slot():
    calculator = NextAppointmentCalculator(slot_catalog=["09:00", "09:30"])

    assert calculator.closest_slot("09:15") == "09:00"


def test_closest_slot_defaults_when_time_missing(calculator):
    assert calculator.closest_slot(None) == "10:00"
    assert calculator.closest_slot("") == "10:00"
    assert calculator.closest_slot("soon") == "10:00"


def test_off_catalog_origin_time_is_snapped(calculator, make_record):
    origin = make_record(scheduled_instant=local(2025, 10, 1, 11, 40))

    slot = calculator.calculate(origin, local(2025, 10, 1, 11, 45))

    assert slot.time == "12:00"
    assert slot.instant == local(2025, 10, 22, 12, 0)


def test_ticket_number_format():
    ticket = generate_ticket_number()

    assert re.fullmatch(r"T\d{9}", ticket)


def test_ticket_number_redraws_tickets_in_use(monkeypatch):
    draws = iter([7, 7, 8])
    monkeypatch.setattr(scheduler, "random", SimpleNamespace(randint=lambda a, b: next(draws)))
    monkeypatch.setattr(scheduler, "_time", SimpleNamespace(time=lambda: 1759337400.5))
    taken = {"T400500007"}

    assert generate_ticket_number(taken.__contains__) == "T400500008"


def test_ticket_number_gives_up_when_every_draw_is_taken():
    with pytest.raises(RuntimeError):
        generate_ticket_number(lambda ticket: True, attempts=3)


# =============================================================================
# Reschedule validation
# =============================================================================

def test_reschedule_accepts_valid_request(calculator, make_record):
    origin = make_record(scheduled_instant=local(2025, 10, 1, 10, 0))

    assert calculator.validate_reschedule(origin, date(2025, 10, 22), "10:00") is None
    assert calculator.validate_reschedule(origin, date(2025, 10, 24), "14:45") is None


def test_reschedule_rejects_too_soon(calculator, make_record):
    origin = make_record(scheduled_instant=local(2025, 10, 1, 10, 0))

    failure = calculator.validate_reschedule(origin, date(2025, 10, 21), "10:00")

    assert failure.kind == FailureKind.INVALID_DATE
    assert failure.details["earliest_date"] == "2025-10-22"


def test_reschedule_rejects_weekend(calculator, make_record):
    origin = make_record(scheduled_instant=local(2025, 10, 1, 10, 0))

    failure = calculator.validate_reschedule(origin, date(2025, 10, 25), "10:00")

    assert failure.kind == FailureKind.INVALID_DATE
    assert "Saturday" in failure.message


def test_reschedule_allows_saturday_for_saturday_cadence(calculator, make_record):
    origin = make_record(scheduled_instant=local(2025, 10, 4, 10, 0))

    assert calculator.validate_reschedule(origin, date(2025, 10, 25), "10:00") is None


def test_reschedule_rejects_holiday(calculator, make_record):
    origin = make_record(scheduled_instant=local(2025, 10, 1, 10, 0))

    failure = calculator.validate_reschedule(origin, date(2025, 11, 11), "10:00")

    assert failure.kind == FailureKind.INVALID_DATE
    assert failure.details["holiday"] == "Remembrance Day"


def test_reschedule_rejects_time_outside_catalog(calculator, make_record):
    origin = make_record(scheduled_instant=local(2025, 10, 1, 10, 0))

    failure = calculator.validate_reschedule(origin, date(2025, 10, 22), "11:30")

    assert failure.kind == FailureKind.INVALID_DATE
    assert "11:30" in failure.message


def test_calendar_helpers(calculator, make_record):
    saturday_origin = make_record(scheduled_instant=local(2025, 10, 4, 10, 0))

    assert calculator.is_valid_appointment_date(date(2025, 10, 14))
    assert not calculator.is_valid_appointment_date(date(2025, 10, 13))
    assert not calculator.is_valid_weekday(date(2025, 10, 18))
    assert calculator.is_valid_weekday(date(2025, 10, 18), saturday_origin)
    assert calculator.next_valid_appointment_date(date(2025, 10, 11)) == date(2025, 10, 14)
