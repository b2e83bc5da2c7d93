from datetime import timedelta

from foodbank.core.errors import FailureKind
from foodbank.models.appointment import AppointmentStatus
from foodbank.services.matcher import EligibilityMatcher, FallbackPolicy

from tests.helpers import local


NOW = local(2025, 10, 1, 9, 50)


def test_single_match_is_selected(store, matcher, make_record):
    record = store.insert(make_record())

    result = matcher.match("(250) 555-0100", "Doe", NOW)

    assert result.ok
    assert result.record.id == record.id


def test_credentials_are_normalized(store, matcher, make_record):
    record = store.insert(make_record())

    result = matcher.match("250.555.0100", "  dOE ", NOW)

    assert result.record.id == record.id


def test_no_match_reports_not_found_with_help_phone(store, matcher, make_record):
    store.insert(make_record())

    result = matcher.match("250-555-9999", "Doe", NOW)

    assert not result.ok
    assert result.failure.kind == FailureKind.NOT_FOUND
    assert "(250) 763-7161" in result.failure.message


def test_blank_credentials_never_match(store, matcher, make_record):
    store.insert(make_record(phone_number="", phone_digits=""))

    assert not matcher.match("", "Doe", NOW).ok
    assert not matcher.match("2505550100", "   ", NOW).ok


def test_only_matchable_statuses_are_considered(store, matcher, make_record):
    store.insert(make_record(status=AppointmentStatus.COLLECTED))
    store.insert(make_record(client_id="1002", status=AppointmentStatus.CANCELLED))
    store.insert(make_record(client_id="1003", status=AppointmentStatus.RESCHEDULED))

    assert matcher.match("2505550100", "Doe", NOW).failure.kind == FailureKind.NOT_FOUND

    rescued = store.insert(make_record(client_id="1004", status=AppointmentStatus.NOT_COLLECTED))
    assert matcher.match("2505550100", "Doe", NOW).record.id == rescued.id


def test_today_record_wins_over_next_week(store, matcher, make_record):
    today = store.insert(make_record(scheduled_instant=local(2025, 10, 1, 10, 0)))
    store.insert(make_record(scheduled_instant=local(2025, 10, 8, 10, 0)))

    result = matcher.match("2505550100", "Doe", NOW)

    assert result.record.id == today.id


def test_closest_record_in_window_wins(store, matcher, make_record):
    store.insert(make_record(scheduled_instant=local(2025, 10, 1, 9, 15)))
    closest = store.insert(make_record(scheduled_instant=local(2025, 10, 1, 10, 0)))
    store.insert(make_record(scheduled_instant=local(2025, 10, 1, 10, 15)))

    assert matcher.match("2505550100", "Doe", NOW).record.id == closest.id


def test_equal_distance_prefers_earlier_instant(store, matcher, make_record):
    earlier = store.insert(make_record(scheduled_instant=local(2025, 10, 1, 9, 40)))
    store.insert(make_record(scheduled_instant=local(2025, 10, 1, 10, 0)))

    assert matcher.match("2505550100", "Doe", NOW).record.id == earlier.id


def test_none_in_window_routes_to_todays_earliest(store, matcher, make_record):
    store.insert(make_record(scheduled_instant=local(2025, 10, 1, 14, 0)))
    earliest = store.insert(make_record(scheduled_instant=local(2025, 10, 1, 13, 0)))

    assert matcher.match("2505550100", "Doe", NOW).record.id == earliest.id


def test_none_today_falls_back_to_earliest(store, matcher, make_record):
    store.insert(make_record(scheduled_instant=local(2025, 10, 15, 10, 0)))
    earliest = store.insert(make_record(scheduled_instant=local(2025, 10, 8, 10, 0)))

    assert matcher.match("2505550100", "Doe", NOW).record.id == earliest.id


def test_strict_policy_rejects_when_none_today(store, make_record):
    strict = EligibilityMatcher(store, window=timedelta(minutes=30), fallback=FallbackPolicy.STRICT)
    store.insert(make_record(scheduled_instant=local(2025, 10, 15, 10, 0)))
    store.insert(make_record(scheduled_instant=local(2025, 10, 8, 10, 0)))

    result = strict.match("2505550100", "Doe", NOW)

    assert result.failure.kind == FailureKind.NOT_FOUND


def test_strict_policy_still_accepts_single_match(store, make_record):
    strict = EligibilityMatcher(store, fallback=FallbackPolicy.STRICT)
    record = store.insert(make_record(scheduled_instant=local(2025, 10, 8, 10, 0)))

    assert strict.match("2505550100", "Doe", NOW).record.id == record.id


def test_matching_is_deterministic(store, matcher, make_record):
    for hour, minute in [(9, 40), (10, 0), (10, 30), (13, 0)]:
        store.insert(make_record(scheduled_instant=local(2025, 10, 1, hour, minute)))
    store.insert(make_record(scheduled_instant=local(2025, 10, 8, 10, 0)))

    selected = {matcher.match("2505550100", "Doe", NOW).record.id for _ in range(20)}

    assert len(selected) == 1


def test_match_has_no_side_effects(store, matcher, make_record):
    store.insert(make_record())
    version = store.data_version

    matcher.match("2505550100", "Doe", NOW)

    assert store.data_version == version
    assert store.all_records()[0].status == AppointmentStatus.PENDING


def test_checked_in_today_lookup(store, matcher, make_record):
    assert matcher.checked_in_today("2505550100", "Doe", NOW) is None

    done = store.insert(make_record(status=AppointmentStatus.COLLECTED, check_in_at=NOW))
    store.insert(make_record(scheduled_instant=local(2025, 9, 10, 10, 0), status=AppointmentStatus.COLLECTED))

    assert matcher.checked_in_today("2505550100", "doe", NOW).id == done.id
