from datetime import date

import pytest

from foodbank.core.errors import ClientNotFoundError
from foodbank.models.appointment import RecordSource
from foodbank.services.clients import edit_client, get_client, search_clients

from tests.helpers import local


@pytest.fixture
def roster(store, make_record):
    """Three clients today plus Jane's follow-up in three weeks."""
    jane = store.insert(make_record())
    sam = store.insert(make_record(client_id="1002", first_name="Sam", last_name="Lee",
                                   phone_number="(250) 555-0101",
                                   scheduled_instant=local(2025, 10, 1, 13, 15)))
    ana = store.insert(make_record(client_id="2077", first_name="Ana", last_name="Maria Lopez",
                                   phone_number="250.555.0199",
                                   scheduled_instant=local(2025, 10, 1, 9, 15)))
    follow_up = store.insert(make_record(source=RecordSource.AUTO_GENERATED, generated_from_id=jane.id,
                                         scheduled_instant=local(2025, 10, 22, 10, 0)))
    return {"jane": jane, "sam": sam, "ana": ana, "follow_up": follow_up}


# =============================================================================
# Search
# =============================================================================

def test_search_by_name_client_number_and_phone(store, roster):
    today = date(2025, 10, 1)

    assert [r.client_id for r in search_clients(store, "LOPEZ", today)] == ["2077"]
    assert [r.client_id for r in search_clients(store, "maria lo", today)] == ["2077"]
    assert [r.client_id for r in search_clients(store, "100", today)] == ["1001", "1002"]
    assert [r.client_id for r in search_clients(store, "(250) 555-0101", today)] == ["1002"]
    assert search_clients(store, "nobody", today) == []


def test_empty_query_lists_everyone_in_scope(store, roster):
    today = search_clients(store, "", date(2025, 10, 1))
    everything = search_clients(store, "  ", None)

    assert [r.client_id for r in today] == ["2077", "1001", "1002"]
    assert len(everything) == 4


def test_get_client(store, roster):
    assert get_client(store, "1001", date(2025, 10, 1)).id == roster["jane"].id
    assert get_client(store, "1001", date(2025, 10, 22)).id == roster["follow_up"].id

    with pytest.raises(ClientNotFoundError):
        get_client(store, "2077", date(2025, 10, 22))
    with pytest.raises(ClientNotFoundError):
        get_client(store, "9999")


# =============================================================================
# Edit
# =============================================================================

def test_edit_updates_every_record_of_the_client(store, roster, matcher, clock):
    version = store.data_version

    updated = edit_client(store, "1001", {"phone_number": "604-555-0123", "children": 3}, now=clock())

    assert [r.id for r in updated] == [roster["jane"].id, roster["follow_up"].id]
    for record in updated:
        assert record.phone_number == "604-555-0123"
        assert record.phone_digits == "6045550123"
        assert record.household_size == 5
    assert store.data_version > version
    # The new phone number is what the counter now matches on
    assert matcher.match("6045550123", "Doe", clock()).record.id == roster["jane"].id
    assert store.get(roster["sam"].id).phone_digits == "2505550101"


def test_edit_without_changes_leaves_version(store, roster):
    version = store.data_version

    records = edit_client(store, "1002", {})

    assert [r.id for r in records] == [roster["sam"].id]
    assert store.data_version == version


def test_edit_rejects_unknown_client_and_fields(store, roster):
    with pytest.raises(ClientNotFoundError):
        edit_client(store, "9999", {"notes": "moved"})
    with pytest.raises(ValueError):
        edit_client(store, "1001", {"status": "Collected"})
