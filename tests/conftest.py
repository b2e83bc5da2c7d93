"""
Test configuration and fixtures.

Provides:
- A frozen service-local clock (2025-10-01 09:50, America/Vancouver)
- A fresh RecordStore bound to that clock
- An AppointmentRecord factory
- A CheckInService wired from explicit components
- A TestClient with the store and clock dependencies overridden
"""
from datetime import timedelta
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from foodbank.core.config import DEFAULT_SLOT_CATALOG
from foodbank.core.normalize import phone_digits
from foodbank.core.store import get_clock, get_store
from foodbank.main import app
from foodbank.models.appointment import AppointmentRecord, RecordSource
from foodbank.services.checkin_service import CheckInService
from foodbank.services.matcher import EligibilityMatcher, FallbackPolicy
from foodbank.services.record_store import RecordStore
from foodbank.services.scheduler import NextAppointmentCalculator

from tests.helpers import FrozenClock, local

# =============================================================================
# Core Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(local(2025, 10, 1, 9, 50))


@pytest.fixture
def store(clock) -> RecordStore:
    return RecordStore(retention=timedelta(hours=24), clock=clock)


@pytest.fixture
def make_record(clock):
    """Factory for CSV-sourced records; keyword arguments override defaults."""

    def factory(**overrides) -> AppointmentRecord:
        values = dict(
            client_id="1001",
            scheduled_instant=local(2025, 10, 1, 10, 0),
            first_name="Jane",
            last_name="Doe",
            phone_number="(250) 555-0100",
            adults=2,
            household_size=2,
            source=RecordSource.CSV,
            created_at=clock(),
            updated_at=clock(),
        )
        values.update(overrides)
        values.setdefault("phone_digits", phone_digits(values["phone_number"]))
        return AppointmentRecord(**values)

    return factory


@pytest.fixture
def calculator() -> NextAppointmentCalculator:
    return NextAppointmentCalculator(
        min_days=21,
        slot_catalog=DEFAULT_SLOT_CATALOG,
        max_advances=10,
        default_time="10:00",
    )


@pytest.fixture
def matcher(store) -> EligibilityMatcher:
    return EligibilityMatcher(
        store,
        window=timedelta(minutes=30),
        fallback=FallbackPolicy.EARLIEST,
        help_phone="(250) 763-7161",
    )


@pytest.fixture
def service(store, matcher, calculator, clock) -> CheckInService:
    return CheckInService(store, matcher, calculator, tolerance=timedelta(minutes=30), clock=clock)


# =============================================================================
# API Fixtures
# =============================================================================

@pytest.fixture
def client(store, clock) -> Generator[TestClient, None, None]:
    """TestClient whose store and clock are the test's own."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()
