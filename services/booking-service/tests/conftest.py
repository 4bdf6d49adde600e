from datetime import datetime, timezone

import pytest

from amenity_booking.domain import BookingRules, Caller, ROLE_ADMIN
from amenity_booking.services import BookingEngine

from fakes import InMemoryBookingStore

NOW = datetime(2024, 1, 10, 8, 0, tzinfo=timezone.utc)

RULES = BookingRules(
    max_per_family=2,
    max_advance_booking_days=7,
    min_booking_duration=30,
    max_booking_duration=120,
    cancellation_deadline_hours=2,
)


class FixedClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    return InMemoryBookingStore()


@pytest.fixture
def resident():
    return Caller(user_id="user-1", email="ana@example.com", name="Ana")


@pytest.fixture
def neighbour():
    return Caller(user_id="user-2", email="ben@example.com", name="Ben")


@pytest.fixture
def admin():
    return Caller(user_id="admin-1", role=ROLE_ADMIN, email="admin@example.com", name="Admin")


@pytest.fixture
def make_engine(store, clock):
    def factory(**kwargs):
        kwargs.setdefault("timezone_name", "UTC")
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("backoff_seconds", 0)
        kwargs.setdefault("default_rules", RULES)
        return BookingEngine(kwargs.pop("store", store), **kwargs)

    return factory


@pytest.fixture
def engine(make_engine):
    return make_engine()
