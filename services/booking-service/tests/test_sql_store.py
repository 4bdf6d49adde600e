from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from amenity_booking import models  # noqa: F401  registers the tables
from amenity_booking.db import Base, create_engine_and_sessionmaker
from amenity_booking.domain import BookingRecord, BookingStatus
from amenity_booking.errors import SlotConflict
from amenity_booking.queries import start_sort_key
from amenity_booking.sql_store import SqlBookingStore
from amenity_booking.store import TransactionConflict

from conftest import RULES

DAY = "2024-01-12"


@pytest_asyncio.fixture
async def sql_store():
    db_engine, sessionmaker = create_engine_and_sessionmaker(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield SqlBookingStore(sessionmaker)

    await db_engine.dispose()


@pytest.fixture
def sql_engine(make_engine, sql_store):
    return make_engine(store=sql_store)


def _record(booking_id: str, hour: int, status: str = BookingStatus.CONFIRMED) -> BookingRecord:
    return BookingRecord(
        id=booking_id,
        facility_id="gym",
        facility_name="Gym",
        date=DAY,
        time_slot=f"{hour:02d}:00 - {hour + 1:02d}:00",
        start_at=datetime(2024, 1, 12, hour, tzinfo=timezone.utc),
        end_at=datetime(2024, 1, 12, hour + 1, tzinfo=timezone.utc),
        status=status,
        user_id="user-1",
        created_at=datetime(2024, 1, 10, 8, tzinfo=timezone.utc),
    )


@pytest.mark.asyncio
async def test_booking_round_trip_through_database(sql_engine, sql_store, resident):
    result = await sql_engine.create_booking(
        {"facilityId": "gym", "date": DAY, "timeSlot": "9:00 AM - 10:00 AM"}, resident
    )

    stored = await sql_store.get_booking(result.record.id)
    assert stored.status == BookingStatus.CONFIRMED
    assert stored.time_slot == "09:00 - 10:00"
    assert stored.start_at == datetime(2024, 1, 12, 9, tzinfo=timezone.utc)
    assert stored.start_at.tzinfo is not None
    assert stored.user_email == "ana@example.com"


@pytest.mark.asyncio
async def test_second_booking_for_slot_conflicts(sql_engine, resident, neighbour):
    payload = {"facilityId": "gym", "date": DAY, "timeSlot": "09:00 - 10:00"}
    await sql_engine.create_booking(payload, resident)

    with pytest.raises(SlotConflict):
        await sql_engine.create_booking(payload, neighbour)


@pytest.mark.asyncio
async def test_unique_index_rejects_duplicate_confirmed_slot(sql_store):
    async with sql_store.transaction() as tx:
        await tx.add_booking(_record("a", 9))

    with pytest.raises(TransactionConflict):
        async with sql_store.transaction() as tx:
            await tx.add_booking(_record("b", 9))

    # cancelled rows do not take part in the index
    async with sql_store.transaction() as tx:
        await tx.add_booking(_record("c", 9, status=BookingStatus.CANCELLED))


@pytest.mark.asyncio
async def test_cancel_and_rebook(sql_engine, sql_store, resident, neighbour):
    payload = {"facilityId": "gym", "date": DAY, "timeSlot": "09:00 - 10:00"}
    booked = await sql_engine.create_booking(payload, resident)

    await sql_engine.cancel_booking(booked.record.id, resident)
    again = await sql_engine.create_booking(payload, neighbour)

    assert (await sql_store.get_booking(booked.record.id)).status == BookingStatus.CANCELLED
    assert again.record.status == BookingStatus.CONFIRMED


@pytest.mark.asyncio
async def test_waitlist_survives_the_json_column(make_engine, sql_store, resident, neighbour):
    engine = make_engine(store=sql_store, waitlist_enabled=True)
    payload = {"facilityId": "gym", "date": DAY, "timeSlot": "09:00 - 10:00"}
    holder = await engine.create_booking(payload, resident)
    await engine.create_booking(payload, neighbour)

    stored = await sql_store.get_booking(holder.record.id)
    assert [(e.user_id, e.user_name) for e in stored.waitlist] == [("user-2", "Ben")]

    result = await engine.cancel_booking(holder.record.id, resident)
    assert result.promoted.user_id == "user-2"
    assert (await sql_store.get_booking(result.promoted.id)).status == BookingStatus.CONFIRMED


@pytest.mark.asyncio
async def test_find_bookings_filters_and_orders(sql_store):
    async with sql_store.transaction() as tx:
        await tx.add_booking(_record("late", 15))
        await tx.add_booking(_record("early", 8))
        other = _record("other", 11)
        other.user_id = "user-2"
        await tx.add_booking(other)

    everything = await sql_store.find_bookings(date=DAY)
    assert [r.id for r in everything] == ["early", "other", "late"]

    mine = await sql_store.find_bookings(date=DAY, user_id="user-1")
    assert [r.id for r in mine] == ["early", "late"]

    assert await sql_store.find_bookings(date=DAY, facility_id="pool") == []


@pytest.mark.asyncio
async def test_seed_is_idempotent(sql_engine, sql_store):
    assert await sql_store.get_rules() is None

    added = await sql_engine.initialize()
    assert added == 5
    assert await sql_engine.initialize() == 0

    names = [a.name for a in await sql_engine.list_amenities()]
    assert names == sorted(names)
    assert "Swimming Pool" in names
    assert await sql_store.get_rules() == RULES


@pytest.mark.asyncio
async def test_other_integrity_errors_are_not_retryable(sql_store):
    async with sql_store.transaction() as tx:
        await tx.add_booking(_record("dup", 9))

    with pytest.raises(IntegrityError):
        async with sql_store.transaction() as tx:
            await tx.add_booking(_record("dup", 11))


@pytest.mark.asyncio
async def test_ties_order_the_same_as_in_memory_sort(sql_store):
    async with sql_store.transaction() as tx:
        for booking_id in ("zulu", "alpha", "mike"):
            record = _record(booking_id, 9, status=BookingStatus.CANCELLED)
            await tx.add_booking(record)

    ordered = await sql_store.find_bookings(date=DAY)
    unordered = await sql_store.find_bookings(date=DAY, order_by_start=False)

    assert [r.id for r in ordered] == ["alpha", "mike", "zulu"]
    assert [r.id for r in sorted(unordered, key=start_sort_key)] == [r.id for r in ordered]
