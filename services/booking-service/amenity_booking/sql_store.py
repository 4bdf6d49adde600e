import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .domain import Amenity, BookingRecord, BookingRules, WaitlistEntry
from .models import RULES_ID, SLOT_INDEX, Amenity as AmenityRow, Booking, BookingRulesRow
from .store import BookingStore, StoreTransaction, StoreUnavailable, TransactionConflict

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = {"40001", "40P01"}
_SQLITE_SLOT_COLUMNS = "bookings.facility_id, bookings.date, bookings.time_slot"


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def _is_lock_contention(exc: DBAPIError) -> bool:
    if _sqlstate(exc) in _RETRYABLE_SQLSTATES:
        return True
    # sqlite reports writer contention as "database is locked"
    return "database is locked" in str(getattr(exc, "orig", exc)).lower()


def _is_slot_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is not None and getattr(candidate, "constraint_name", None) == SLOT_INDEX:
            return True
    text = str(orig)
    # sqlite names the columns, not the index
    return SLOT_INDEX in text or _SQLITE_SLOT_COLUMNS in text


def _utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _to_record(row: Booking) -> BookingRecord:
    return BookingRecord(
        id=row.booking_id,
        facility_id=row.facility_id,
        facility_name=row.facility_name or "",
        date=row.date,
        time_slot=row.time_slot,
        start_at=_utc(row.start_at),
        end_at=_utc(row.end_at),
        status=row.status,
        user_id=row.user_id,
        user_email=row.user_email or "",
        user_name=row.user_name or "",
        waitlist=[WaitlistEntry.from_dict(e) for e in (row.waitlist or [])],
        created_at=_utc(row.created_at),
    )


def _to_amenity(row: AmenityRow) -> Amenity:
    return Amenity(
        id=row.id,
        name=row.name,
        description=row.description or "",
        max_capacity=row.max_capacity or 0,
        is_active=bool(row.is_active),
    )


class _SqlTransaction(StoreTransaction):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _row(self, booking_id: str) -> Booking | None:
        res = await self.session.execute(
            select(Booking).where(Booking.booking_id == booking_id).with_for_update()
        )
        return res.scalar_one_or_none()

    async def get_booking(self, booking_id: str) -> BookingRecord | None:
        row = await self._row(booking_id)
        return _to_record(row) if row else None

    async def bookings_for_slot(self, facility_id: str, date: str, statuses: tuple[str, ...]) -> list[BookingRecord]:
        res = await self.session.execute(
            select(Booking)
            .where(
                Booking.facility_id == facility_id,
                Booking.date == date,
                Booking.status.in_(statuses),
            )
            .order_by(Booking.start_at, Booking.created_at, Booking.booking_id)
        )
        return [_to_record(row) for row in res.scalars().all()]

    async def add_booking(self, record: BookingRecord) -> None:
        self.session.add(
            Booking(
                booking_id=record.id,
                facility_id=record.facility_id,
                facility_name=record.facility_name,
                date=record.date,
                time_slot=record.time_slot,
                start_at=_utc(record.start_at),
                end_at=_utc(record.end_at),
                status=record.status,
                user_id=record.user_id,
                user_email=record.user_email,
                user_name=record.user_name,
                waitlist=[e.to_dict() for e in record.waitlist],
                created_at=_utc(record.created_at),
            )
        )
        await self.session.flush()

    async def update_booking(self, record: BookingRecord) -> None:
        row = await self._row(record.id)
        if row is None:
            raise TransactionConflict(f"Booking {record.id} disappeared during transaction")

        row.status = record.status
        row.facility_name = record.facility_name
        row.user_email = record.user_email
        row.user_name = record.user_name
        # reassign so the JSON column is marked dirty
        row.waitlist = [e.to_dict() for e in record.waitlist]
        await self.session.flush()


class SqlBookingStore(BookingStore):
    def __init__(self, sessionmaker: async_sessionmaker):
        self._sessionmaker = sessionmaker

    @asynccontextmanager
    async def transaction(self):
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    yield _SqlTransaction(session)
        except IntegrityError as e:
            if not _is_slot_violation(e):
                raise
            # the partial unique index rejected a second confirmed booking for the slot
            raise TransactionConflict(str(e.orig)) from e
        except DBAPIError as e:
            if _is_lock_contention(e):
                raise TransactionConflict(str(e.orig)) from e
            if isinstance(e, OperationalError) or e.connection_invalidated:
                raise StoreUnavailable(str(e.orig)) from e
            raise
        except OSError as e:
            raise StoreUnavailable(str(e)) from e

    @asynccontextmanager
    async def _reading(self):
        try:
            async with self._sessionmaker() as session:
                yield session
        except OperationalError as e:
            raise StoreUnavailable(str(e.orig)) from e
        except OSError as e:
            raise StoreUnavailable(str(e)) from e

    async def get_booking(self, booking_id: str) -> BookingRecord | None:
        async with self._reading() as db:
            res = await db.execute(select(Booking).where(Booking.booking_id == booking_id))
            row = res.scalar_one_or_none()
            return _to_record(row) if row else None

    async def find_bookings(
        self,
        *,
        date: str,
        facility_id: str | None = None,
        user_id: str | None = None,
        order_by_start: bool = True,
    ) -> list[BookingRecord]:
        stmt = select(Booking).where(Booking.date == date)
        if facility_id:
            stmt = stmt.where(Booking.facility_id == facility_id)
        if user_id:
            stmt = stmt.where(Booking.user_id == user_id)
        if order_by_start:
            stmt = stmt.order_by(Booking.start_at, Booking.created_at, Booking.booking_id)

        async with self._reading() as db:
            res = await db.execute(stmt)
            return [_to_record(row) for row in res.scalars().all()]

    async def get_amenity(self, amenity_id: str) -> Amenity | None:
        async with self._reading() as db:
            row = await db.get(AmenityRow, amenity_id)
            return _to_amenity(row) if row else None

    async def list_amenities(self) -> list[Amenity]:
        async with self._reading() as db:
            res = await db.execute(select(AmenityRow).order_by(AmenityRow.name))
            return [_to_amenity(row) for row in res.scalars().all()]

    async def get_rules(self) -> BookingRules | None:
        async with self._reading() as db:
            row = await db.get(BookingRulesRow, RULES_ID)
            if not row:
                return None
            return BookingRules(
                max_per_family=row.max_per_family,
                max_advance_booking_days=row.max_advance_booking_days,
                min_booking_duration=row.min_booking_duration,
                max_booking_duration=row.max_booking_duration,
                cancellation_deadline_hours=row.cancellation_deadline_hours,
            )

    async def seed(self, amenities: list[Amenity], rules: BookingRules) -> int:
        added = 0
        async with self._reading() as db:
            async with db.begin():
                res = await db.execute(select(AmenityRow.name))
                existing = set(res.scalars().all())
                for amenity in amenities:
                    if amenity.name in existing:
                        continue
                    db.add(
                        AmenityRow(
                            id=amenity.id,
                            name=amenity.name,
                            description=amenity.description,
                            max_capacity=amenity.max_capacity,
                            is_active=amenity.is_active,
                        )
                    )
                    added += 1

                if await db.get(BookingRulesRow, RULES_ID) is None:
                    db.add(
                        BookingRulesRow(
                            id=RULES_ID,
                            max_per_family=rules.max_per_family,
                            max_advance_booking_days=rules.max_advance_booking_days,
                            min_booking_duration=rules.min_booking_duration,
                            max_booking_duration=rules.max_booking_duration,
                            cancellation_deadline_hours=rules.cancellation_deadline_hours,
                        )
                    )
        logger.info("Seeded %d amenities", added)
        return added
