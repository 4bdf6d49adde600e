import logging
from datetime import datetime, timezone

from .domain import BookingRecord, Caller
from .errors import Forbidden, InvalidDate, MissingDate, NotFound, TransientStoreFailure
from .store import BookingStore, OrderingUnavailable, StoreUnavailable
from .timeparse import TimeParseError, parse_calendar_date, to_instant

logger = logging.getLogger(__name__)

_LATEST = datetime.max.replace(tzinfo=timezone.utc)


def start_sort_key(record: BookingRecord):
    """Ascending by start; records with an unreadable start go last."""
    try:
        start = to_instant(record.start_at, timezone.utc)
        unparsable = 0
    except TimeParseError:
        start = _LATEST
        unparsable = 1

    created = record.created_at
    try:
        created = to_instant(created, timezone.utc) if created is not None else _LATEST
    except TimeParseError:
        created = _LATEST
    return unparsable, start, created, record.id


class QueryService:
    def __init__(self, store: BookingStore):
        self.store = store

    async def bookings_for_day(
        self,
        date: str | None,
        caller: Caller,
        *,
        facility_id: str | None = None,
        mine_only: bool = True,
    ) -> list[BookingRecord]:
        if not date or not date.strip():
            raise MissingDate()
        try:
            day = parse_calendar_date(date).isoformat()
        except TimeParseError:
            raise InvalidDate("Invalid date format (expected YYYY-MM-DD)", ["date"])

        filters = {
            "date": day,
            "facility_id": facility_id or None,
            "user_id": caller.user_id if mine_only else None,
        }

        try:
            try:
                return await self.store.find_bookings(**filters, order_by_start=True)
            except OrderingUnavailable as e:
                # same filter without server ordering, sorted here instead
                logger.warning("Server-side ordering unavailable (%s); sorting in memory", e)
                items = await self.store.find_bookings(**filters, order_by_start=False)
                return sorted(items, key=start_sort_key)
        except StoreUnavailable as e:
            raise TransientStoreFailure("Booking store unavailable, please retry") from e

    async def get_booking(self, booking_id: str) -> BookingRecord | None:
        try:
            return await self.store.get_booking(booking_id)
        except StoreUnavailable as e:
            raise TransientStoreFailure("Booking store unavailable, please retry") from e

    async def get_visible_booking(self, booking_id: str, caller: Caller) -> BookingRecord:
        record = await self.get_booking(booking_id)
        if record is None:
            raise NotFound("Booking not found")
        if record.user_id != caller.user_id and not caller.is_admin:
            raise Forbidden("You can only view your own bookings")
        return record
