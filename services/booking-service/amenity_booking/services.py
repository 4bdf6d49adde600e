import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

from . import config
from .admission import AdmissionController, AdmissionResult
from .cancellation import CancellationAuthority, CancellationResult
from .coercion import coerce_booking_request
from .domain import Amenity, BookingRecord, BookingRules, Caller
from .errors import TransientStoreFailure
from .policy import validate_booking_request
from .queries import QueryService
from .store import BookingStore, StoreUnavailable
from .timeparse import reference_tz

logger = logging.getLogger(__name__)

DEFAULT_AMENITIES = [
    Amenity("badminton-court", "Badminton Court", "Professional badminton court with proper lighting", 4, True),
    Amenity("swimming-pool", "Swimming Pool", "Olympic-size swimming pool", 20, True),
    Amenity("gym", "Gym", "Fully equipped fitness center", 15, True),
    Amenity("tennis-court", "Tennis Court", "Professional tennis court", 4, True),
    Amenity("community-hall", "Community Hall", "Large hall for events and gatherings", 100, True),
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BookingEngine:
    """Write path, read path and cancellation wired around one store."""

    def __init__(
        self,
        store: BookingStore,
        *,
        timezone_name: str = config.BOOKING_TIMEZONE,
        clock: Callable[[], datetime] = utc_now,
        waitlist_enabled: bool = config.WAITLIST_ENABLED,
        max_attempts: int = config.ADMISSION_MAX_ATTEMPTS,
        backoff_seconds: float = config.ADMISSION_BACKOFF_SECONDS,
        default_rules: BookingRules | None = None,
    ):
        self.store = store
        self.zone = reference_tz(timezone_name)
        self.clock = clock
        self.default_rules = default_rules or BookingRules.defaults()
        self.queries = QueryService(store)
        self.admission = AdmissionController(
            store,
            clock=clock,
            waitlist_enabled=waitlist_enabled,
            max_attempts=max_attempts,
            backoff_seconds=backoff_seconds,
        )
        self.cancellation = CancellationAuthority(
            store,
            self.queries,
            clock=clock,
            max_attempts=max_attempts,
            backoff_seconds=backoff_seconds,
        )

    async def rules(self) -> BookingRules:
        try:
            stored = await self.store.get_rules()
        except StoreUnavailable as e:
            raise TransientStoreFailure("Booking store unavailable, please retry") from e
        return stored or self.default_rules

    async def _facility_name(self, facility_id: str) -> str:
        try:
            amenity = await self.store.get_amenity(facility_id)
        except StoreUnavailable as e:
            raise TransientStoreFailure("Booking store unavailable, please retry") from e
        return amenity.name if amenity else ""

    async def create_booking(self, payload, caller: Caller) -> AdmissionResult:
        req = coerce_booking_request(payload, self.zone)
        logger.debug(
            "Coerced booking request: facility=%s name=%s date=%s slot=%s",
            req.facility_id, req.facility_name, req.date, req.time_slot,
        )

        booking = validate_booking_request(req, await self.rules(), self.clock(), self.zone)
        if not booking.facility_name:
            name = await self._facility_name(booking.facility_id)
            if name:
                booking = replace(booking, facility_name=name)

        return await self.admission.admit(booking, caller)

    async def query_bookings(
        self,
        date: str | None,
        caller: Caller,
        *,
        facility_id: str | None = None,
        mine_only: bool = True,
    ) -> list[BookingRecord]:
        return await self.queries.bookings_for_day(date, caller, facility_id=facility_id, mine_only=mine_only)

    async def get_booking(self, booking_id: str, caller: Caller) -> BookingRecord:
        return await self.queries.get_visible_booking(booking_id, caller)

    async def cancel_booking(self, booking_id: str, caller: Caller) -> CancellationResult:
        return await self.cancellation.cancel(booking_id, caller, await self.rules())

    async def list_amenities(self) -> list[Amenity]:
        try:
            return await self.store.list_amenities()
        except StoreUnavailable as e:
            raise TransientStoreFailure("Booking store unavailable, please retry") from e

    async def initialize(self) -> int:
        try:
            return await self.store.seed(DEFAULT_AMENITIES, self.default_rules)
        except StoreUnavailable as e:
            raise TransientStoreFailure("Booking store unavailable, please retry") from e
