"""
Persistence boundary for the booking engine.

The engine never talks to a database directly. It receives a BookingStore
and does every read-check-write inside ``store.transaction()``. A store must
guarantee that if two transactions read overlapping state and both try to
write, at most one commits and the other raises TransactionConflict.
"""
import abc
from contextlib import AbstractAsyncContextManager

from .domain import Amenity, BookingRecord, BookingRules


class StoreError(Exception):
    pass


class TransactionConflict(StoreError):
    """A concurrent transaction committed first; the caller may retry."""


class StoreUnavailable(StoreError):
    """The store could not be reached or timed out."""


class OrderingUnavailable(StoreError):
    """The store cannot order this query server-side (e.g. missing index)."""


class StoreTransaction(abc.ABC):
    @abc.abstractmethod
    async def get_booking(self, booking_id: str) -> BookingRecord | None:
        ...

    @abc.abstractmethod
    async def bookings_for_slot(
        self,
        facility_id: str,
        date: str,
        statuses: tuple[str, ...],
    ) -> list[BookingRecord]:
        ...

    @abc.abstractmethod
    async def add_booking(self, record: BookingRecord) -> None:
        ...

    @abc.abstractmethod
    async def update_booking(self, record: BookingRecord) -> None:
        ...


class BookingStore(abc.ABC):
    @abc.abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[StoreTransaction]:
        """Commit on clean exit, roll back on any exception."""

    @abc.abstractmethod
    async def get_booking(self, booking_id: str) -> BookingRecord | None:
        ...

    @abc.abstractmethod
    async def find_bookings(
        self,
        *,
        date: str,
        facility_id: str | None = None,
        user_id: str | None = None,
        order_by_start: bool = True,
    ) -> list[BookingRecord]:
        """
        Equality-filtered query. With ``order_by_start`` the store must either
        order by start_at ascending or raise OrderingUnavailable.
        """

    @abc.abstractmethod
    async def get_amenity(self, amenity_id: str) -> Amenity | None:
        ...

    @abc.abstractmethod
    async def list_amenities(self) -> list[Amenity]:
        ...

    @abc.abstractmethod
    async def get_rules(self) -> BookingRules | None:
        ...

    @abc.abstractmethod
    async def seed(self, amenities: list[Amenity], rules: BookingRules) -> int:
        """Insert missing amenities (by name) and rules if absent; return amenities added."""
