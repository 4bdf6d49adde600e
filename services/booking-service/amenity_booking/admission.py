import asyncio
import logging
import random
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .domain import BookingRecord, BookingStatus, Caller, ValidatedBooking, WaitlistEntry
from .errors import SlotConflict, TransientStoreFailure
from .store import BookingStore, StoreTransaction, StoreUnavailable, TransactionConflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdmissionResult:
    record: BookingRecord
    waitlisted: bool = False


async def run_with_retry(
    operation,
    *,
    name: str,
    max_attempts: int,
    backoff_seconds: float,
):
    """
    Run ``operation()`` (one full store transaction) with bounded retries.

    Only TransactionConflict and StoreUnavailable are retried; business errors
    raised inside the transaction propagate on the first attempt.
    """
    attempts = max(1, max_attempts)
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except (TransactionConflict, StoreUnavailable) as e:
            last_error = e
            logger.warning("%s attempt %d/%d failed: %s", name, attempt, attempts, e)
            if attempt < attempts and backoff_seconds > 0:
                # jitter spreads out contenders for the same slot
                await asyncio.sleep(backoff_seconds * attempt * random.uniform(0.5, 1.5))

    raise TransientStoreFailure(
        f"{name} could not complete after {attempts} attempts, please retry"
    ) from last_error


class AdmissionController:
    def __init__(
        self,
        store: BookingStore,
        *,
        clock: Callable[[], datetime],
        waitlist_enabled: bool = False,
        max_attempts: int = 3,
        backoff_seconds: float = 0.05,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.store = store
        self.clock = clock
        self.waitlist_enabled = waitlist_enabled
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.id_factory = id_factory

    def _new_record(self, booking: ValidatedBooking, caller: Caller, status: str) -> BookingRecord:
        return BookingRecord(
            id=self.id_factory(),
            facility_id=booking.facility_id,
            facility_name=booking.facility_name,
            date=booking.date_key,
            time_slot=booking.time_slot,
            start_at=booking.start_at,
            end_at=booking.end_at,
            status=status,
            user_id=caller.user_id,
            user_email=caller.email,
            user_name=caller.name,
            waitlist=[],
            created_at=self.clock(),
        )

    async def _admit_once(self, tx: StoreTransaction, booking: ValidatedBooking, caller: Caller) -> AdmissionResult:
        existing = await tx.bookings_for_slot(
            booking.facility_id,
            booking.date_key,
            (BookingStatus.CONFIRMED, BookingStatus.WAITLIST),
        )
        blocking = [
            r for r in existing
            if r.status == BookingStatus.CONFIRMED and r.overlaps(booking.start_at, booking.end_at)
        ]

        if not blocking:
            record = self._new_record(booking, caller, BookingStatus.CONFIRMED)
            await tx.add_booking(record)
            return AdmissionResult(record=record)

        holder = blocking[0]
        exact = len(blocking) == 1 and holder.time_slot == booking.time_slot
        if not (self.waitlist_enabled and exact):
            raise SlotConflict(
                f"Time slot {booking.time_slot} on {booking.date_key} is already booked",
                ["timeSlot"],
            )

        queued = {e.user_id for e in holder.waitlist}
        if holder.user_id == caller.user_id or caller.user_id in queued:
            raise SlotConflict(
                f"You already hold or are waiting for {booking.time_slot} on {booking.date_key}",
                ["timeSlot"],
            )

        record = self._new_record(booking, caller, BookingStatus.WAITLIST)
        await tx.add_booking(record)
        await tx.update_booking(
            holder.copy(waitlist=holder.waitlist + [WaitlistEntry(caller.user_id, caller.name)])
        )
        return AdmissionResult(record=record, waitlisted=True)

    async def admit(self, booking: ValidatedBooking, caller: Caller) -> AdmissionResult:
        """
        Atomically reserve the slot for ``caller``.

        The conflict check and the insert share one store transaction; a
        concurrent commit makes the transaction fail and it is retried against
        fresh state, so the loser of a race sees the winner's booking and
        gets SlotConflict.
        """

        async def attempt():
            async with self.store.transaction() as tx:
                result = await self._admit_once(tx, booking, caller)
            return result

        result = await run_with_retry(
            attempt,
            name="admission",
            max_attempts=self.max_attempts,
            backoff_seconds=self.backoff_seconds,
        )

        logger.info(
            "Booking %s %s: facility=%s date=%s slot=%s user=%s",
            result.record.id,
            "waitlisted" if result.waitlisted else "confirmed",
            booking.facility_id,
            booking.date_key,
            booking.time_slot,
            caller.user_id,
        )
        return result
