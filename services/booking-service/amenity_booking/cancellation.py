import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from .admission import run_with_retry
from .domain import BookingRecord, BookingRules, BookingStatus, Caller
from .errors import AlreadyCancelled, DeadlinePassed, Forbidden, NotFound
from .queries import QueryService
from .store import BookingStore, StoreTransaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CancellationResult:
    record: BookingRecord
    promoted: BookingRecord | None = None


class CancellationAuthority:
    def __init__(
        self,
        store: BookingStore,
        queries: QueryService,
        *,
        clock: Callable[[], datetime],
        max_attempts: int = 3,
        backoff_seconds: float = 0.05,
    ):
        self.store = store
        self.queries = queries
        self.clock = clock
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds

    def _check_deadline(self, record: BookingRecord, caller: Caller, rules: BookingRules):
        if caller.is_admin or record.status != BookingStatus.CONFIRMED:
            return
        deadline = timedelta(hours=rules.cancellation_deadline_hours)
        if record.start_at - self.clock() < deadline:
            raise DeadlinePassed(
                f"Bookings can only be cancelled at least "
                f"{rules.cancellation_deadline_hours} hours before they start"
            )

    async def _promote_next(self, tx: StoreTransaction, freed: BookingRecord) -> BookingRecord | None:
        queued = list(freed.waitlist)
        if not queued:
            return None

        waiting = await tx.bookings_for_slot(freed.facility_id, freed.date, (BookingStatus.WAITLIST,))
        by_user = {r.user_id: r for r in waiting if r.time_slot == freed.time_slot}

        while queued:
            entry = queued.pop(0)
            candidate = by_user.get(entry.user_id)
            if candidate is None:
                logger.warning("Dropping waitlist entry for %s on booking %s: no waitlist record", entry.user_id, freed.id)
                continue
            promoted = candidate.copy(status=BookingStatus.CONFIRMED, waitlist=queued)
            await tx.update_booking(promoted)
            return promoted
        return None

    async def _leave_waitlist(self, tx: StoreTransaction, record: BookingRecord):
        confirmed = await tx.bookings_for_slot(record.facility_id, record.date, (BookingStatus.CONFIRMED,))
        for holder in confirmed:
            if holder.time_slot != record.time_slot:
                continue
            remaining = [e for e in holder.waitlist if e.user_id != record.user_id]
            if len(remaining) != len(holder.waitlist):
                await tx.update_booking(holder.copy(waitlist=remaining))

    async def _cancel_once(self, tx: StoreTransaction, booking_id: str, caller: Caller, rules: BookingRules) -> CancellationResult:
        record = await tx.get_booking(booking_id)
        if record is None:
            raise NotFound("Booking not found")
        if record.status == BookingStatus.CANCELLED:
            raise AlreadyCancelled("Booking is already cancelled")
        self._check_deadline(record, caller, rules)

        cancelled = record.copy(status=BookingStatus.CANCELLED, waitlist=[])
        await tx.update_booking(cancelled)

        promoted = None
        if record.status == BookingStatus.CONFIRMED:
            promoted = await self._promote_next(tx, record)
        elif record.status == BookingStatus.WAITLIST:
            await self._leave_waitlist(tx, record)

        return CancellationResult(record=cancelled, promoted=promoted)

    async def cancel(self, booking_id: str, caller: Caller, rules: BookingRules) -> CancellationResult:
        if not booking_id:
            raise NotFound("Booking not found")

        target = await self.queries.get_booking(booking_id)
        if target is None:
            raise NotFound("Booking not found")
        if target.user_id != caller.user_id and not caller.is_admin:
            raise Forbidden("You can only cancel your own bookings")

        async def attempt():
            async with self.store.transaction() as tx:
                result = await self._cancel_once(tx, booking_id, caller, rules)
            return result

        result = await run_with_retry(
            attempt,
            name="cancellation",
            max_attempts=self.max_attempts,
            backoff_seconds=self.backoff_seconds,
        )

        logger.info("Booking %s cancelled by %s (admin=%s)", booking_id, caller.user_id, caller.is_admin)
        if result.promoted:
            logger.info("Booking %s promoted from waitlist for %s", result.promoted.id, result.promoted.user_id)
        return result
