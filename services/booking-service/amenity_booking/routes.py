from fastapi import APIRouter, Depends, Query, Request
from starlette.formparsers import MultiPartException

from .coercion import first_string
from .domain import Caller
from .errors import MissingFields
from .publisher import publish_booking_event
from .rbac import require_admin
from .schemas import (
    AmenityResponse,
    BookingResponse,
    BookingRulesResponse,
    CancelBookingResponse,
    CreateBookingResponse,
    InitResponse,
)
from .security import get_current_caller
from .services import BookingEngine

router = APIRouter()

BOOKING_ID_KEYS = ("bookingId", "booking_id", "id")


def get_booking_engine(request: Request) -> BookingEngine:
    return request.app.state.booking_engine


async def read_payload(request: Request) -> dict | None:
    """JSON or form body; anything unreadable becomes None."""
    ct = (request.headers.get("content-type") or "").lower()
    if "form" in ct:
        try:
            form = await request.form()
        except (MultiPartException, ValueError):
            return None
        return dict(form)

    body = await request.body()
    if not body.strip():
        return None
    try:
        # clients sometimes omit the content type, so JSON is the fallback
        return await request.json()
    except ValueError:
        return None


def _flag(raw: str | None, default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


@router.post("/bookings", response_model=CreateBookingResponse)
async def create_booking(
    request: Request,
    caller: Caller = Depends(get_current_caller),
    engine: BookingEngine = Depends(get_booking_engine),
):
    payload = await read_payload(request)
    result = await engine.create_booking(payload, caller)

    event_type = "booking.waitlisted" if result.waitlisted else "booking.confirmed"
    await publish_booking_event(event_type, result.record)

    return CreateBookingResponse(
        booking=BookingResponse.from_record(result.record),
        waitlisted=result.waitlisted,
    )


@router.get("/bookings", response_model=list[BookingResponse])
async def list_bookings(
    date: str | None = Query(default=None),
    facility_id: str | None = Query(default=None, alias="facilityId"),
    facility: str | None = Query(default=None),
    mine: str | None = Query(default=None),
    caller: Caller = Depends(get_current_caller),
    engine: BookingEngine = Depends(get_booking_engine),
):
    records = await engine.query_bookings(
        date,
        caller,
        facility_id=facility_id or facility,
        mine_only=_flag(mine, True),
    )
    return [BookingResponse.from_record(r) for r in records]


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    caller: Caller = Depends(get_current_caller),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return BookingResponse.from_record(await engine.get_booking(booking_id, caller))


async def _cancel(booking_id: str, caller: Caller, engine: BookingEngine) -> CancelBookingResponse:
    result = await engine.cancel_booking(booking_id, caller)

    await publish_booking_event("booking.cancelled", result.record)
    if result.promoted:
        await publish_booking_event("booking.promoted", result.promoted)

    return CancelBookingResponse(
        message="Booking cancelled",
        booking=BookingResponse.from_record(result.record),
        promoted=BookingResponse.from_record(result.promoted) if result.promoted else None,
    )


@router.post("/bookings/cancel", response_model=CancelBookingResponse)
async def cancel_booking_by_body(
    request: Request,
    caller: Caller = Depends(get_current_caller),
    engine: BookingEngine = Depends(get_booking_engine),
):
    booking_id = first_string(await read_payload(request), BOOKING_ID_KEYS)
    if not booking_id:
        raise MissingFields(["bookingId"])
    return await _cancel(booking_id, caller, engine)


@router.post("/bookings/{booking_id}/cancel", response_model=CancelBookingResponse)
async def cancel_booking(
    booking_id: str,
    caller: Caller = Depends(get_current_caller),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return await _cancel(booking_id, caller, engine)


@router.get("/amenities", response_model=list[AmenityResponse])
async def list_amenities(
    caller: Caller = Depends(get_current_caller),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return [AmenityResponse.from_amenity(a) for a in await engine.list_amenities()]


@router.get("/rules", response_model=BookingRulesResponse)
async def get_rules(
    caller: Caller = Depends(get_current_caller),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return BookingRulesResponse.from_rules(await engine.rules())


@router.post("/init", response_model=InitResponse)
async def initialize(
    caller: Caller = Depends(get_current_caller),
    engine: BookingEngine = Depends(get_booking_engine),
):
    require_admin(caller)
    added = await engine.initialize()
    return InitResponse(message="Database initialized successfully", amenities_added=added)
