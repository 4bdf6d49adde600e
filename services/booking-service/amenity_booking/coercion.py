from collections.abc import Mapping
from datetime import date, datetime, tzinfo
from numbers import Real

from .domain import BookingRequest
from .timeparse import TimeParseError, format_slot, local_date, to_clock

# Accepted field names per logical field, in priority order
FACILITY_KEYS = ("facility", "facilityId", "amenityId", "room", "resource", "id")
FACILITY_NAME_KEYS = ("facilityName", "amenityName", "facilityLabel", "name", "title")
DATE_KEYS = ("date", "bookingDate", "selectedDate")
TIME_SLOT_KEYS = ("timeSlot", "slot", "selectedSlot")
START_KEYS = ("startTime", "start", "startISO")
END_KEYS = ("endTime", "end", "endISO")


def _as_text(value) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Real):
        return str(value).strip()
    return ""


def _is_time_like(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (Real, datetime, date)):
        return True
    if isinstance(value, Mapping):
        return "seconds" in value or "_seconds" in value
    return any(callable(getattr(value, m, None)) for m in ("to_datetime", "ToDatetime", "toDate"))


def _lookup(source: Mapping, keys, accept):
    for key in keys:
        if key in source and accept(source[key]):
            return source[key]
    return None


def first_value(source, keys, accept):
    """
    Find the first accepted value for any of ``keys``.

    Top-level keys are tried in priority order, then each nested mapping
    (one level deep, in insertion order) is searched the same way.
    """
    if not isinstance(source, Mapping):
        return None

    found = _lookup(source, keys, accept)
    if found is not None:
        return found

    for value in source.values():
        if isinstance(value, Mapping):
            found = _lookup(value, keys, accept)
            if found is not None:
                return found
    return None


def first_string(source, keys) -> str:
    found = first_value(source, keys, lambda v: bool(_as_text(v)))
    return _as_text(found) if found is not None else ""


def coerce_booking_request(payload, zone: tzinfo) -> BookingRequest:
    """
    Build a BookingRequest from a loosely shaped payload.

    Never raises: anything that cannot be resolved is left as an empty
    string for the policy validator to report.
    """
    if not isinstance(payload, Mapping):
        return BookingRequest()

    facility_id = first_string(payload, FACILITY_KEYS)
    facility_name = first_string(payload, FACILITY_NAME_KEYS)
    booking_date = first_string(payload, DATE_KEYS)
    time_slot = first_string(payload, TIME_SLOT_KEYS)

    start = first_value(payload, START_KEYS, _is_time_like)
    end = first_value(payload, END_KEYS, _is_time_like)

    if not booking_date and start is not None:
        try:
            booking_date = local_date(start, zone).isoformat()
        except TimeParseError:
            booking_date = ""

    if not time_slot and start is not None and end is not None:
        try:
            time_slot = format_slot(to_clock(start, zone), to_clock(end, zone))
        except TimeParseError:
            time_slot = ""

    return BookingRequest(
        facility_id=facility_id,
        facility_name=facility_name,
        date=booking_date,
        time_slot=time_slot,
    )
