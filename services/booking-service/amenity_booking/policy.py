from datetime import datetime, timedelta, tzinfo

from .domain import BookingRequest, BookingRules, TimeRange, ValidatedBooking
from .errors import DateOutOfWindow, DurationOutOfPolicy, InvalidDate, InvalidTimeRange, MissingFields
from .timeparse import (
    TimeParseError,
    at_clock,
    clock_to_minutes,
    format_slot,
    parse_calendar_date,
    parse_clock,
    split_slot,
)


def validate_booking_request(
    req: BookingRequest,
    rules: BookingRules,
    now: datetime,
    zone: tzinfo,
) -> ValidatedBooking:
    """
    Check a coerced request against the booking rules.

    Checks run in a fixed order and the first failure is raised, except that
    every missing field is reported together.
    """
    missing = []
    if not req.facility_id:
        missing.append("facilityId")
    if not req.date:
        missing.append("date")
    if not req.time_slot:
        missing.append("timeSlot")
    if missing:
        raise MissingFields(missing)

    try:
        day = parse_calendar_date(req.date)
    except TimeParseError:
        raise InvalidDate("Invalid date format (expected YYYY-MM-DD)", ["date"])

    today = now.astimezone(zone).date()
    last_day = today + timedelta(days=rules.max_advance_booking_days)
    if day < today or day > last_day:
        raise DateOutOfWindow(
            f"Date must be between {today.isoformat()} and {last_day.isoformat()} "
            f"(within {rules.max_advance_booking_days} days)",
            ["date"],
        )

    try:
        start_raw, end_raw = split_slot(req.time_slot)
        start_hhmm = parse_clock(start_raw)
        end_hhmm = parse_clock(end_raw)
    except TimeParseError:
        raise InvalidTimeRange("Invalid time range (expected 'HH:MM - HH:MM')", ["timeSlot"])

    time_range = TimeRange(clock_to_minutes(start_hhmm), clock_to_minutes(end_hhmm))
    # slots never cross midnight
    if time_range.end_minute <= time_range.start_minute:
        raise InvalidTimeRange("End time must be after start time", ["timeSlot"])

    duration = time_range.duration
    if duration < rules.min_booking_duration or duration > rules.max_booking_duration:
        raise DurationOutOfPolicy(
            f"Booking must last between {rules.min_booking_duration} and "
            f"{rules.max_booking_duration} minutes, got {duration}",
            ["timeSlot"],
        )

    return ValidatedBooking(
        facility_id=req.facility_id,
        facility_name=req.facility_name,
        date=day,
        time_slot=format_slot(start_hhmm, end_hhmm),
        time_range=time_range,
        start_at=at_clock(day, start_hhmm, zone),
        end_at=at_clock(day, end_hhmm, zone),
    )
