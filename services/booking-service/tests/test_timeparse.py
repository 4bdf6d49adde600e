from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest
from dateutil import tz

from amenity_booking.timeparse import (
    TimeParseError,
    clock_to_minutes,
    local_date,
    parse_calendar_date,
    parse_clock,
    split_slot,
    to_clock,
    to_instant,
)

UTC = timezone.utc


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2:30 PM", "14:30"),
        ("12:00 AM", "00:00"),
        ("12:15 PM", "12:15"),
        ("11:59 pm", "23:59"),
        ("9:05", "09:05"),
        ("00:00", "00:00"),
        ("23:59", "23:59"),
        ("7:00AM", "07:00"),
    ],
)
def test_parse_clock_normalizes_to_24h(raw, expected):
    assert parse_clock(raw) == expected


def test_parse_clock_is_idempotent_on_canonical_output():
    once = parse_clock("2:30 PM")
    assert parse_clock(once) == once


@pytest.mark.parametrize("raw", ["24:00", "12:60", "noon", "9", "9:5", "", "13:00 PM extra"])
def test_parse_clock_rejects_malformed_values(raw):
    with pytest.raises(TimeParseError):
        parse_clock(raw)


def test_clock_to_minutes():
    assert clock_to_minutes("1:30 AM") == 90
    assert clock_to_minutes("14:00") == 840


def test_split_slot():
    assert split_slot("9:00 AM - 10:30 AM") == ("9:00 AM", "10:30 AM")
    assert split_slot("09:00-10:00") == ("09:00", "10:00")
    with pytest.raises(TimeParseError):
        split_slot("09:00")


def test_to_instant_from_iso_string_keeps_offset():
    dt = to_instant("2024-01-10T09:00:00Z", UTC)
    assert dt == datetime(2024, 1, 10, 9, 0, tzinfo=UTC)


def test_to_instant_naive_string_uses_reference_zone():
    zone = tz.gettz("Asia/Kolkata")
    dt = to_instant("2024-01-10T09:00:00", zone)
    assert dt.utcoffset().total_seconds() == 5.5 * 3600


def test_to_instant_from_epoch_milliseconds():
    assert to_instant(1704877200000, UTC) == datetime(2024, 1, 10, 9, 0, tzinfo=UTC)


def test_to_instant_from_seconds_nanoseconds_map():
    dt = to_instant({"seconds": 1704877200, "nanoseconds": 500_000_000}, UTC)
    assert dt == datetime(2024, 1, 10, 9, 0, 0, 500_000, tzinfo=UTC)


def test_to_instant_from_serialized_store_timestamp():
    dt = to_instant({"_seconds": 1704877200, "_nanoseconds": 0}, UTC)
    assert dt == datetime(2024, 1, 10, 9, 0, tzinfo=UTC)


def test_to_instant_from_timestamp_like_object():
    ts = SimpleNamespace(to_datetime=lambda: datetime(2024, 1, 10, 9, 0, tzinfo=UTC))
    assert to_instant(ts, UTC) == datetime(2024, 1, 10, 9, 0, tzinfo=UTC)


def test_to_instant_from_seconds_attribute_object():
    ts = SimpleNamespace(seconds=1704877200, nanos=0)
    assert to_instant(ts, UTC) == datetime(2024, 1, 10, 9, 0, tzinfo=UTC)


@pytest.mark.parametrize("raw", [None, True, "", "not a date", object()])
def test_to_instant_rejects_unsupported_values(raw):
    with pytest.raises(TimeParseError):
        to_instant(raw, UTC)


@pytest.mark.parametrize(
    "raw",
    [
        {"seconds": "abc"},
        {"seconds": None},
        {"seconds": 10**20},
        {"seconds": 1, "nanoseconds": "x"},
        {"_seconds": [1]},
        SimpleNamespace(seconds=float("inf")),
    ],
)
def test_to_instant_rejects_malformed_timestamp_maps(raw):
    with pytest.raises(TimeParseError):
        to_instant(raw, UTC)


def test_to_instant_wraps_failing_converter():
    class Broken:
        def to_datetime(self):
            raise RuntimeError("boom")

    with pytest.raises(TimeParseError):
        to_instant(Broken(), UTC)


def test_to_clock_renders_instant_in_zone():
    zone = tz.gettz("America/New_York")
    assert to_clock("2024-01-10T14:00:00Z", zone) == "09:00"
    assert to_clock("2:30 PM", zone) == "14:30"


def test_local_date_follows_reference_zone():
    zone = tz.gettz("Asia/Tokyo")
    assert local_date("2024-01-10T20:00:00Z", zone) == date(2024, 1, 11)


def test_parse_calendar_date_is_strict():
    assert parse_calendar_date("2024-01-10") == date(2024, 1, 10)
    for bad in ("2024-1-10", "2024-02-30", "10/01/2024", ""):
        with pytest.raises(TimeParseError):
            parse_calendar_date(bad)
