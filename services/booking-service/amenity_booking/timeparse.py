"""
Time normalization for booking payloads.

Clients send times in many shapes: ISO-8601 strings, 12h/24h clock strings,
timestamp objects from the document store, epoch milliseconds, or raw
``{seconds, nanoseconds}`` maps. Everything here converts those into either a
canonical ``HH:MM`` 24-hour string or an aware ``datetime``.
"""
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from numbers import Real

from dateutil import parser, tz

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?:\s*([AaPp][Mm]))?$")
_SLOT_RE = re.compile(r"^(.+?)\s*-\s*(.+)$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_CONVERTER_METHODS = ("to_datetime", "ToDatetime", "toDate")


class TimeParseError(ValueError):
    pass


def reference_tz(name: str) -> tzinfo:
    zone = tz.gettz(name)
    if zone is None:
        raise TimeParseError(f"Unknown timezone: {name}")
    return zone


def parse_clock(value: str) -> str:
    """
    Normalize ``H:MM`` / ``HH:MM`` with an optional AM/PM suffix to ``HH:MM``.

    12 AM becomes 00:MM, 12 PM stays 12:MM, other PM hours get +12.
    Out-of-range hours or minutes are rejected rather than wrapped.
    """
    if not isinstance(value, str):
        raise TimeParseError(f"Clock value must be a string, got {type(value).__name__}")

    m = _CLOCK_RE.match(value.strip())
    if not m:
        raise TimeParseError(f"Invalid clock time: {value!r}")

    hour = int(m.group(1))
    minute = int(m.group(2))
    meridiem = (m.group(3) or "").upper()

    if meridiem:
        if meridiem == "PM" and hour < 12:
            hour += 12
        elif meridiem == "AM" and hour == 12:
            hour = 0

    if hour > 23 or minute > 59:
        raise TimeParseError(f"Clock time out of range: {value!r}")

    return f"{hour:02d}:{minute:02d}"


def clock_to_minutes(value: str) -> int:
    hh, mm = parse_clock(value).split(":")
    return int(hh) * 60 + int(mm)


def split_slot(time_slot: str) -> tuple[str, str]:
    """Split ``"<start> - <end>"`` into its two raw halves."""
    m = _SLOT_RE.match((time_slot or "").strip())
    if not m:
        raise TimeParseError(f"Invalid time slot: {time_slot!r}")
    return m.group(1).strip(), m.group(2).strip()


def format_slot(start_hhmm: str, end_hhmm: str) -> str:
    return f"{start_hhmm} - {end_hhmm}"


def _from_epoch_seconds(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _as_int(raw, label: str) -> int:
    if isinstance(raw, bool):
        raise TimeParseError(f"Invalid {label}: {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError, OverflowError) as e:
        raise TimeParseError(f"Invalid {label}: {raw!r}") from e


def _seconds_nanos(value) -> tuple[int, int] | None:
    if isinstance(value, dict):
        for s_key, n_key in (("seconds", "nanoseconds"), ("_seconds", "_nanoseconds")):
            if s_key in value:
                return _as_int(value[s_key], "seconds"), _as_int(value.get(n_key) or 0, "nanoseconds")
        return None

    seconds = getattr(value, "seconds", None)
    if isinstance(seconds, Real) and not isinstance(seconds, bool):
        nanos = getattr(value, "nanoseconds", None)
        if nanos is None:
            nanos = getattr(value, "nanos", 0)
        return _as_int(seconds, "seconds"), _as_int(nanos or 0, "nanoseconds")
    return None


def to_instant(value, zone: tzinfo) -> datetime:
    """
    Convert any supported representation to an aware datetime.

    Naive values are interpreted in ``zone``.
    """
    if value is None or isinstance(value, bool):
        raise TimeParseError(f"Unsupported time value: {value!r}")

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time(0, 0))
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            raise TimeParseError("Empty time value")
        try:
            dt = parser.isoparse(raw)
        except (ValueError, OverflowError) as e:
            raise TimeParseError(f"Invalid ISO-8601 value: {value!r}") from e
    elif isinstance(value, Real):
        try:
            dt = _from_epoch_seconds(float(value) / 1000.0)
        except (ValueError, OverflowError, OSError) as e:
            raise TimeParseError(f"Invalid epoch milliseconds: {value!r}") from e
    else:
        dt = None
        for name in _CONVERTER_METHODS:
            method = getattr(value, name, None)
            if callable(method):
                try:
                    converted = method()
                except Exception as e:
                    raise TimeParseError(f"{name}() failed: {e}") from e
                if not isinstance(converted, datetime):
                    raise TimeParseError(f"{name}() did not return a datetime")
                dt = converted
                break

        if dt is None:
            parts = _seconds_nanos(value)
            if parts is None:
                raise TimeParseError(f"Unsupported time value: {value!r}")
            seconds, nanos = parts
            try:
                dt = _from_epoch_seconds(seconds) + timedelta(microseconds=nanos // 1000)
            except (ValueError, OverflowError, OSError) as e:
                raise TimeParseError(f"Timestamp out of range: {value!r}") from e

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=zone)
    return dt


def _in_zone(dt: datetime, zone: tzinfo) -> datetime:
    try:
        return dt.astimezone(zone)
    except (ValueError, OverflowError) as e:
        raise TimeParseError(f"Instant cannot be shown in the reference timezone: {dt!r}") from e


def to_clock(value, zone: tzinfo) -> str:
    """Return ``HH:MM`` for a clock string or for any instant, rendered in ``zone``."""
    if isinstance(value, str) and _CLOCK_RE.match(value.strip()):
        return parse_clock(value)
    return _in_zone(to_instant(value, zone), zone).strftime("%H:%M")


def local_date(value, zone: tzinfo) -> date:
    return _in_zone(to_instant(value, zone), zone).date()


def parse_calendar_date(value: str) -> date:
    """Strict ``YYYY-MM-DD``."""
    raw = (value or "").strip()
    if not _DATE_RE.match(raw):
        raise TimeParseError(f"Invalid date (expected YYYY-MM-DD): {value!r}")
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError as e:
        raise TimeParseError(f"Invalid date (expected YYYY-MM-DD): {value!r}") from e


def at_clock(day: date, hhmm: str, zone: tzinfo) -> datetime:
    hh, mm = parse_clock(hhmm).split(":")
    return datetime.combine(day, time(int(hh), int(mm)), tzinfo=zone)
