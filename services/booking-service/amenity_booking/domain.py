from dataclasses import dataclass, field, replace
from datetime import date, datetime

from . import config


class BookingStatus:
    CONFIRMED = "confirmed"
    WAITLIST = "waitlist"
    CANCELLED = "cancelled"


ROLE_ADMIN = "admin"
ROLE_RESIDENT = "resident"


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: str = ROLE_RESIDENT
    email: str = ""
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass(frozen=True)
class Amenity:
    id: str
    name: str
    description: str = ""
    max_capacity: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class BookingRules:
    max_per_family: int
    max_advance_booking_days: int
    min_booking_duration: int  # minutes
    max_booking_duration: int  # minutes
    cancellation_deadline_hours: int

    @classmethod
    def defaults(cls) -> "BookingRules":
        return cls(
            max_per_family=config.MAX_PER_FAMILY,
            max_advance_booking_days=config.MAX_BOOKING_DAYS_AHEAD,
            min_booking_duration=config.MIN_BOOKING_MINUTES,
            max_booking_duration=config.MAX_BOOKING_MINUTES,
            cancellation_deadline_hours=config.CANCELLATION_DEADLINE_HOURS,
        )


@dataclass(frozen=True)
class BookingRequest:
    """Caller-supplied booking fields; absent values are empty strings."""

    facility_id: str = ""
    facility_name: str = ""
    date: str = ""
    time_slot: str = ""


@dataclass(frozen=True)
class TimeRange:
    start_minute: int
    end_minute: int

    @property
    def duration(self) -> int:
        return self.end_minute - self.start_minute

    def overlaps(self, other: "TimeRange") -> bool:
        return self.start_minute < other.end_minute and self.end_minute > other.start_minute


@dataclass(frozen=True)
class ValidatedBooking:
    facility_id: str
    facility_name: str
    date: date
    time_slot: str  # canonical "HH:MM - HH:MM"
    time_range: TimeRange
    start_at: datetime
    end_at: datetime

    @property
    def date_key(self) -> str:
        return self.date.isoformat()


@dataclass(frozen=True)
class WaitlistEntry:
    user_id: str
    user_name: str = ""

    def to_dict(self) -> dict:
        return {"userId": self.user_id, "userName": self.user_name}

    @classmethod
    def from_dict(cls, data: dict) -> "WaitlistEntry":
        return cls(user_id=str(data.get("userId") or ""), user_name=str(data.get("userName") or ""))


@dataclass
class BookingRecord:
    id: str
    facility_id: str
    facility_name: str
    date: str
    time_slot: str
    start_at: datetime
    end_at: datetime
    status: str
    user_id: str
    user_email: str = ""
    user_name: str = ""
    waitlist: list[WaitlistEntry] = field(default_factory=list)
    created_at: datetime | None = None

    def overlaps(self, start_at: datetime, end_at: datetime) -> bool:
        return self.start_at < end_at and self.end_at > start_at

    def copy(self, **changes) -> "BookingRecord":
        changes.setdefault("waitlist", list(self.waitlist))
        return replace(self, **changes)
