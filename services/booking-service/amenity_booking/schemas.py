from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .domain import Amenity, BookingRecord, BookingRules


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WaitlistEntryResponse(CamelModel):
    user_id: str
    user_name: str = ""


class BookingResponse(CamelModel):
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
    waitlist: list[WaitlistEntryResponse] = []
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: BookingRecord) -> "BookingResponse":
        return cls(
            id=record.id,
            facility_id=record.facility_id,
            facility_name=record.facility_name,
            date=record.date,
            time_slot=record.time_slot,
            start_at=record.start_at,
            end_at=record.end_at,
            status=record.status,
            user_id=record.user_id,
            user_email=record.user_email,
            user_name=record.user_name,
            waitlist=[WaitlistEntryResponse(user_id=e.user_id, user_name=e.user_name) for e in record.waitlist],
            created_at=record.created_at,
        )


class CreateBookingResponse(CamelModel):
    booking: BookingResponse
    waitlisted: bool = False


class CancelBookingResponse(CamelModel):
    message: str
    booking: BookingResponse
    promoted: BookingResponse | None = None


class AmenityResponse(CamelModel):
    id: str
    name: str
    description: str
    max_capacity: int
    is_active: bool

    @classmethod
    def from_amenity(cls, amenity: Amenity) -> "AmenityResponse":
        return cls(
            id=amenity.id,
            name=amenity.name,
            description=amenity.description,
            max_capacity=amenity.max_capacity,
            is_active=amenity.is_active,
        )


class BookingRulesResponse(CamelModel):
    max_per_family: int
    max_advance_booking_days: int
    min_booking_duration: int
    max_booking_duration: int
    cancellation_deadline_hours: int

    @classmethod
    def from_rules(cls, rules: BookingRules) -> "BookingRulesResponse":
        return cls(
            max_per_family=rules.max_per_family,
            max_advance_booking_days=rules.max_advance_booking_days,
            min_booking_duration=rules.min_booking_duration,
            max_booking_duration=rules.max_booking_duration,
            cancellation_deadline_hours=rules.cancellation_deadline_hours,
        )


class InitResponse(CamelModel):
    message: str
    amenities_added: int
