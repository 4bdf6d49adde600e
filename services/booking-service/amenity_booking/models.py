from sqlalchemy import Boolean, Column, DateTime, Index, Integer, JSON, String, text

from .db import Base


class Amenity(Base):
    __tablename__ = "amenities"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(String, nullable=False, default="")
    max_capacity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class BookingRulesRow(Base):
    __tablename__ = "booking_rules"

    id = Column(String, primary_key=True)  # singleton, always RULES_ID
    max_per_family = Column(Integer, nullable=False)
    max_advance_booking_days = Column(Integer, nullable=False)
    min_booking_duration = Column(Integer, nullable=False)
    max_booking_duration = Column(Integer, nullable=False)
    cancellation_deadline_hours = Column(Integer, nullable=False)


RULES_ID = "bookingLimits"

# at most one confirmed booking per exact slot
SLOT_INDEX = "uq_bookings_confirmed_slot"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    booking_id = Column(String, unique=True, nullable=False, index=True)

    facility_id = Column(String, nullable=False)
    facility_name = Column(String, nullable=False, default="")
    date = Column(String(10), nullable=False)  # YYYY-MM-DD, local calendar
    time_slot = Column(String, nullable=False)  # "HH:MM - HH:MM"

    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)

    status = Column(String, nullable=False, index=True)  # confirmed/waitlist/cancelled

    user_id = Column(String, nullable=False, index=True)
    user_email = Column(String, nullable=False, default="")
    user_name = Column(String, nullable=False, default="")

    waitlist = Column(JSON, nullable=False, default=list)  # [{"userId", "userName"}, ...]
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_bookings_date_facility", "date", "facility_id"),
        Index("ix_bookings_date_user", "date", "user_id"),
        Index(
            SLOT_INDEX,
            "facility_id",
            "date",
            "time_slot",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
    )
