from amenity_shared.events import build_event, to_json
from amenity_shared.rabbitmq import RabbitPublisher

from .config import RABBIT_URL, SERVICE_NAME
from .domain import BookingRecord

publisher = RabbitPublisher(RABBIT_URL, SERVICE_NAME)


def booking_event_data(record: BookingRecord) -> dict:
    return {
        "booking_id": record.id,
        "facility_id": record.facility_id,
        "date": record.date,
        "time_slot": record.time_slot,
        "start_at": record.start_at.isoformat(),
        "end_at": record.end_at.isoformat(),
        "status": record.status,
        "user_id": record.user_id,
    }


async def publish_booking_event(event_type: str, record: BookingRecord, pub: RabbitPublisher | None = None):
    event = build_event(event_type, booking_event_data(record))
    await (pub or publisher).publish(event_type, to_json(event))
