from fastapi import Request, status
from fastapi.responses import JSONResponse

CATEGORY_AUTH = "auth"
CATEGORY_INPUT = "input"
CATEGORY_CONFLICT = "conflict"
CATEGORY_TRANSIENT = "transient"


class BookingError(Exception):
    code = "BookingError"
    category = CATEGORY_INPUT
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields or [])

    def to_detail(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category,
            "fields": self.fields,
        }


# ---- auth ----

class Unauthorized(BookingError):
    code = "Unauthorized"
    category = CATEGORY_AUTH
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(BookingError):
    code = "Forbidden"
    category = CATEGORY_AUTH
    status_code = status.HTTP_403_FORBIDDEN


# ---- input ----

class MissingFields(BookingError):
    code = "MissingFields"

    def __init__(self, fields: list[str]):
        super().__init__(f"Missing required fields: {', '.join(fields)}", fields)


class MissingDate(BookingError):
    code = "MissingDate"

    def __init__(self):
        super().__init__("Missing date", ["date"])


class InvalidDate(BookingError):
    code = "InvalidDate"


class DateOutOfWindow(BookingError):
    code = "DateOutOfWindow"


class InvalidTimeRange(BookingError):
    code = "InvalidTimeRange"


class DurationOutOfPolicy(BookingError):
    code = "DurationOutOfPolicy"


class NotFound(BookingError):
    code = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


# ---- conflict ----

class SlotConflict(BookingError):
    code = "SlotConflict"
    category = CATEGORY_CONFLICT
    status_code = status.HTTP_409_CONFLICT


class AlreadyCancelled(BookingError):
    code = "AlreadyCancelled"
    category = CATEGORY_CONFLICT
    status_code = status.HTTP_409_CONFLICT


class DeadlinePassed(BookingError):
    code = "DeadlinePassed"
    category = CATEGORY_CONFLICT
    status_code = status.HTTP_409_CONFLICT


# ---- transient ----

class TransientStoreFailure(BookingError):
    code = "TransientStoreFailure"
    category = CATEGORY_TRANSIENT
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retry_after_seconds = 1


async def booking_error_handler(request: Request, exc: BookingError):
    headers = {}
    if isinstance(exc, TransientStoreFailure):
        headers["Retry-After"] = str(exc.retry_after_seconds)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.to_detail()},
        headers=headers or None,
    )
