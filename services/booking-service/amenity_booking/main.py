import logging

from fastapi import FastAPI

from . import config
from .db import create_engine_and_sessionmaker
from .errors import BookingError, booking_error_handler
from .logs import setup_logging
from .middleware import RequestLoggingMiddleware
from .publisher import publisher
from .routes import router
from .services import BookingEngine
from .sql_store import SqlBookingStore

logger = logging.getLogger(__name__)


def create_app(booking_engine: BookingEngine | None = None) -> FastAPI:
    app = FastAPI(title="Amenity Booking Service")
    app.include_router(router)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(BookingError, booking_error_handler)

    app.state.booking_engine = booking_engine
    app.state.db_engine = None

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "service": config.SERVICE_NAME,
            "events_enabled": publisher.enabled,
        }

    @app.on_event("startup")
    async def startup():
        setup_logging()
        if app.state.booking_engine is None:
            db_engine, sessionmaker = create_engine_and_sessionmaker()
            app.state.db_engine = db_engine
            app.state.booking_engine = BookingEngine(SqlBookingStore(sessionmaker))

        # never crash the service if RabbitMQ is temporarily unavailable
        try:
            await publisher.connect()
        except Exception as e:
            logger.warning("RabbitMQ connect failed at startup; continuing without events: %s", e)

    @app.on_event("shutdown")
    async def shutdown():
        await publisher.close()
        if app.state.db_engine is not None:
            await app.state.db_engine.dispose()

    return app


app = create_app()
