from amenity_shared.database import Base, get_engine, get_session

from .config import DATABASE_URL

__all__ = ["Base", "create_engine_and_sessionmaker"]


def create_engine_and_sessionmaker(database_url: str | None = None, **engine_kwargs):
    url = database_url or DATABASE_URL
    if not url:
        raise RuntimeError("BOOKING_DB environment variable is not set")

    engine = get_engine(url, **engine_kwargs)
    return engine, get_session(engine)
