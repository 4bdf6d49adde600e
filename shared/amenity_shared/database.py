from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def get_engine(database_url: str, **kwargs):
    if database_url.startswith("postgresql"):
        # admission and cancellation rely on serialization failures to detect races
        kwargs.setdefault("isolation_level", "SERIALIZABLE")
    return create_async_engine(database_url, echo=False, future=True, **kwargs)


def get_session(engine):
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False
    )
