"""
Async SQLAlchemy engine and session factory.

Uses ``asyncpg`` as the PostgreSQL driver for non-blocking I/O.  Pool sizing
comes from settings (``DB_POOL_SIZE``, ``DB_MAX_OVERFLOW``,
``DB_POOL_RECYCLE_SECONDS``); ``pool_pre_ping`` drops connections the
server closed while idle.

Sessions keep attributes after commit (``expire_on_commit=False``) so the
API can serialise rides it just wrote without another round trip.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from rideflow.config import settings


def build_engine(url: str = settings.database_url) -> AsyncEngine:
    return create_async_engine(
        url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle_seconds,
        pool_pre_ping=True,
    )


engine = build_engine()

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Shared declarative base for the users, vehicles and rides tables."""
