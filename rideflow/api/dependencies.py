"""FastAPI dependency injection helpers."""

from typing import Optional

import redis.asyncio as aioredis
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from rideflow.config import settings
from rideflow.domain.entities import Actor
from rideflow.domain.enums import Role
from rideflow.infrastructure.database import async_session_factory
from rideflow.infrastructure.notifications import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    RedisNotificationDispatcher,
)
from rideflow.infrastructure.redis_client import get_redis
from rideflow.infrastructure.repositories import UserRepository
from rideflow.services.fleet import FleetService
from rideflow.services.reports import ReportService
from rideflow.services.users import UserService
from rideflow.services.workflow import RideWorkflow


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_actor(
    x_user_id: Optional[int] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """Resolve the caller from ``X-User-Id``; the role comes from the DB row."""
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header"
        )
    user = await UserRepository(db).get_by_id(x_user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user"
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="User is deactivated"
        )
    return Actor(user_id=user.id, role=Role(user.role))


async def get_notifier() -> NotificationDispatcher:
    if settings.notifier_backend == "redis":
        return RedisNotificationDispatcher(await get_redis())
    return LoggingNotificationDispatcher()


async def get_workflow(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> RideWorkflow:
    return RideWorkflow(db, notifier=notifier)


async def get_fleet(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> FleetService:
    return FleetService(db, redis=redis)


async def get_users(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


async def get_reports(db: AsyncSession = Depends(get_db)) -> ReportService:
    return ReportService(db)
