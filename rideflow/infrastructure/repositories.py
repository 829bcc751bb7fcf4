"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  ``*_for_update`` variants take a row lock
(``SELECT ... FOR UPDATE``) and refresh any instance already held by the
session, so the caller validates against the latest committed row.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import RideModel, UserModel, VehicleModel
from rideflow.domain.enums import (
    AWAITING_APPROVAL_STATUSES,
    BOOKED_STATUSES,
    TERMINAL_STATUSES,
    RideStatus,
    Role,
    VehicleStatus,
)


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: RideModel) -> RideModel:
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def get_by_id(self, ride_id: int) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def get_for_update(self, ride_id: int) -> Optional[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.id == ride_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_status(self, ride_id: int) -> Optional[RideStatus]:
        return await self.session.scalar(
            select(RideModel.status).where(RideModel.id == ride_id)
        )

    async def get_by_idempotency_key(self, key: str) -> Optional[RideModel]:
        result = await self.session.execute(
            select(RideModel).where(RideModel.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def list_by_status(
        self, statuses: Iterable[RideStatus]
    ) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.status.in_(list(statuses)))
            .order_by(RideModel.scheduled_date, RideModel.scheduled_time, RideModel.id)
        )
        return list(result.scalars().all())

    async def list_for_requester(
        self, requester_id: int, statuses: Optional[Iterable[RideStatus]] = None
    ) -> list[RideModel]:
        query = select(RideModel).where(RideModel.requester_id == requester_id)
        if statuses is not None:
            query = query.where(RideModel.status.in_(list(statuses)))
        result = await self.session.execute(
            query.order_by(RideModel.created_at.desc(), RideModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_for_driver(
        self, driver_id: int, statuses: Optional[Iterable[RideStatus]] = None
    ) -> list[RideModel]:
        query = select(RideModel).where(RideModel.assigned_driver_id == driver_id)
        if statuses is not None:
            query = query.where(RideModel.status.in_(list(statuses)))
        result = await self.session.execute(
            query.order_by(RideModel.scheduled_date, RideModel.scheduled_time)
        )
        return list(result.scalars().all())

    async def list_for_driver_on(self, driver_id: int, day: date) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(
                RideModel.assigned_driver_id == driver_id,
                RideModel.scheduled_date == day,
            )
            .order_by(RideModel.scheduled_time, RideModel.id)
        )
        return list(result.scalars().all())

    async def list_for_vehicle(self, vehicle_id: int) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.assigned_vehicle_id == vehicle_id)
            .order_by(RideModel.scheduled_date.desc(), RideModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_scheduled_between(self, first: date, last: date) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.scheduled_date.between(first, last))
            .order_by(RideModel.scheduled_date, RideModel.scheduled_time, RideModel.id)
        )
        return list(result.scalars().all())

    async def count_by_status(self) -> dict[RideStatus, int]:
        result = await self.session.execute(
            select(RideModel.status, func.count()).group_by(RideModel.status)
        )
        return {RideStatus(s): n for s, n in result.all()}

    async def count_completed_on(self, day: date) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(RideModel)
            .where(
                RideModel.status == RideStatus.COMPLETED,
                RideModel.scheduled_date == day,
            )
        )
        return result.scalar() or 0

    async def count_for_driver(
        self, driver_id: int, statuses: Iterable[RideStatus] = BOOKED_STATUSES
    ) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(RideModel)
            .where(
                RideModel.assigned_driver_id == driver_id,
                RideModel.status.in_(list(statuses)),
            )
        )
        return result.scalar() or 0

    async def list_history(self) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.status.in_(list(TERMINAL_STATUSES)))
            .order_by(RideModel.scheduled_date.desc(), RideModel.id.desc())
        )
        return list(result.scalars().all())

    async def rides_in_slot(self, day: date, time: str) -> list[RideModel]:
        """Rides holding a driver / vehicle at exactly ``(day, time)``."""
        result = await self.session.execute(
            select(RideModel).where(
                RideModel.scheduled_date == day,
                RideModel.scheduled_time == time,
                RideModel.status.in_(list(BOOKED_STATUSES)),
            )
        )
        return list(result.scalars().all())

    async def count_awaiting_approval(self, requester_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(RideModel)
            .where(
                RideModel.requester_id == requester_id,
                RideModel.status.in_(list(AWAITING_APPROVAL_STATUSES)),
            )
        )
        return result.scalar() or 0


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_for_update(self, user_id: int) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel)
            .where(UserModel.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        return result.scalar_one_or_none()

    async def list_all(self, role: Optional[Role] = None) -> list[UserModel]:
        query = select(UserModel).order_by(UserModel.name, UserModel.id)
        if role is not None:
            query = query.where(UserModel.role == role)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_by_role(self, active_only: bool = True) -> dict[Role, int]:
        query = select(UserModel.role, func.count()).group_by(UserModel.role)
        if active_only:
            query = query.where(UserModel.is_active.is_(True))
        result = await self.session.execute(query)
        return {Role(r): n for r, n in result.all()}

    async def get_driver(
        self, driver_id: int, for_update: bool = False
    ) -> Optional[UserModel]:
        query = select(UserModel).where(
            UserModel.id == driver_id,
            UserModel.role == Role.DRIVER,
            UserModel.is_active.is_(True),
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_drivers(self, include_inactive: bool = False) -> list[UserModel]:
        query = select(UserModel).where(UserModel.role == Role.DRIVER)
        if not include_inactive:
            query = query.where(UserModel.is_active.is_(True))
        result = await self.session.execute(query.order_by(UserModel.name))
        return list(result.scalars().all())


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, vehicle: VehicleModel) -> VehicleModel:
        self.session.add(vehicle)
        await self.session.flush()
        return vehicle

    async def get_by_id(
        self, vehicle_id: int, for_update: bool = False
    ) -> Optional[VehicleModel]:
        if not for_update:
            return await self.session.get(VehicleModel, vehicle_id)
        result = await self.session.execute(
            select(VehicleModel).where(VehicleModel.id == vehicle_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_number(self, number: str) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel).where(VehicleModel.vehicle_number == number)
        )
        return result.scalar_one_or_none()

    async def list_all(self, vehicle_type: str | None = None) -> list[VehicleModel]:
        query = select(VehicleModel).order_by(VehicleModel.vehicle_number)
        if vehicle_type:
            query = query.where(VehicleModel.vehicle_type == vehicle_type)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_by_status(self) -> dict[VehicleStatus, int]:
        result = await self.session.execute(
            select(VehicleModel.status, func.count()).group_by(VehicleModel.status)
        )
        return {VehicleStatus(s): n for s, n in result.all()}

    async def reset_monthly_mileage(self) -> int:
        result = await self.session.execute(
            update(VehicleModel).values(monthly_mileage=0)
        )
        return result.rowcount or 0
