"""Vehicle management and mileage bookkeeping."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from rideflow.domain import statistics
from rideflow.domain.entities import Actor
from rideflow.domain.enums import Role, VehicleStatus
from rideflow.domain.errors import InvalidVehicleNumber, NotFound, PermissionDenied
from rideflow.domain.vehicles import normalize_vehicle_number
from rideflow.infrastructure.locks import DistributedLock
from rideflow.infrastructure.models import VehicleModel
from rideflow.infrastructure.repositories import RideRepository, VehicleRepository

logger = logging.getLogger(__name__)


def _require_admin(actor: Actor) -> None:
    if actor.role is not Role.ADMIN:
        raise PermissionDenied("This action requires one of: admin")


class FleetService:
    def __init__(self, session: AsyncSession, redis: Optional[aioredis.Redis] = None):
        self.session = session
        self.redis = redis
        self.rides = RideRepository(session)
        self.vehicles = VehicleRepository(session)

    async def create_vehicle(
        self,
        actor: Actor,
        vehicle_number: str,
        vehicle_type: str,
        capacity: int = 4,
    ) -> VehicleModel:
        _require_admin(actor)
        number = normalize_vehicle_number(vehicle_number)
        if await self.vehicles.get_by_number(number) is not None:
            raise InvalidVehicleNumber(f"Vehicle {number} already exists")
        vehicle = await self.vehicles.create(
            VehicleModel(
                vehicle_number=number,
                vehicle_type=vehicle_type,
                capacity=capacity,
                status=VehicleStatus.AVAILABLE,
                total_mileage=Decimal("0"),
                monthly_mileage=Decimal("0"),
            )
        )
        await self.session.commit()
        logger.info("Vehicle %s registered by user %s", number, actor.user_id)
        return vehicle

    async def list_vehicles(
        self, actor: Actor, vehicle_type: Optional[str] = None
    ) -> list[VehicleModel]:
        if actor.role not in (Role.ADMIN, Role.MANAGER):
            raise PermissionDenied("This action requires one of: admin, manager")
        return await self.vehicles.list_all(vehicle_type)

    async def vehicle_stats(self, actor: Actor, vehicle_id: int) -> dict:
        """Lifetime ride figures for one vehicle."""
        if actor.role not in (Role.ADMIN, Role.MANAGER):
            raise PermissionDenied("This action requires one of: admin, manager")
        vehicle = await self.vehicles.get_by_id(vehicle_id)
        if vehicle is None:
            raise NotFound("Vehicle", vehicle_id)
        rides = await self.rides.list_for_vehicle(vehicle_id)
        return {
            "vehicle": vehicle,
            "summary": statistics.summarize(rides),
            "last_ride_date": rides[0].scheduled_date if rides else None,
        }

    async def set_maintenance(
        self, actor: Actor, vehicle_id: int, in_maintenance: bool
    ) -> VehicleModel:
        """Toggle the maintenance override; it does not touch bookings."""
        _require_admin(actor)
        vehicle = await self.vehicles.get_by_id(vehicle_id, for_update=True)
        if vehicle is None:
            raise NotFound("Vehicle", vehicle_id)
        vehicle.status = (
            VehicleStatus.MAINTENANCE if in_maintenance else VehicleStatus.AVAILABLE
        )
        await self.session.commit()
        logger.info(
            "Vehicle %s status -> %s", vehicle.vehicle_number, vehicle.status.value
        )
        return vehicle

    async def mileage_summary(self, actor: Actor) -> dict:
        _require_admin(actor)
        vehicles = await self.vehicles.list_all()
        return {
            "total_mileage": sum((v.total_mileage or 0 for v in vehicles), Decimal("0")),
            "monthly_mileage": sum(
                (v.monthly_mileage or 0 for v in vehicles), Decimal("0")
            ),
            "status_counts": {
                s.value: n for s, n in (await self.vehicles.count_by_status()).items()
            },
            "vehicles": vehicles,
        }

    async def reset_monthly_mileage(self, actor: Actor) -> int:
        """Zero every vehicle's monthly mileage; one process at a time."""
        _require_admin(actor)
        if self.redis is None:
            raise RuntimeError("Monthly mileage reset needs a Redis client")
        async with DistributedLock(self.redis, "monthly-mileage-reset", ttl_seconds=60):
            count = await self.vehicles.reset_monthly_mileage()
            await self.session.commit()
        logger.info("Monthly mileage reset for %d vehicles", count)
        return count
