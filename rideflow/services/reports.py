"""Dashboards and monthly reports (read only)."""

from __future__ import annotations

from collections import Counter
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rideflow.domain import statistics
from rideflow.domain.entities import Actor
from rideflow.domain.enums import DriverStatus, RideStatus, Role, VehicleStatus
from rideflow.domain.errors import PermissionDenied
from rideflow.infrastructure.repositories import (
    RideRepository,
    UserRepository,
    VehicleRepository,
)


def _require_role(actor: Actor, *roles: Role) -> None:
    if actor.role not in roles:
        allowed = ", ".join(r.value for r in roles)
        raise PermissionDenied(f"This action requires one of: {allowed}")


class ReportService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.rides = RideRepository(session)
        self.users = UserRepository(session)
        self.vehicles = VehicleRepository(session)

    async def my_stats(self, actor: Actor) -> statistics.RideSummary:
        """The requester's own ride counts and travelled distance."""
        _require_role(actor, Role.REQUESTER)
        return statistics.summarize(await self.rides.list_for_requester(actor.user_id))

    async def dashboard_stats(
        self, actor: Actor, today: Optional[date] = None
    ) -> dict[str, Any]:
        _require_role(actor, Role.ADMIN)
        today = today or date.today()
        by_status = await self.rides.count_by_status()
        drivers = await self.users.list_drivers()
        vehicles = await self.vehicles.list_all()
        vehicle_counts = Counter(VehicleStatus(v.status) for v in vehicles)
        return {
            "awaiting_manager": by_status.get(RideStatus.AWAITING_MANAGER, 0),
            "awaiting_admin": by_status.get(RideStatus.AWAITING_ADMIN, 0),
            "ready_for_assignment": by_status.get(RideStatus.APPROVED, 0),
            "assigned_rides": by_status.get(RideStatus.ASSIGNED, 0),
            "live_rides": by_status.get(RideStatus.IN_PROGRESS, 0),
            "completed_today": await self.rides.count_completed_on(today),
            "total_drivers": len(drivers),
            "available_drivers": sum(
                1 for d in drivers if d.driver_status == DriverStatus.AVAILABLE
            ),
            "total_vehicles": len(vehicles),
            "available_vehicles": vehicle_counts[VehicleStatus.AVAILABLE],
            "maintenance_vehicles": vehicle_counts[VehicleStatus.MAINTENANCE],
            "monthly_mileage": sum(
                (v.monthly_mileage or 0 for v in vehicles), Decimal("0")
            ),
        }

    async def monthly_rides(
        self, actor: Actor, year: int, month: int
    ) -> dict[str, Any]:
        """Rides scheduled in ``year-month``: a summary plus per-day totals."""
        _require_role(actor, Role.MANAGER, Role.ADMIN)
        rides = await self._rides_in_month(year, month)
        per_day = Counter(r.scheduled_date for r in rides)
        return {
            "year": year,
            "month": month,
            "summary": statistics.summarize(rides),
            "per_day": dict(sorted(per_day.items())),
        }

    async def driver_performance(
        self, actor: Actor, year: int, month: int
    ) -> list[tuple[Any, statistics.RideSummary]]:
        """Every active driver with their summary for the month, busiest first."""
        _require_role(actor, Role.MANAGER, Role.ADMIN)
        grouped = statistics.group_by(
            await self._rides_in_month(year, month), "assigned_driver_id"
        )
        drivers = await self.users.list_drivers()
        rows = [(d, grouped.get(d.id, statistics.RideSummary())) for d in drivers]
        rows.sort(key=lambda row: (-row[1].completed_rides, row[0].name))
        return rows

    async def vehicle_usage(
        self, actor: Actor, year: int, month: int
    ) -> list[tuple[Any, statistics.RideSummary]]:
        """Every vehicle with its summary for the month, most driven first."""
        _require_role(actor, Role.MANAGER, Role.ADMIN)
        grouped = statistics.group_by(
            await self._rides_in_month(year, month), "assigned_vehicle_id"
        )
        vehicles = await self.vehicles.list_all()
        rows = [(v, grouped.get(v.id, statistics.RideSummary())) for v in vehicles]
        rows.sort(key=lambda row: (-row[1].total_distance, row[0].vehicle_number))
        return rows

    async def _rides_in_month(self, year: int, month: int) -> list:
        first, last = statistics.month_bounds(year, month)
        return await self.rides.list_scheduled_between(first, last)
