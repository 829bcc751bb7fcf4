"""
Ride workflow service
=====================

Unit-of-work orchestration around the pure core in ``rideflow.domain``:

1. lock the ride row (``SELECT ... FOR UPDATE``; the ``version`` column
   catches races on databases without row locks),
2. run the core operation against the locked row,
3. flush + commit,
4. fan out notifications (after commit, failures only logged).

Availability is re-checked inside the assignment transaction, after the
ride, driver and vehicle rows are locked, so a stale "available" shown to
an admin can never produce a double booking.

Every operation takes an explicit ``Actor`` built from the persisted user
record; roles are never read from the client.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from rideflow.domain import assignment, availability, booking, ledger, mileage
from rideflow.domain.entities import Actor, Location
from rideflow.domain.enums import (
    BOOKED_STATUSES,
    ApprovalStage,
    DriverStatus,
    NotificationEvent,
    ResourceKind,
    RideStatus,
    RideType,
    Role,
    TERMINAL_STATUSES,
    Transition,
    VehicleStatus,
)
from rideflow.domain.errors import (
    DuplicateRide,
    InvalidTransition,
    NotFound,
    PermissionDenied,
)
from rideflow.domain.state_machine import next_status
from rideflow.infrastructure.models import RideModel
from rideflow.infrastructure.notifications import (
    LoggingNotificationDispatcher,
    Notification,
    NotificationDispatcher,
    dispatch_all,
)
from rideflow.infrastructure.repositories import (
    RideRepository,
    UserRepository,
    VehicleRepository,
)
from rideflow.infrastructure.routing import HaversineRoutingProvider, RoutingProvider

logger = logging.getLogger(__name__)

RIDE_CODE_ATTEMPTS = 2


def _require_role(actor: Actor, *roles: Role) -> None:
    if actor.role not in roles:
        allowed = ", ".join(r.value for r in roles)
        raise PermissionDenied(f"This action requires one of: {allowed}")


class RideWorkflow:
    """Ride operations, one transaction each.

    A failed operation rolls the session back, which expires every instance
    the session holds.  The ride the operation was working on is reloaded
    before the error propagates, so a ``RideModel`` returned earlier stays
    readable; any other instance loaded through the same session must be
    re-read with an awaited call (``get_ride``, ``session.get``) afterwards.
    """

    def __init__(
        self,
        session: AsyncSession,
        notifier: Optional[NotificationDispatcher] = None,
        routing: Optional[RoutingProvider] = None,
    ):
        self.session = session
        self.notifier = notifier or LoggingNotificationDispatcher()
        self.routing = routing or HaversineRoutingProvider()
        self.rides = RideRepository(session)
        self.users = UserRepository(session)
        self.vehicles = VehicleRepository(session)

    # ── Unit of work ──────────────────────────────────────────────────

    @asynccontextmanager
    async def _transition(self, ride_id: int, transition: Transition, actor: Actor):
        """Lock the ride, yield it with an outbox, commit, then notify."""
        outbox: list[Notification] = []
        ride = None
        try:
            ride = await self.rides.get_for_update(ride_id)
            if ride is None:
                raise NotFound("Ride", ride_id)
            before = ride.status
            yield ride, outbox
            await self.session.flush()
        except StaleDataError:
            await self._rollback(ride)
            current = await self.rides.get_status(ride_id)
            logger.warning(
                "Ride %s changed concurrently during %s", ride_id, transition.value
            )
            raise InvalidTransition(
                current, transition, actor.role,
                reason="ride was modified by a concurrent request",
            ) from None
        except Exception:
            await self._rollback(ride)
            raise
        await self.session.commit()
        logger.info(
            "Ride %s: %s -> %s (%s by user %s)",
            ride.ride_code,
            RideStatus(before).value,
            RideStatus(ride.status).value,
            transition.value,
            actor.user_id,
        )
        await dispatch_all(self.notifier, outbox)

    async def _rollback(self, ride: Optional[RideModel]) -> None:
        await self.session.rollback()
        if ride is not None:
            await self.session.refresh(ride)

    @staticmethod
    def _payload(ride: RideModel, **extra: Any) -> dict[str, Any]:
        payload = {
            "ride_id": ride.id,
            "ride_code": ride.ride_code,
            "scheduled_date": ride.scheduled_date.isoformat(),
            "scheduled_time": ride.scheduled_time,
            "status": RideStatus(ride.status).value,
        }
        payload.update(extra)
        return payload

    # ── Creation / reads ──────────────────────────────────────────────

    async def create_ride(
        self,
        actor: Actor,
        *,
        ride_type: RideType,
        pickup: Location,
        destination: Location,
        scheduled_date: date,
        scheduled_time: str,
        required_vehicle_type: Optional[str] = None,
        distance_km: Optional[float] = None,
        idempotency_key: Optional[str] = None,
        today: Optional[date] = None,
    ) -> RideModel:
        """Book and route a ride; *distance_km* is the one-way road distance."""
        if idempotency_key:
            existing = await self.rides.get_by_idempotency_key(idempotency_key)
            if existing is not None:
                if existing.requester_id != actor.user_id:
                    raise PermissionDenied("Idempotency key belongs to another user")
                return existing

        if distance_km is None:
            distance_km = await self.routing.road_distance(pickup, destination)

        for attempt in range(1, RIDE_CODE_ATTEMPTS + 1):
            try:
                active = await self.rides.count_awaiting_approval(actor.user_id)
                ride = booking.new_ride(
                    actor,
                    ride_type,
                    pickup,
                    destination,
                    scheduled_date,
                    scheduled_time,
                    required_vehicle_type,
                    distance_km,
                    active_requests=active,
                    today=today,
                    idempotency_key=idempotency_key,
                    ride_factory=RideModel,
                )
                await self.rides.create(ride)
            except IntegrityError:
                await self.session.rollback()
                # lost a race on the same idempotency key
                if idempotency_key:
                    existing = await self.rides.get_by_idempotency_key(idempotency_key)
                    if existing is not None:
                        return existing
                # otherwise the random ride code collided
                logger.warning("Ride code collision on attempt %d", attempt)
                continue
            except Exception:
                await self.session.rollback()
                raise
            break
        else:
            raise DuplicateRide(
                "Could not allocate a unique ride code, retry the request"
            )
        await self.session.commit()
        logger.info(
            "Ride %s created by user %s: %.1f km -> %s",
            ride.ride_code,
            actor.user_id,
            ride.calculated_distance,
            RideStatus(ride.status).value,
        )
        return ride

    async def get_ride(self, actor: Actor, ride_id: int) -> RideModel:
        ride = await self.rides.get_by_id(ride_id)
        if ride is None:
            raise NotFound("Ride", ride_id)
        if actor.role is Role.REQUESTER and ride.requester_id != actor.user_id:
            raise NotFound("Ride", ride_id)
        if actor.role is Role.DRIVER and ride.assigned_driver_id != actor.user_id:
            raise NotFound("Ride", ride_id)
        return ride

    async def my_rides(self, actor: Actor) -> list[RideModel]:
        _require_role(actor, Role.REQUESTER)
        return await self.rides.list_for_requester(actor.user_id)

    async def awaiting_manager(self, actor: Actor) -> list[RideModel]:
        _require_role(actor, Role.MANAGER, Role.ADMIN)
        return await self.rides.list_by_status([RideStatus.AWAITING_MANAGER])

    async def awaiting_admin(self, actor: Actor) -> list[RideModel]:
        _require_role(actor, Role.ADMIN)
        return await self.rides.list_by_status([RideStatus.AWAITING_ADMIN])

    async def ready_for_assignment(self, actor: Actor) -> list[RideModel]:
        _require_role(actor, Role.ADMIN)
        return await self.rides.list_by_status(
            [RideStatus.APPROVED, RideStatus.ASSIGNED]
        )

    async def driver_rides(self, actor: Actor) -> list[RideModel]:
        _require_role(actor, Role.DRIVER)
        return await self.rides.list_for_driver(
            actor.user_id, [RideStatus.ASSIGNED, RideStatus.IN_PROGRESS]
        )

    async def driver_daily(self, actor: Actor, day: date) -> dict[str, Any]:
        """The driver's run sheet for one day, every status included."""
        _require_role(actor, Role.DRIVER)
        rides = await self.rides.list_for_driver_on(actor.user_id, day)
        statuses = [RideStatus(r.status) for r in rides]
        return {
            "date": day,
            "rides": rides,
            "total": len(rides),
            "active": sum(1 for s in statuses if s in BOOKED_STATUSES),
            "completed": statuses.count(RideStatus.COMPLETED),
        }

    async def history(self, actor: Actor) -> list[RideModel]:
        if actor.role is Role.REQUESTER:
            return await self.rides.list_for_requester(
                actor.user_id, TERMINAL_STATUSES
            )
        if actor.role is Role.DRIVER:
            return await self.rides.list_for_driver(actor.user_id, TERMINAL_STATUSES)
        return await self.rides.list_history()

    # ── Approval ledger ───────────────────────────────────────────────

    async def manager_approve(
        self, actor: Actor, ride_id: int, note: Optional[str] = None
    ) -> RideModel:
        async with self._transition(ride_id, Transition.MANAGER_APPROVE, actor) as (
            ride,
            outbox,
        ):
            ledger.approve(ride, actor, note, stage=ApprovalStage.MANAGER)
            outbox.append(
                Notification(
                    ride.requester_id,
                    NotificationEvent.RIDE_MANAGER_APPROVED,
                    self._payload(ride),
                )
            )
        return ride

    async def manager_reject(
        self, actor: Actor, ride_id: int, reason: Optional[str]
    ) -> RideModel:
        return await self._reject(actor, ride_id, reason, ApprovalStage.MANAGER)

    async def admin_approve(
        self, actor: Actor, ride_id: int, note: Optional[str] = None
    ) -> RideModel:
        async with self._transition(ride_id, Transition.ADMIN_APPROVE, actor) as (
            ride,
            outbox,
        ):
            ledger.approve(ride, actor, note, stage=ApprovalStage.ADMIN)
            outbox.append(
                Notification(
                    ride.requester_id,
                    NotificationEvent.RIDE_APPROVED,
                    self._payload(ride, note=ride.admin_comment),
                )
            )
        return ride

    async def admin_reject(
        self, actor: Actor, ride_id: int, reason: Optional[str]
    ) -> RideModel:
        return await self._reject(actor, ride_id, reason, ApprovalStage.ADMIN)

    async def _reject(
        self,
        actor: Actor,
        ride_id: int,
        reason: Optional[str],
        stage: ApprovalStage,
    ) -> RideModel:
        transition = (
            Transition.MANAGER_REJECT
            if stage is ApprovalStage.MANAGER
            else Transition.ADMIN_REJECT
        )
        async with self._transition(ride_id, transition, actor) as (ride, outbox):
            ledger.reject(ride, actor, reason, stage=stage)
            outbox.append(
                Notification(
                    ride.requester_id,
                    NotificationEvent.RIDE_REJECTED,
                    self._payload(
                        ride,
                        stage=stage.value,
                        reason=getattr(ride, f"{stage.value}_comment"),
                    ),
                )
            )
        return ride

    # ── Availability ──────────────────────────────────────────────────

    async def list_available_drivers(
        self,
        actor: Actor,
        day: date,
        time: str,
        exclude_ride_id: Optional[int] = None,
    ) -> list[availability.AvailabilityEntry]:
        _require_role(actor, Role.ADMIN)
        drivers = await self.users.list_drivers()
        rides = await self._slot_rides(day, time, exclude_ride_id)
        await self._include_current(
            drivers, rides, exclude_ride_id, "assigned_driver_id", self.users.get_by_id
        )
        return availability.resolve(
            ResourceKind.DRIVER, drivers, rides, day, time, exclude_ride_id
        )

    async def list_available_vehicles(
        self,
        actor: Actor,
        day: date,
        time: str,
        exclude_ride_id: Optional[int] = None,
        vehicle_type: Optional[str] = None,
    ) -> list[availability.AvailabilityEntry]:
        _require_role(actor, Role.ADMIN)
        vehicles = await self.vehicles.list_all(vehicle_type)
        rides = await self._slot_rides(day, time, exclude_ride_id)
        await self._include_current(
            vehicles,
            rides,
            exclude_ride_id,
            "assigned_vehicle_id",
            self.vehicles.get_by_id,
        )
        return availability.resolve(
            ResourceKind.VEHICLE, vehicles, rides, day, time, exclude_ride_id
        )

    @staticmethod
    async def _include_current(
        candidates: list,
        rides: list[RideModel],
        exclude_ride_id: Optional[int],
        attr: str,
        load: Callable[[int], Awaitable[Any]],
    ) -> None:
        """Append the excluded ride's own driver / vehicle if a filter dropped it."""
        if exclude_ride_id is None:
            return
        bound = next(
            (getattr(r, attr) for r in rides if r.id == exclude_ride_id), None
        )
        if bound is None or any(c.id == bound for c in candidates):
            return
        current = await load(bound)
        if current is not None:
            candidates.append(current)

    async def _slot_rides(
        self, day: date, time: str, exclude_ride_id: Optional[int]
    ) -> list[RideModel]:
        rides = await self.rides.rides_in_slot(day, time)
        if exclude_ride_id is not None and all(r.id != exclude_ride_id for r in rides):
            # still needed to tag the current driver / vehicle
            excluded = await self.rides.get_by_id(exclude_ride_id)
            if excluded is not None:
                rides.append(excluded)
        return rides

    # ── Assignment coordinator ────────────────────────────────────────

    async def assign_ride(
        self, actor: Actor, ride_id: int, driver_id: int, vehicle_id: int
    ) -> RideModel:
        return await self._assign(actor, ride_id, driver_id, vehicle_id, reassign=False)

    async def reassign_ride(
        self, actor: Actor, ride_id: int, driver_id: int, vehicle_id: int
    ) -> RideModel:
        return await self._assign(actor, ride_id, driver_id, vehicle_id, reassign=True)

    async def _assign(
        self,
        actor: Actor,
        ride_id: int,
        driver_id: int,
        vehicle_id: int,
        reassign: bool,
    ) -> RideModel:
        transition = Transition.REASSIGN if reassign else Transition.ASSIGN
        async with self._transition(ride_id, transition, actor) as (ride, outbox):
            driver = await self.users.get_driver(driver_id, for_update=True)
            if driver is None:
                raise NotFound("Driver", driver_id)
            vehicle = await self.vehicles.get_by_id(vehicle_id, for_update=True)
            if vehicle is None:
                raise NotFound("Vehicle", vehicle_id)

            booked = await self.rides.rides_in_slot(
                ride.scheduled_date, ride.scheduled_time
            )
            result = assignment.assign(
                ride, driver, vehicle, booked, role=actor.role, reassign=reassign
            )

            payload = self._payload(
                ride,
                driver_id=driver.id,
                driver_name=driver.name,
                driver_phone=driver.phone,
                vehicle_id=vehicle.id,
                vehicle_number=vehicle.vehicle_number,
            )
            event = (
                NotificationEvent.RIDE_REASSIGNED
                if reassign
                else NotificationEvent.RIDE_ASSIGNED
            )
            outbox.append(Notification(ride.requester_id, event, payload))
            outbox.append(Notification(driver.id, event, payload))
            if result.driver_changed:
                outbox.append(
                    Notification(
                        result.previous_driver_id,
                        NotificationEvent.RIDE_UNASSIGNED,
                        self._payload(ride),
                    )
                )
        return ride

    # ── Mileage reconciliation ────────────────────────────────────────

    async def start_ride(
        self, actor: Actor, ride_id: int, start_mileage: Any
    ) -> RideModel:
        async with self._transition(ride_id, Transition.START, actor) as (ride, _):
            self._require_assigned_driver(ride, actor, Transition.START)
            mileage.start_ride(ride, start_mileage, role=actor.role)

            driver = await self.users.get_by_id(ride.assigned_driver_id)
            vehicle = await self.vehicles.get_by_id(ride.assigned_vehicle_id)
            driver.driver_status = DriverStatus.BUSY
            if vehicle.status != VehicleStatus.MAINTENANCE:
                vehicle.status = VehicleStatus.BUSY
        return ride

    async def complete_ride(
        self, actor: Actor, ride_id: int, end_mileage: Any
    ) -> RideModel:
        async with self._transition(ride_id, Transition.COMPLETE, actor) as (
            ride,
            outbox,
        ):
            self._require_assigned_driver(ride, actor, Transition.COMPLETE)
            mileage.complete_ride(ride, end_mileage, role=actor.role)

            driver = await self.users.get_by_id(ride.assigned_driver_id)
            vehicle = await self.vehicles.get_by_id(ride.assigned_vehicle_id)
            driver.driver_status = DriverStatus.AVAILABLE
            if vehicle.status != VehicleStatus.MAINTENANCE:
                vehicle.status = VehicleStatus.AVAILABLE
            vehicle.total_mileage = (vehicle.total_mileage or 0) + ride.actual_distance
            vehicle.monthly_mileage = (
                vehicle.monthly_mileage or 0
            ) + ride.actual_distance

            outbox.append(
                Notification(
                    ride.requester_id,
                    NotificationEvent.RIDE_COMPLETED,
                    self._payload(ride, actual_distance=str(ride.actual_distance)),
                )
            )
        return ride

    @staticmethod
    def _require_assigned_driver(
        ride: RideModel, actor: Actor, transition: Transition
    ) -> None:
        # state first: an unassigned ride is not "someone else's"
        next_status(RideStatus(ride.status), transition, actor.role)
        if actor.role is Role.DRIVER and ride.assigned_driver_id != actor.user_id:
            raise InvalidTransition(
                ride.status, transition, actor.role,
                reason="ride is assigned to another driver",
            )

    # ── Cancellation ──────────────────────────────────────────────────

    async def cancel_ride(self, actor: Actor, ride_id: int) -> RideModel:
        async with self._transition(ride_id, Transition.CANCEL, actor) as (ride, _):
            booking.cancel(ride, actor)
        return ride
