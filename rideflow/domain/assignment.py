"""
Assignment Coordinator
======================

Binds a driver and a vehicle to an approved ride, or replaces the binding
of an already-assigned ride.

Order of checks: transition legality first (a ride that moved on under a
concurrent request must fail with ``InvalidTransition``), then availability
of both resources, and only then the write.  Driver, vehicle and status are
written together so a ride is never half-assigned.

The caller is responsible for running this inside the same transaction /
row lock that persists the result (check-then-act).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .availability import is_available
from .enums import ResourceKind, RideStatus, Role, Transition
from .errors import UnavailableResource
from .state_machine import next_status


@dataclass(frozen=True)
class AssignmentResult:
    driver_id: int
    vehicle_id: int
    previous_driver_id: Optional[int] = None
    previous_vehicle_id: Optional[int] = None

    @property
    def driver_changed(self) -> bool:
        return (
            self.previous_driver_id is not None
            and self.previous_driver_id != self.driver_id
        )


def _require_available(kind, candidate, ride, rides) -> None:
    if not is_available(
        kind,
        candidate,
        rides,
        ride.scheduled_date,
        ride.scheduled_time,
        exclude_ride_id=ride.id,
    ):
        raise UnavailableResource(
            kind, candidate.id, ride.scheduled_date, ride.scheduled_time
        )


def assign(
    ride,
    driver,
    vehicle,
    rides: Iterable,
    role: Optional[Role] = Role.ADMIN,
    reassign: bool = False,
) -> AssignmentResult:
    """Bind *driver* / *vehicle* to *ride*; *rides* is the booking snapshot."""
    transition = Transition.REASSIGN if reassign else Transition.ASSIGN
    target = next_status(RideStatus(ride.status), transition, role)

    rides = list(rides)
    _require_available(ResourceKind.DRIVER, driver, ride, rides)
    _require_available(ResourceKind.VEHICLE, vehicle, ride, rides)

    result = AssignmentResult(
        driver_id=driver.id,
        vehicle_id=vehicle.id,
        previous_driver_id=ride.assigned_driver_id,
        previous_vehicle_id=ride.assigned_vehicle_id,
    )
    ride.assigned_driver_id = driver.id
    ride.assigned_vehicle_id = vehicle.id
    ride.status = target
    return result
