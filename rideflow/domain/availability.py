"""
Availability Resolver
=====================

Read-only projection over already-fetched rides, drivers and vehicles.

Slot model
----------
Rides are point-in-time bookings: a driver / vehicle is busy for
``(date, time)`` iff it is bound to another ride in ``assigned`` or
``in_progress`` whose ``scheduled_date == date`` and
``scheduled_time == time`` (exact string match).  There is no ride
duration, so overlapping-but-different times never conflict.

Vehicles under ``maintenance`` and deactivated drivers are unavailable
regardless of bookings.  A filter on the candidate list (vehicle type,
active drivers) may leave out the excluded ride's own driver / vehicle;
callers append it back so it is always listed and tagged ``is_current``.

``exclude_ride_id`` drops one ride from the booking scan (used while
reassigning, so the ride's own binding does not block itself) and tags the
driver / vehicle currently bound to that ride with ``is_current``.

Complexity: O(R + C) for R rides and C candidates.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date as date_type
from typing import Any, Iterable, Optional

from .enums import BOOKED_STATUSES, ResourceKind, RideStatus, VehicleStatus


@dataclass(frozen=True)
class AvailabilityEntry:
    candidate: Any
    is_available: bool
    is_current: bool = False


def _binding_attr(kind: ResourceKind) -> str:
    if kind is ResourceKind.DRIVER:
        return "assigned_driver_id"
    return "assigned_vehicle_id"


def booked_ids(
    kind: ResourceKind,
    rides: Iterable,
    date: date_type,
    time: str,
    exclude_ride_id: Optional[int] = None,
) -> set[int]:
    """Ids of drivers / vehicles already bound at exactly ``(date, time)``."""
    attr = _binding_attr(kind)
    taken: set[int] = set()
    for ride in rides:
        if exclude_ride_id is not None and ride.id == exclude_ride_id:
            continue
        if RideStatus(ride.status) not in BOOKED_STATUSES:
            continue
        if ride.scheduled_date != date or ride.scheduled_time != time:
            continue
        bound = getattr(ride, attr)
        if bound is not None:
            taken.add(bound)
    return taken


def _current_id(
    kind: ResourceKind, rides: Iterable, exclude_ride_id: Optional[int]
) -> Optional[int]:
    if exclude_ride_id is None:
        return None
    for ride in rides:
        if ride.id == exclude_ride_id:
            return getattr(ride, _binding_attr(kind))
    return None


def _blocked(kind: ResourceKind, candidate) -> bool:
    if kind is ResourceKind.DRIVER:
        return not getattr(candidate, "is_active", True)
    return VehicleStatus(candidate.status) is VehicleStatus.MAINTENANCE


def resolve(
    kind: ResourceKind,
    candidates: Iterable,
    rides: Iterable,
    date: date_type,
    time: str,
    exclude_ride_id: Optional[int] = None,
) -> list[AvailabilityEntry]:
    """Annotate every candidate with its availability for the slot."""
    rides = list(rides)
    taken = booked_ids(kind, rides, date, time, exclude_ride_id)
    current = _current_id(kind, rides, exclude_ride_id)
    return [
        AvailabilityEntry(
            candidate=c,
            is_available=c.id not in taken and not _blocked(kind, c),
            is_current=current is not None and c.id == current,
        )
        for c in candidates
    ]


def is_available(
    kind: ResourceKind,
    candidate,
    rides: Iterable,
    date: date_type,
    time: str,
    exclude_ride_id: Optional[int] = None,
) -> bool:
    (entry,) = resolve(kind, [candidate], rides, date, time, exclude_ride_id)
    return entry.is_available
