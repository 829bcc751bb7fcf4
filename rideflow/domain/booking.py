"""Ride creation and cancellation rules."""

from __future__ import annotations

import re
import secrets
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from rideflow.config import settings

from .classifier import calculated_distance, classify
from .entities import Actor, Location, Ride
from .enums import RideStatus, RideType, Role, Transition
from .errors import InvalidBooking, InvalidTransition, PermissionDenied
from .state_machine import fire, next_status

SCHEDULED_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def make_ride_code(scheduled_date: date) -> str:
    return f"RD-{scheduled_date:%y%m%d}-{secrets.token_hex(3).upper()}"


def validate_schedule(
    scheduled_date: date, scheduled_time: str, today: Optional[date] = None
) -> None:
    if not SCHEDULED_TIME_RE.match(scheduled_time or ""):
        raise InvalidBooking(
            f"Scheduled time must be HH:MM (24h), got {scheduled_time!r}"
        )
    today = today or date.today()
    latest = today + timedelta(days=settings.max_advance_booking_days)
    if not today <= scheduled_date <= latest:
        raise InvalidBooking(
            f"Rides can be booked from today up to {latest.isoformat()}"
        )


def new_ride(
    requester: Actor,
    ride_type: RideType,
    pickup: Location,
    destination: Location,
    scheduled_date: date,
    scheduled_time: str,
    required_vehicle_type: Optional[str],
    distance_km: float,
    active_requests: int = 0,
    today: Optional[date] = None,
    idempotency_key: Optional[str] = None,
    ride_factory: Callable[..., object] = Ride,
):
    """Build a routed ride.

    *distance_km* is the one-way road distance; it is doubled here for
    return trips before classification.  *active_requests* is how many of
    the requester's rides are still waiting on an approval gate.
    """
    if requester.role is not Role.REQUESTER:
        raise PermissionDenied("Only requesters can book rides")
    ride_type = RideType(ride_type)
    validate_schedule(scheduled_date, scheduled_time, today)
    if active_requests >= settings.max_active_requests:
        raise InvalidBooking(
            f"You already have {active_requests} rides awaiting approval "
            f"(limit {settings.max_active_requests})"
        )

    distance = calculated_distance(distance_km, ride_type)
    decision = classify(distance, ride_type)

    ride = ride_factory(
        ride_code=make_ride_code(scheduled_date),
        requester_id=requester.user_id,
        ride_type=ride_type,
        pickup_address=pickup.address,
        pickup_lat=pickup.latitude,
        pickup_lng=pickup.longitude,
        destination_address=destination.address,
        destination_lat=destination.latitude,
        destination_lng=destination.longitude,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        calculated_distance=distance,
        required_vehicle_type=required_vehicle_type,
        idempotency_key=idempotency_key,
        status=RideStatus.PENDING,
    )
    fire(ride, Transition.ROUTE, None, target=decision.initial_status)
    return ride


def cancel(ride, actor: Actor, at: Optional[datetime] = None):
    target = next_status(RideStatus(ride.status), Transition.CANCEL, actor.role)
    if ride.requester_id != actor.user_id:
        raise InvalidTransition(
            ride.status, Transition.CANCEL, actor.role, reason="not the ride's requester"
        )
    ride.cancelled_at = at or datetime.now(timezone.utc)
    ride.status = target
    return ride
