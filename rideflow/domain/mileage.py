"""
Mileage Reconciliation
======================

Odometer readings are handled as ``Decimal`` so that
``actual_distance == end_mileage - start_mileage`` holds exactly
(``1042.3 - 1000.0`` is ``42.3``, not ``42.29999...``).

Readings are rounded half-up to the stored scale (two places) before any
arithmetic, so the invariant still holds once the row is written and read
back.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from .enums import RideStatus, Role, Transition
from .errors import InvalidMileage
from .state_machine import next_status

READING_SCALE = Decimal("0.01")
READING_LIMIT = Decimal("1e10")  # Numeric(12, 2)


def to_reading(value: Any, label: str = "mileage") -> Decimal:
    """Coerce an odometer reading, rejecting negative / non-numeric input."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidMileage(f"{label} must be a number, got {value!r}")
    try:
        reading = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise InvalidMileage(f"{label} must be a number, got {value!r}")
    if not reading.is_finite():
        raise InvalidMileage(f"{label} must be finite")
    if reading < 0:
        raise InvalidMileage(f"{label} cannot be negative")
    if reading >= READING_LIMIT:
        raise InvalidMileage(f"{label} is out of range")
    return reading.quantize(READING_SCALE, rounding=ROUND_HALF_UP)


def start_ride(
    ride,
    start_mileage: Any,
    role: Optional[Role] = Role.DRIVER,
    at: Optional[datetime] = None,
):
    target = next_status(RideStatus(ride.status), Transition.START, role)
    reading = to_reading(start_mileage, "start mileage")

    ride.start_mileage = reading
    ride.started_at = at or datetime.now(timezone.utc)
    ride.status = target
    return ride


def complete_ride(
    ride,
    end_mileage: Any,
    role: Optional[Role] = Role.DRIVER,
    at: Optional[datetime] = None,
):
    target = next_status(RideStatus(ride.status), Transition.COMPLETE, role)
    end = to_reading(end_mileage, "end mileage")
    if ride.start_mileage is None:
        raise InvalidMileage("ride has no start mileage recorded")
    start = to_reading(ride.start_mileage, "start mileage")
    if end < start:
        raise InvalidMileage(
            f"end mileage {end} is below start mileage {start}"
        )

    ride.end_mileage = end
    ride.actual_distance = end - start
    ride.completed_at = at or datetime.now(timezone.utc)
    ride.status = target
    return ride
