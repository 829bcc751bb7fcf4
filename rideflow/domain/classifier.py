"""
Distance Classifier
===================

Decides whether a ride has to pass the manager gate before the admin gate.

A ride is *long-distance* iff ``distance_km > threshold`` (strict).  Return
trips are classified on their doubled distance, which the caller computes
with ``calculated_distance`` before classifying.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from rideflow.config import settings

from .enums import RideStatus, RideType
from .errors import InvalidBooking


@dataclass(frozen=True)
class RouteDecision:
    requires_manager_approval: bool

    @property
    def initial_status(self) -> RideStatus:
        if self.requires_manager_approval:
            return RideStatus.AWAITING_MANAGER
        return RideStatus.AWAITING_ADMIN


def calculated_distance(one_way_km: float, ride_type: RideType) -> float:
    """Distance the ride will actually cover: doubled for return trips."""
    if (
        isinstance(one_way_km, bool)
        or not isinstance(one_way_km, (int, float))
        or not math.isfinite(one_way_km)
        or one_way_km < 0
    ):
        raise InvalidBooking(f"Invalid road distance: {one_way_km!r}")
    if RideType(ride_type) is RideType.RETURN:
        return one_way_km * 2
    return float(one_way_km)


def is_long_distance(distance_km: float, threshold: Optional[float] = None) -> bool:
    if threshold is None:
        threshold = settings.manager_approval_threshold_km
    return distance_km > threshold


def classify(
    distance_km: float,
    ride_type: Optional[RideType] = None,
    threshold: Optional[float] = None,
) -> RouteDecision:
    """Route a ride whose *distance_km* is already doubled for return trips.

    ``ride_type`` is informational only: doubling happens upstream.
    """
    if distance_km < 0:
        raise InvalidBooking(f"Invalid road distance: {distance_km!r}")
    return RouteDecision(
        requires_manager_approval=is_long_distance(distance_km, threshold)
    )
