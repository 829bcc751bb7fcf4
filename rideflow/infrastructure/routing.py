"""
Road-distance providers.

``RoutingProvider`` is the seam for a real routing service (Google
Directions, OSRM).  ``HaversineRoutingProvider`` is the offline fallback.
"""

from __future__ import annotations

from typing import Protocol

from rideflow.domain.distance import estimate_km
from rideflow.domain.entities import Location


class RoutingProvider(Protocol):
    async def road_distance(self, pickup: Location, destination: Location) -> float: ...


class HaversineRoutingProvider:
    async def road_distance(self, pickup: Location, destination: Location) -> float:
        return estimate_km(pickup, destination)
