"""
Straight-line distance estimate using the Haversine formula.

Road distance normally comes from the client (which asked a routing
service) or from a ``RoutingProvider``.  This estimate is the fallback
provider when neither is available, so it under-counts real road distance.

Complexity: O(1) per call.
"""

import math

from .entities import Location

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def estimate_km(pickup: Location, destination: Location) -> float:
    """One-way estimate rounded to 0.1 km."""
    d = haversine_km(
        pickup.latitude, pickup.longitude,
        destination.latitude, destination.longitude,
    )
    return round(d, 1)
