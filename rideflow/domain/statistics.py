"""
Ride statistics
===============

Pure aggregations over already-fetched rides, used by the requester /
driver dashboards and the manager reports.

Distances
---------
``total_distance`` sums the reconciled ``actual_distance`` of *completed*
rides only; ``long_distance_rides`` counts rides whose requested
``calculated_distance`` needed the manager gate, whatever their outcome.

Months
------
A ride belongs to a month by its ``scheduled_date``, except in the driver
"this month" figures, which follow ``completed_at`` (when the work was done).
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from .classifier import is_long_distance
from .enums import (
    AWAITING_APPROVAL_STATUSES,
    BOOKED_STATUSES,
    RideStatus,
)
from .errors import ValidationFailed

ZERO = Decimal("0")


@dataclass(frozen=True)
class RideSummary:
    total_rides: int = 0
    completed_rides: int = 0
    cancelled_rides: int = 0
    rejected_rides: int = 0
    pending_rides: int = 0
    active_rides: int = 0
    long_distance_rides: int = 0
    total_distance: Decimal = ZERO

    @property
    def completion_rate(self) -> float:
        """Completed share of all rides, in percent (one decimal)."""
        if not self.total_rides:
            return 0.0
        return round(100.0 * self.completed_rides / self.total_rides, 1)

    @property
    def average_distance(self) -> Decimal:
        """Mean actual distance per completed ride."""
        if not self.completed_rides:
            return ZERO
        return (self.total_distance / self.completed_rides).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class DriverStats:
    driver_id: int
    total_rides: int
    completed_rides: int
    total_distance: Decimal
    monthly_rides: int
    monthly_distance: Decimal


def _distance(ride) -> Decimal:
    return Decimal(ride.actual_distance or 0)


def summarize(rides: Iterable) -> RideSummary:
    counts: dict[str, Any] = defaultdict(int)
    total_distance = ZERO
    for ride in rides:
        status = RideStatus(ride.status)
        counts["total_rides"] += 1
        if status is RideStatus.COMPLETED:
            counts["completed_rides"] += 1
            total_distance += _distance(ride)
        elif status is RideStatus.CANCELLED:
            counts["cancelled_rides"] += 1
        elif status is RideStatus.REJECTED:
            counts["rejected_rides"] += 1
        elif status in AWAITING_APPROVAL_STATUSES:
            counts["pending_rides"] += 1
        elif status in BOOKED_STATUSES:
            counts["active_rides"] += 1
        if is_long_distance(ride.calculated_distance):
            counts["long_distance_rides"] += 1
    return RideSummary(total_distance=total_distance, **counts)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of ``year-month``; rejects impossible months."""
    if not 1 <= month <= 12:
        raise ValidationFailed(f"Month must be 1..12, got {month}")
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def _in_month(moment, year: int, month: int) -> bool:
    return moment is not None and (moment.year, moment.month) == (year, month)


def driver_stats(driver_id: int, rides: Iterable, year: int, month: int) -> DriverStats:
    """Figures for one driver over every ride they were ever assigned."""
    rides = list(rides)
    completed = [r for r in rides if RideStatus(r.status) is RideStatus.COMPLETED]
    this_month = [r for r in completed if _in_month(r.completed_at, year, month)]
    return DriverStats(
        driver_id=driver_id,
        total_rides=len(rides),
        completed_rides=len(completed),
        total_distance=sum((_distance(r) for r in completed), ZERO),
        monthly_rides=len(this_month),
        monthly_distance=sum((_distance(r) for r in this_month), ZERO),
    )


def group_by(rides: Iterable, attr: str) -> dict[int, RideSummary]:
    """One summary per bound driver / vehicle (``assigned_*_id``)."""
    buckets: dict[int, list] = defaultdict(list)
    for ride in rides:
        key: Optional[int] = getattr(ride, attr)
        if key is not None:
            buckets[key].append(ride)
    return {key: summarize(bucket) for key, bucket in buckets.items()}
