"""
Domain entities.

The workflow modules (``state_machine``, ``ledger``, ``assignment``,
``mileage``) only read and write plain attributes, so they operate on these
dataclasses and on the ORM models in ``rideflow.infrastructure.models``
alike -- both expose the same attribute names.

Approval records are stored flat (``manager_*`` / ``admin_*`` columns);
``approval_record`` / ``write_approval`` convert to and from the
``ApprovalRecord`` value object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from .enums import (
    ApprovalStage,
    Decision,
    DriverStatus,
    RideStatus,
    RideType,
    Role,
    VehicleStatus,
)


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    address: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class ApprovalRecord:
    stage: ApprovalStage
    decision: Decision
    actor_id: int
    decided_at: datetime
    comment: Optional[str] = None  # approval note or rejection reason


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation, as read from the persisted user."""

    user_id: int
    role: Role


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Ride:
    id: Optional[int] = None
    ride_code: Optional[str] = None
    requester_id: int = 0
    ride_type: RideType = RideType.ONE_WAY
    pickup_address: str = ""
    pickup_lat: float = 0.0
    pickup_lng: float = 0.0
    destination_address: str = ""
    destination_lat: float = 0.0
    destination_lng: float = 0.0
    scheduled_date: Optional[date] = None
    scheduled_time: str = ""
    calculated_distance: float = 0.0
    required_vehicle_type: Optional[str] = None
    status: RideStatus = RideStatus.PENDING

    assigned_driver_id: Optional[int] = None
    assigned_vehicle_id: Optional[int] = None

    start_mileage: Optional[Decimal] = None
    end_mileage: Optional[Decimal] = None
    actual_distance: Optional[Decimal] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    manager_decision: Optional[Decision] = None
    manager_actor_id: Optional[int] = None
    manager_decided_at: Optional[datetime] = None
    manager_comment: Optional[str] = None
    admin_decision: Optional[Decision] = None
    admin_actor_id: Optional[int] = None
    admin_decided_at: Optional[datetime] = None
    admin_comment: Optional[str] = None

    idempotency_key: Optional[str] = None
    created_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def pickup(self) -> Location:
        return Location(self.pickup_address, self.pickup_lat, self.pickup_lng)

    @property
    def destination(self) -> Location:
        return Location(
            self.destination_address, self.destination_lat, self.destination_lng
        )


@dataclass
class Driver:
    id: int
    name: str = ""
    phone: str = ""
    driver_status: DriverStatus = DriverStatus.AVAILABLE
    is_active: bool = True


@dataclass
class Vehicle:
    id: int
    vehicle_number: str = ""
    vehicle_type: str = "car"
    status: VehicleStatus = VehicleStatus.AVAILABLE
    total_mileage: Decimal = Decimal("0")
    monthly_mileage: Decimal = Decimal("0")


# ── Approval record helpers ───────────────────────────────────────────


def approval_record(ride, stage: ApprovalStage) -> Optional[ApprovalRecord]:
    """Return the record written for *stage*, or ``None`` if unresolved."""
    prefix = stage.value
    decision = getattr(ride, f"{prefix}_decision")
    if decision is None:
        return None
    return ApprovalRecord(
        stage=stage,
        decision=Decision(decision),
        actor_id=getattr(ride, f"{prefix}_actor_id"),
        decided_at=getattr(ride, f"{prefix}_decided_at"),
        comment=getattr(ride, f"{prefix}_comment"),
    )


def write_approval(ride, record: ApprovalRecord) -> None:
    prefix = record.stage.value
    setattr(ride, f"{prefix}_decision", record.decision)
    setattr(ride, f"{prefix}_actor_id", record.actor_id)
    setattr(ride, f"{prefix}_decided_at", record.decided_at)
    setattr(ride, f"{prefix}_comment", record.comment)
