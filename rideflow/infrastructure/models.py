"""
SQLAlchemy ORM models.

Tables
------
* ``users``     -- requesters, drivers, managers and admins (``role``)
* ``vehicles``  -- fleet vehicles with maintenance override and mileage totals
* ``rides``     -- ride requests, their approval records and assignment

Locking
-------
``rides.version`` is the mapper's ``version_id_col``: every UPDATE carries
``WHERE version = :expected`` and a lost race surfaces as ``StaleDataError``.

Invariants enforced in the schema
---------------------------------
* driver and vehicle are both set or both NULL
* ``end_mileage >= start_mileage`` when both are present

Indexes
-------
* ``(scheduled_date, scheduled_time, status)`` for slot availability scans
* ``status``, ``requester_id``, ``assigned_driver_id`` for work queues
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)

from .database import Base
from rideflow.domain.enums import (
    Decision,
    DriverStatus,
    RideStatus,
    RideType,
    Role,
    VehicleStatus,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, length: int = 20) -> Enum:
    # Stored as VARCHAR holding the enum *values* ("awaiting_admin", ...)
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda e: [m.value for m in e],
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(_enum(Role), nullable=False, default=Role.REQUESTER)
    driver_status = Column(_enum(DriverStatus), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)

    __table_args__ = (Index("idx_users_role", "role"),)


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_number = Column(String(8), unique=True, nullable=False)
    vehicle_type = Column(String(30), nullable=False)
    capacity = Column(Integer, default=4, nullable=False)
    status = Column(
        _enum(VehicleStatus), default=VehicleStatus.AVAILABLE, nullable=False
    )
    total_mileage = Column(Numeric(12, 2), default=0, nullable=False)
    monthly_mileage = Column(Numeric(12, 2), default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    __table_args__ = (Index("idx_vehicles_status", "status"),)


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_code = Column(String(20), unique=True, nullable=False)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    ride_type = Column(_enum(RideType), nullable=False)
    pickup_address = Column(String(500), nullable=False)
    pickup_lat = Column(Float, nullable=False)
    pickup_lng = Column(Float, nullable=False)
    destination_address = Column(String(500), nullable=False)
    destination_lat = Column(Float, nullable=False)
    destination_lng = Column(Float, nullable=False)

    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(String(5), nullable=False)  # "HH:MM"
    calculated_distance = Column(Float, nullable=False)
    required_vehicle_type = Column(String(30), nullable=True)

    status = Column(_enum(RideStatus), default=RideStatus.PENDING, nullable=False)

    assigned_driver_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    assigned_vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True)

    start_mileage = Column(Numeric(12, 2), nullable=True)
    end_mileage = Column(Numeric(12, 2), nullable=True)
    actual_distance = Column(Numeric(12, 2), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Approval records, one slot per stage
    manager_decision = Column(_enum(Decision), nullable=True)
    manager_actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    manager_decided_at = Column(DateTime(timezone=True), nullable=True)
    manager_comment = Column(String(500), nullable=True)
    admin_decision = Column(_enum(Decision), nullable=True)
    admin_actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    admin_decided_at = Column(DateTime(timezone=True), nullable=True)
    admin_comment = Column(String(500), nullable=True)

    idempotency_key = Column(String(64), unique=True, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(
            "(assigned_driver_id IS NULL) = (assigned_vehicle_id IS NULL)",
            name="ck_rides_assignment_pair",
        ),
        CheckConstraint(
            "start_mileage IS NULL OR end_mileage IS NULL "
            "OR end_mileage >= start_mileage",
            name="ck_rides_mileage_monotonic",
        ),
        Index("idx_rides_slot", "scheduled_date", "scheduled_time", "status"),
        Index("idx_rides_status", "status"),
        Index("idx_rides_requester", "requester_id"),
        Index("idx_rides_driver", "assigned_driver_id"),
        Index("idx_rides_idempotency", "idempotency_key"),
    )
