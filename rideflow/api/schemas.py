"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, Field

from rideflow.domain.classifier import is_long_distance
from rideflow.domain.entities import approval_record
from rideflow.domain.enums import ApprovalStage, RideType, Role, VehicleType


# ── Requests ──────────────────────────────────────────────────────────


class LocationIn(BaseModel):
    address: str = Field(..., min_length=1, max_length=500)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class RideCreateRequest(BaseModel):
    ride_type: RideType
    pickup: LocationIn
    destination: LocationIn
    scheduled_date: date
    scheduled_time: str = Field(..., description="24h HH:MM", examples=["09:30"])
    required_vehicle_type: Optional[VehicleType] = None
    distance_km: Optional[float] = Field(
        None,
        ge=0,
        description=(
            "One-way road distance. Doubled server-side for return trips; "
            "estimated when omitted."
        ),
    )
    idempotency_key: Optional[str] = Field(
        None,
        max_length=64,
        description="Client-generated UUID to prevent double-booking on retries.",
    )


class ApproveRequest(BaseModel):
    note: Optional[str] = None


class RejectRequest(BaseModel):
    reason: Optional[str] = None


class AssignRequest(BaseModel):
    driver_id: int
    vehicle_id: int


class StartRideRequest(BaseModel):
    start_mileage: Decimal


class CompleteRideRequest(BaseModel):
    end_mileage: Decimal


class VehicleCreateRequest(BaseModel):
    vehicle_number: str = Field(..., examples=["NB-1985"])
    vehicle_type: VehicleType
    capacity: int = Field(4, ge=1, le=60)


class MaintenanceRequest(BaseModel):
    in_maintenance: bool = True


class UserCreateRequest(BaseModel):
    name: str = Field(..., max_length=120)
    email: str = Field(..., max_length=255, examples=["nimal@example.com"])
    role: Role = Role.REQUESTER
    phone: Optional[str] = Field(None, examples=["0771234567"])


class UserUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=120)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, description="Empty string clears the number")
    role: Optional[Role] = None
    is_active: Optional[bool] = None


# ── Responses ─────────────────────────────────────────────────────────


def _float(value) -> Optional[float]:
    return None if value is None else float(value)


class ApprovalRecordResponse(BaseModel):
    decision: str
    actor_id: int
    decided_at: datetime
    comment: Optional[str] = None


class RideResponse(BaseModel):
    id: int
    ride_code: str
    requester_id: int
    ride_type: str
    pickup_address: str
    pickup_lat: float
    pickup_lng: float
    destination_address: str
    destination_lat: float
    destination_lng: float
    scheduled_date: date
    scheduled_time: str
    calculated_distance: float
    is_long_distance: bool
    required_vehicle_type: Optional[str] = None
    status: str
    assigned_driver_id: Optional[int] = None
    assigned_vehicle_id: Optional[int] = None
    start_mileage: Optional[float] = None
    end_mileage: Optional[float] = None
    actual_distance: Optional[float] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    manager_approval: Optional[ApprovalRecordResponse] = None
    admin_approval: Optional[ApprovalRecordResponse] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_ride(cls, ride) -> "RideResponse":
        def record(stage: ApprovalStage):
            r = approval_record(ride, stage)
            if r is None:
                return None
            return ApprovalRecordResponse(
                decision=r.decision.value,
                actor_id=r.actor_id,
                decided_at=r.decided_at,
                comment=r.comment,
            )

        return cls(
            id=ride.id,
            ride_code=ride.ride_code,
            requester_id=ride.requester_id,
            ride_type=ride.ride_type.value,
            pickup_address=ride.pickup_address,
            pickup_lat=ride.pickup_lat,
            pickup_lng=ride.pickup_lng,
            destination_address=ride.destination_address,
            destination_lat=ride.destination_lat,
            destination_lng=ride.destination_lng,
            scheduled_date=ride.scheduled_date,
            scheduled_time=ride.scheduled_time,
            calculated_distance=ride.calculated_distance,
            is_long_distance=is_long_distance(ride.calculated_distance),
            required_vehicle_type=ride.required_vehicle_type,
            status=ride.status.value,
            assigned_driver_id=ride.assigned_driver_id,
            assigned_vehicle_id=ride.assigned_vehicle_id,
            start_mileage=_float(ride.start_mileage),
            end_mileage=_float(ride.end_mileage),
            actual_distance=_float(ride.actual_distance),
            started_at=ride.started_at,
            completed_at=ride.completed_at,
            cancelled_at=ride.cancelled_at,
            manager_approval=record(ApprovalStage.MANAGER),
            admin_approval=record(ApprovalStage.ADMIN),
            created_at=ride.created_at,
        )


class DriverAvailabilityResponse(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    is_available: bool
    is_current: bool = False


class VehicleAvailabilityResponse(BaseModel):
    id: int
    vehicle_number: str
    vehicle_type: str
    status: str
    is_available: bool
    is_current: bool = False


class VehicleResponse(BaseModel):
    id: int
    vehicle_number: str
    vehicle_type: str
    capacity: int
    status: str
    total_mileage: float
    monthly_mileage: float

    @classmethod
    def from_vehicle(cls, vehicle) -> "VehicleResponse":
        return cls(
            id=vehicle.id,
            vehicle_number=vehicle.vehicle_number,
            vehicle_type=vehicle.vehicle_type,
            capacity=vehicle.capacity,
            status=vehicle.status.value,
            total_mileage=_float(vehicle.total_mileage) or 0.0,
            monthly_mileage=_float(vehicle.monthly_mileage) or 0.0,
        )


class MileageSummaryResponse(BaseModel):
    total_mileage: float
    monthly_mileage: float
    status_counts: dict[str, int]
    vehicles: list[VehicleResponse]


class ResetMileageResponse(BaseModel):
    vehicles_reset: int


class HealthResponse(BaseModel):
    status: str = "ok"


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    driver_status: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            role=user.role.value,
            driver_status=user.driver_status.value if user.driver_status else None,
            is_active=user.is_active,
            created_at=user.created_at,
        )


class RideSummaryResponse(BaseModel):
    total_rides: int
    completed_rides: int
    cancelled_rides: int
    rejected_rides: int
    pending_rides: int
    active_rides: int
    long_distance_rides: int
    total_distance: float
    average_distance: float
    completion_rate: float

    @classmethod
    def from_summary(cls, summary) -> "RideSummaryResponse":
        return cls(
            total_rides=summary.total_rides,
            completed_rides=summary.completed_rides,
            cancelled_rides=summary.cancelled_rides,
            rejected_rides=summary.rejected_rides,
            pending_rides=summary.pending_rides,
            active_rides=summary.active_rides,
            long_distance_rides=summary.long_distance_rides,
            total_distance=float(summary.total_distance),
            average_distance=float(summary.average_distance),
            completion_rate=summary.completion_rate,
        )


class DriverStatsResponse(BaseModel):
    driver_id: int
    total_rides: int
    completed_rides: int
    total_distance: float
    monthly_rides: int
    monthly_distance: float


class DriverDailyResponse(BaseModel):
    day: date
    total: int
    active: int
    completed: int
    rides: list[RideResponse]


class DashboardStatsResponse(BaseModel):
    awaiting_manager: int
    awaiting_admin: int
    ready_for_assignment: int
    assigned_rides: int
    live_rides: int
    completed_today: int
    total_drivers: int
    available_drivers: int
    total_vehicles: int
    available_vehicles: int
    maintenance_vehicles: int
    monthly_mileage: float


class MonthlyRidesResponse(BaseModel):
    year: int
    month: int
    summary: RideSummaryResponse
    per_day: dict[date, int]


class DriverPerformanceResponse(BaseModel):
    driver_id: int
    name: str
    summary: RideSummaryResponse


class VehicleUsageResponse(BaseModel):
    vehicle_id: int
    vehicle_number: str
    vehicle_type: str
    summary: RideSummaryResponse


class VehicleStatsResponse(BaseModel):
    vehicle: VehicleResponse
    summary: RideSummaryResponse
    last_ride_date: Optional[date] = None


class ErrorResponse(BaseModel):
    detail: Union[str, list[dict]]
    code: Optional[str] = None


# Documented on every router; the handlers in ``app`` produce this shape
ERROR_RESPONSES: dict = {
    401: {"model": ErrorResponse, "description": "Missing or unknown X-User-Id"},
    403: {"model": ErrorResponse, "description": "Role not allowed"},
    404: {"model": ErrorResponse, "description": "Not found"},
    409: {"model": ErrorResponse, "description": "Conflicting state"},
    422: {"model": ErrorResponse, "description": "Validation failed"},
}
