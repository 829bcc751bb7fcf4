"""
Vehicle endpoints
=================

POST  /api/v1/vehicles                          -- register a vehicle (admin)
GET   /api/v1/vehicles                          -- list vehicles (admin / manager)
GET   /api/v1/vehicles/mileage-summary          -- fleet mileage totals (admin)
POST  /api/v1/vehicles/reset-monthly-mileage    -- zero monthly counters (admin)
GET   /api/v1/vehicles/{vehicle_id}/stats       -- lifetime ride figures
PATCH /api/v1/vehicles/{vehicle_id}/maintenance -- set / clear maintenance (admin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from rideflow.api.dependencies import get_actor, get_fleet
from rideflow.api.middleware import limiter
from rideflow.api.schemas import (
    ERROR_RESPONSES,
    MaintenanceRequest,
    MileageSummaryResponse,
    ResetMileageResponse,
    RideSummaryResponse,
    VehicleCreateRequest,
    VehicleResponse,
    VehicleStatsResponse,
)
from rideflow.config import settings
from rideflow.domain.entities import Actor
from rideflow.domain.enums import VehicleType
from rideflow.services.fleet import FleetService

router = APIRouter(prefix="/vehicles", tags=["vehicles"], responses=ERROR_RESPONSES)


@router.post("", status_code=201, response_model=VehicleResponse)
@limiter.limit(settings.rate_limit)
async def create_vehicle(
    request: Request,
    body: VehicleCreateRequest,
    actor: Actor = Depends(get_actor),
    fleet: FleetService = Depends(get_fleet),
):
    vehicle = await fleet.create_vehicle(
        actor, body.vehicle_number, body.vehicle_type.value, body.capacity
    )
    return VehicleResponse.from_vehicle(vehicle)


@router.get("", response_model=list[VehicleResponse])
@limiter.limit(settings.rate_limit)
async def list_vehicles(
    request: Request,
    vehicle_type: Optional[VehicleType] = Query(None),
    actor: Actor = Depends(get_actor),
    fleet: FleetService = Depends(get_fleet),
):
    return [
        VehicleResponse.from_vehicle(v)
        for v in await fleet.list_vehicles(
            actor, vehicle_type.value if vehicle_type else None
        )
    ]


@router.get("/mileage-summary", response_model=MileageSummaryResponse)
@limiter.limit(settings.rate_limit)
async def mileage_summary(
    request: Request,
    actor: Actor = Depends(get_actor),
    fleet: FleetService = Depends(get_fleet),
):
    summary = await fleet.mileage_summary(actor)
    return MileageSummaryResponse(
        total_mileage=float(summary["total_mileage"]),
        monthly_mileage=float(summary["monthly_mileage"]),
        status_counts=summary["status_counts"],
        vehicles=[VehicleResponse.from_vehicle(v) for v in summary["vehicles"]],
    )


@router.post("/reset-monthly-mileage", response_model=ResetMileageResponse)
@limiter.limit("5/minute")
async def reset_monthly_mileage(
    request: Request,
    actor: Actor = Depends(get_actor),
    fleet: FleetService = Depends(get_fleet),
):
    return ResetMileageResponse(vehicles_reset=await fleet.reset_monthly_mileage(actor))


@router.patch("/{vehicle_id}/maintenance", response_model=VehicleResponse)
@limiter.limit(settings.rate_limit)
async def set_maintenance(
    request: Request,
    vehicle_id: int,
    body: MaintenanceRequest,
    actor: Actor = Depends(get_actor),
    fleet: FleetService = Depends(get_fleet),
):
    vehicle = await fleet.set_maintenance(actor, vehicle_id, body.in_maintenance)
    return VehicleResponse.from_vehicle(vehicle)


@router.get("/{vehicle_id}/stats", response_model=VehicleStatsResponse)
@limiter.limit(settings.rate_limit)
async def vehicle_stats(
    request: Request,
    vehicle_id: int,
    actor: Actor = Depends(get_actor),
    fleet: FleetService = Depends(get_fleet),
):
    stats = await fleet.vehicle_stats(actor, vehicle_id)
    return VehicleStatsResponse(
        vehicle=VehicleResponse.from_vehicle(stats["vehicle"]),
        summary=RideSummaryResponse.from_summary(stats["summary"]),
        last_ride_date=stats["last_ride_date"],
    )
