"""
Ride endpoints
==============

POST  /api/v1/rides                          -- book a ride (routed to an approval gate)
GET   /api/v1/rides/mine                     -- requester's rides
GET   /api/v1/rides/awaiting-manager         -- manager queue
GET   /api/v1/rides/awaiting-admin           -- admin approval queue
GET   /api/v1/rides/ready-for-assignment     -- approved / assigned rides
GET   /api/v1/rides/driver/assigned          -- driver's upcoming rides
GET   /api/v1/rides/driver/daily?date=       -- driver run sheet for one day
GET   /api/v1/rides/my-stats                 -- requester ride statistics
GET   /api/v1/rides/history                  -- terminal rides, scoped by role
GET   /api/v1/rides/available-drivers        -- drivers annotated for a slot
GET   /api/v1/rides/available-vehicles       -- vehicles annotated for a slot
GET   /api/v1/rides/{ride_id}
PATCH /api/v1/rides/{ride_id}/manager-approve | manager-reject
PATCH /api/v1/rides/{ride_id}/admin-approve   | admin-reject
PATCH /api/v1/rides/{ride_id}/assign          | reassign
PATCH /api/v1/rides/{ride_id}/start           | complete
PATCH /api/v1/rides/{ride_id}/cancel

Every endpoint identifies the caller with the ``X-User-Id`` header.
Workflow errors are mapped to HTTP by the handler in ``rideflow.api.app``.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from rideflow.api.dependencies import get_actor, get_reports, get_workflow
from rideflow.api.middleware import limiter
from rideflow.api.schemas import (
    ERROR_RESPONSES,
    ApproveRequest,
    AssignRequest,
    CompleteRideRequest,
    DriverAvailabilityResponse,
    DriverDailyResponse,
    RejectRequest,
    RideCreateRequest,
    RideResponse,
    RideSummaryResponse,
    StartRideRequest,
    VehicleAvailabilityResponse,
)
from rideflow.config import settings
from rideflow.domain.entities import Actor, Location
from rideflow.domain.enums import VehicleType
from rideflow.services.reports import ReportService
from rideflow.services.workflow import RideWorkflow

router = APIRouter(prefix="/rides", tags=["rides"], responses=ERROR_RESPONSES)


def _many(rides) -> list[RideResponse]:
    return [RideResponse.from_ride(r) for r in rides]


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Book a ride",
    description=(
        "Return trips are billed on the doubled distance. Rides over the "
        "manager threshold start in awaiting_manager, others in awaiting_admin."
    ),
)
@limiter.limit(settings.rate_limit)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    ride = await workflow.create_ride(
        actor,
        ride_type=body.ride_type,
        pickup=Location(body.pickup.address, body.pickup.lat, body.pickup.lng),
        destination=Location(
            body.destination.address, body.destination.lat, body.destination.lng
        ),
        scheduled_date=body.scheduled_date,
        scheduled_time=body.scheduled_time,
        required_vehicle_type=(
            body.required_vehicle_type.value if body.required_vehicle_type else None
        ),
        distance_km=body.distance_km,
        idempotency_key=body.idempotency_key,
    )
    return RideResponse.from_ride(ride)


# ── Queues ────────────────────────────────────────────────────────────


@router.get("/mine", response_model=list[RideResponse], summary="My rides")
@limiter.limit(settings.rate_limit)
async def my_rides(
    request: Request,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    return _many(await workflow.my_rides(actor))


@router.get("/awaiting-manager", response_model=list[RideResponse])
@limiter.limit(settings.rate_limit)
async def awaiting_manager(
    request: Request,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    return _many(await workflow.awaiting_manager(actor))


@router.get("/awaiting-admin", response_model=list[RideResponse])
@limiter.limit(settings.rate_limit)
async def awaiting_admin(
    request: Request,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    return _many(await workflow.awaiting_admin(actor))


@router.get("/ready-for-assignment", response_model=list[RideResponse])
@limiter.limit(settings.rate_limit)
async def ready_for_assignment(
    request: Request,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    return _many(await workflow.ready_for_assignment(actor))


@router.get("/driver/assigned", response_model=list[RideResponse])
@limiter.limit(settings.rate_limit)
async def driver_assigned(
    request: Request,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    return _many(await workflow.driver_rides(actor))


@router.get(
    "/driver/daily",
    response_model=DriverDailyResponse,
    summary="Driver run sheet for one day",
)
@limiter.limit(settings.rate_limit)
async def driver_daily(
    request: Request,
    day: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    sheet = await workflow.driver_daily(actor, day or date.today())
    return DriverDailyResponse(
        day=sheet["date"],
        total=sheet["total"],
        active=sheet["active"],
        completed=sheet["completed"],
        rides=_many(sheet["rides"]),
    )


@router.get("/my-stats", response_model=RideSummaryResponse, summary="My statistics")
@limiter.limit(settings.rate_limit)
async def my_stats(
    request: Request,
    actor: Actor = Depends(get_actor),
    reports: ReportService = Depends(get_reports),
):
    return RideSummaryResponse.from_summary(await reports.my_stats(actor))


@router.get("/history", response_model=list[RideResponse])
@limiter.limit(settings.rate_limit)
async def history(
    request: Request,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    return _many(await workflow.history(actor))


# ── Availability ──────────────────────────────────────────────────────


@router.get(
    "/available-drivers",
    response_model=list[DriverAvailabilityResponse],
    summary="Drivers annotated with availability for a slot",
)
@limiter.limit(settings.rate_limit)
async def available_drivers(
    request: Request,
    day: date = Query(..., alias="date"),
    time: str = Query(..., description="HH:MM"),
    exclude_ride_id: Optional[int] = Query(None),
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    entries = await workflow.list_available_drivers(actor, day, time, exclude_ride_id)
    return [
        DriverAvailabilityResponse(
            id=e.candidate.id,
            name=e.candidate.name,
            phone=e.candidate.phone,
            is_available=e.is_available,
            is_current=e.is_current,
        )
        for e in entries
    ]


@router.get(
    "/available-vehicles",
    response_model=list[VehicleAvailabilityResponse],
    summary="Vehicles annotated with availability for a slot",
)
@limiter.limit(settings.rate_limit)
async def available_vehicles(
    request: Request,
    day: date = Query(..., alias="date"),
    time: str = Query(..., description="HH:MM"),
    exclude_ride_id: Optional[int] = Query(None),
    vehicle_type: Optional[VehicleType] = Query(None),
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    entries = await workflow.list_available_vehicles(
        actor,
        day,
        time,
        exclude_ride_id,
        vehicle_type.value if vehicle_type else None,
    )
    return [
        VehicleAvailabilityResponse(
            id=e.candidate.id,
            vehicle_number=e.candidate.vehicle_number,
            vehicle_type=e.candidate.vehicle_type,
            status=e.candidate.status.value,
            is_available=e.is_available,
            is_current=e.is_current,
        )
        for e in entries
    ]


# ── Single ride ───────────────────────────────────────────────────────


@router.get("/{ride_id}", response_model=RideResponse, summary="Get a ride")
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: int,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    return RideResponse.from_ride(await workflow.get_ride(actor, ride_id))


@router.patch("/{ride_id}/manager-approve", response_model=RideResponse)
@limiter.limit(settings.rate_limit)
async def manager_approve(
    request: Request,
    ride_id: int,
    body: Optional[ApproveRequest] = None,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    note = body.note if body else None
    return RideResponse.from_ride(await workflow.manager_approve(actor, ride_id, note))


@router.patch("/{ride_id}/manager-reject", response_model=RideResponse)
@limiter.limit(settings.rate_limit)
async def manager_reject(
    request: Request,
    ride_id: int,
    body: RejectRequest,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    return RideResponse.from_ride(
        await workflow.manager_reject(actor, ride_id, body.reason)
    )


@router.patch(
    "/{ride_id}/admin-approve",
    response_model=RideResponse,
    description="A note is mandatory when the ride is long-distance.",
)
@limiter.limit(settings.rate_limit)
async def admin_approve(
    request: Request,
    ride_id: int,
    body: Optional[ApproveRequest] = None,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    note = body.note if body else None
    return RideResponse.from_ride(await workflow.admin_approve(actor, ride_id, note))


@router.patch("/{ride_id}/admin-reject", response_model=RideResponse)
@limiter.limit(settings.rate_limit)
async def admin_reject(
    request: Request,
    ride_id: int,
    body: RejectRequest,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    return RideResponse.from_ride(
        await workflow.admin_reject(actor, ride_id, body.reason)
    )


@router.patch("/{ride_id}/assign", response_model=RideResponse)
@limiter.limit(settings.rate_limit)
async def assign_ride(
    request: Request,
    ride_id: int,
    body: AssignRequest,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    ride = await workflow.assign_ride(actor, ride_id, body.driver_id, body.vehicle_id)
    return RideResponse.from_ride(ride)


@router.patch("/{ride_id}/reassign", response_model=RideResponse)
@limiter.limit(settings.rate_limit)
async def reassign_ride(
    request: Request,
    ride_id: int,
    body: AssignRequest,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    ride = await workflow.reassign_ride(
        actor, ride_id, body.driver_id, body.vehicle_id
    )
    return RideResponse.from_ride(ride)


@router.patch("/{ride_id}/start", response_model=RideResponse)
@limiter.limit(settings.rate_limit)
async def start_ride(
    request: Request,
    ride_id: int,
    body: StartRideRequest,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    ride = await workflow.start_ride(actor, ride_id, body.start_mileage)
    return RideResponse.from_ride(ride)


@router.patch("/{ride_id}/complete", response_model=RideResponse)
@limiter.limit(settings.rate_limit)
async def complete_ride(
    request: Request,
    ride_id: int,
    body: CompleteRideRequest,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    ride = await workflow.complete_ride(actor, ride_id, body.end_mileage)
    return RideResponse.from_ride(ride)


@router.patch(
    "/{ride_id}/cancel",
    response_model=RideResponse,
    description="Requester-only, while the ride is still awaiting approval.",
)
@limiter.limit(settings.rate_limit)
async def cancel_ride(
    request: Request,
    ride_id: int,
    actor: Actor = Depends(get_actor),
    workflow: RideWorkflow = Depends(get_workflow),
):
    return RideResponse.from_ride(await workflow.cancel_ride(actor, ride_id))
