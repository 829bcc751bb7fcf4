"""
User endpoints
==============

POST   /api/v1/users                        -- create an account (admin)
GET    /api/v1/users?role=                  -- list accounts (admin)
GET    /api/v1/users/counts                 -- active accounts per role (admin)
GET    /api/v1/users/drivers                -- drivers (admin / manager)
GET    /api/v1/users/drivers/{id}/stats     -- driver statistics
GET    /api/v1/users/{user_id}              -- one account (admin, or yourself)
PATCH  /api/v1/users/{user_id}              -- edit / (re)activate (admin)
DELETE /api/v1/users/{user_id}              -- deactivate (admin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from rideflow.api.dependencies import get_actor, get_users
from rideflow.api.middleware import limiter
from rideflow.api.schemas import (
    ERROR_RESPONSES,
    DriverStatsResponse,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)
from rideflow.config import settings
from rideflow.domain.entities import Actor
from rideflow.domain.enums import Role
from rideflow.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"], responses=ERROR_RESPONSES)


@router.post("", status_code=201, response_model=UserResponse)
@limiter.limit(settings.rate_limit)
async def create_user(
    request: Request,
    body: UserCreateRequest,
    actor: Actor = Depends(get_actor),
    users: UserService = Depends(get_users),
):
    user = await users.create_user(
        actor, name=body.name, email=body.email, role=body.role, phone=body.phone
    )
    return UserResponse.from_user(user)


@router.get("", response_model=list[UserResponse])
@limiter.limit(settings.rate_limit)
async def list_users(
    request: Request,
    role: Optional[Role] = Query(None),
    actor: Actor = Depends(get_actor),
    users: UserService = Depends(get_users),
):
    return [UserResponse.from_user(u) for u in await users.list_users(actor, role)]


@router.get("/counts", response_model=dict[str, int])
@limiter.limit(settings.rate_limit)
async def user_counts(
    request: Request,
    actor: Actor = Depends(get_actor),
    users: UserService = Depends(get_users),
):
    return {role.value: n for role, n in (await users.user_counts(actor)).items()}


@router.get("/drivers", response_model=list[UserResponse])
@limiter.limit(settings.rate_limit)
async def list_drivers(
    request: Request,
    include_inactive: bool = Query(False),
    actor: Actor = Depends(get_actor),
    users: UserService = Depends(get_users),
):
    drivers = await users.list_drivers(actor, include_inactive=include_inactive)
    return [UserResponse.from_user(d) for d in drivers]


@router.get("/drivers/{driver_id}/stats", response_model=DriverStatsResponse)
@limiter.limit(settings.rate_limit)
async def driver_stats(
    request: Request,
    driver_id: int,
    actor: Actor = Depends(get_actor),
    users: UserService = Depends(get_users),
):
    stats = await users.driver_stats(actor, driver_id)
    return DriverStatsResponse(
        driver_id=stats.driver_id,
        total_rides=stats.total_rides,
        completed_rides=stats.completed_rides,
        total_distance=float(stats.total_distance),
        monthly_rides=stats.monthly_rides,
        monthly_distance=float(stats.monthly_distance),
    )


@router.get("/{user_id}", response_model=UserResponse)
@limiter.limit(settings.rate_limit)
async def get_user(
    request: Request,
    user_id: int,
    actor: Actor = Depends(get_actor),
    users: UserService = Depends(get_users),
):
    return UserResponse.from_user(await users.get_user(actor, user_id))


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    description="``is_active: true`` reactivates a deactivated account.",
)
@limiter.limit(settings.rate_limit)
async def update_user(
    request: Request,
    user_id: int,
    body: UserUpdateRequest,
    actor: Actor = Depends(get_actor),
    users: UserService = Depends(get_users),
):
    user = await users.update_user(
        actor,
        user_id,
        name=body.name,
        email=body.email,
        phone=body.phone,
        role=body.role,
    )
    if body.is_active is True and not user.is_active:
        user = await users.reactivate_user(actor, user_id)
    elif body.is_active is False and user.is_active:
        user = await users.deactivate_user(actor, user_id)
    return UserResponse.from_user(user)


@router.delete(
    "/{user_id}",
    response_model=UserResponse,
    description="Soft delete: the account is deactivated, its rides are kept.",
)
@limiter.limit(settings.rate_limit)
async def deactivate_user(
    request: Request,
    user_id: int,
    actor: Actor = Depends(get_actor),
    users: UserService = Depends(get_users),
):
    return UserResponse.from_user(await users.deactivate_user(actor, user_id))
