"""
Admin / observability endpoints
===============================

GET /api/v1/admin/notification-events -- event names published by the API
GET /api/v1/admin/health              -- simple health check
"""

from fastapi import APIRouter, Request

from rideflow.api.middleware import limiter
from rideflow.api.schemas import ERROR_RESPONSES, HealthResponse
from rideflow.config import settings
from rideflow.domain.enums import NotificationEvent

router = APIRouter(prefix="/admin", tags=["admin"], responses=ERROR_RESPONSES)


@router.get(
    "/notification-events",
    response_model=list[str],
    summary="List the notification events subscribers may receive",
)
@limiter.limit(settings.rate_limit)
async def notification_events(request: Request):
    return [e.value for e in NotificationEvent]


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
