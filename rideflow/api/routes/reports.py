"""
Report endpoints
================

GET /api/v1/reports/dashboard-stats                      -- admin dashboard counters
GET /api/v1/reports/monthly-rides?year=&month=           -- rides scheduled in a month
GET /api/v1/reports/driver-performance?year=&month=      -- per-driver summary
GET /api/v1/reports/vehicle-usage?year=&month=           -- per-vehicle summary

Monthly reports default to the current month and are open to managers and
admins.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from rideflow.api.dependencies import get_actor, get_reports
from rideflow.api.middleware import limiter
from rideflow.api.schemas import (
    ERROR_RESPONSES,
    DashboardStatsResponse,
    DriverPerformanceResponse,
    MonthlyRidesResponse,
    RideSummaryResponse,
    VehicleUsageResponse,
)
from rideflow.config import settings
from rideflow.domain.entities import Actor
from rideflow.services.reports import ReportService

router = APIRouter(prefix="/reports", tags=["reports"], responses=ERROR_RESPONSES)


def _month(year: Optional[int], month: Optional[int]) -> tuple[int, int]:
    today = date.today()
    return year or today.year, month or today.month


@router.get("/dashboard-stats", response_model=DashboardStatsResponse)
@limiter.limit(settings.rate_limit)
async def dashboard_stats(
    request: Request,
    actor: Actor = Depends(get_actor),
    reports: ReportService = Depends(get_reports),
):
    stats = await reports.dashboard_stats(actor)
    stats["monthly_mileage"] = float(stats["monthly_mileage"])
    return DashboardStatsResponse(**stats)


@router.get("/monthly-rides", response_model=MonthlyRidesResponse)
@limiter.limit(settings.rate_limit)
async def monthly_rides(
    request: Request,
    year: Optional[int] = Query(None, ge=2000, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    actor: Actor = Depends(get_actor),
    reports: ReportService = Depends(get_reports),
):
    report = await reports.monthly_rides(actor, *_month(year, month))
    return MonthlyRidesResponse(
        year=report["year"],
        month=report["month"],
        summary=RideSummaryResponse.from_summary(report["summary"]),
        per_day=report["per_day"],
    )


@router.get("/driver-performance", response_model=list[DriverPerformanceResponse])
@limiter.limit(settings.rate_limit)
async def driver_performance(
    request: Request,
    year: Optional[int] = Query(None, ge=2000, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    actor: Actor = Depends(get_actor),
    reports: ReportService = Depends(get_reports),
):
    rows = await reports.driver_performance(actor, *_month(year, month))
    return [
        DriverPerformanceResponse(
            driver_id=driver.id,
            name=driver.name,
            summary=RideSummaryResponse.from_summary(summary),
        )
        for driver, summary in rows
    ]


@router.get("/vehicle-usage", response_model=list[VehicleUsageResponse])
@limiter.limit(settings.rate_limit)
async def vehicle_usage(
    request: Request,
    year: Optional[int] = Query(None, ge=2000, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    actor: Actor = Depends(get_actor),
    reports: ReportService = Depends(get_reports),
):
    rows = await reports.vehicle_usage(actor, *_month(year, month))
    return [
        VehicleUsageResponse(
            vehicle_id=vehicle.id,
            vehicle_number=vehicle.vehicle_number,
            vehicle_type=vehicle.vehicle_type,
            summary=RideSummaryResponse.from_summary(summary),
        )
        for vehicle, summary in rows
    ]
