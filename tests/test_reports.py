"""Dashboard and report tests against SQLite."""

from decimal import Decimal

import pytest
import pytest_asyncio

from rideflow.domain.errors import NotFound, PermissionDenied, ValidationFailed
from rideflow.services.fleet import FleetService
from rideflow.services.reports import ReportService
from tests.conftest import book


@pytest.fixture
def reports(db_session) -> ReportService:
    return ReportService(db_session)


@pytest_asyncio.fixture
async def month_of_rides(workflow, cast, tomorrow):
    """One long ride awaiting the manager, one short one awaiting the admin
    and one 15 km completed ride (driver1 / vehicle1)."""
    await book(workflow, cast.requester, 18.0, tomorrow, "08:00")
    await book(workflow, cast.requester, 4.0, tomorrow, "09:00")
    done_id = (await book(workflow, cast.requester, 6.0, tomorrow, "10:00")).id
    await workflow.admin_approve(cast.admin, done_id)
    await workflow.assign_ride(
        cast.admin, done_id, cast.driver1.user_id, cast.vehicle1_id
    )
    await workflow.start_ride(cast.driver1, done_id, 10)
    await workflow.complete_ride(cast.driver1, done_id, 25)
    return done_id


class TestMyStats:
    @pytest.mark.asyncio
    async def test_requester_summary(self, reports, cast, month_of_rides):
        mine = await reports.my_stats(cast.requester)
        assert mine.total_rides == 3
        assert mine.completed_rides == 1
        assert mine.pending_rides == 2
        assert mine.long_distance_rides == 1
        assert mine.total_distance == Decimal("15")

        assert (await reports.my_stats(cast.other_requester)).total_rides == 0
        with pytest.raises(PermissionDenied):
            await reports.my_stats(cast.admin)


class TestDashboard:
    @pytest.mark.asyncio
    async def test_counters(self, reports, cast, tomorrow, month_of_rides):
        stats = await reports.dashboard_stats(cast.admin, today=tomorrow)
        assert stats["awaiting_manager"] == 1
        assert stats["awaiting_admin"] == 1
        assert stats["live_rides"] == 0
        assert stats["completed_today"] == 1
        assert (stats["total_drivers"], stats["available_drivers"]) == (2, 2)
        assert stats["total_vehicles"] == 3
        assert stats["available_vehicles"] == 2
        assert stats["maintenance_vehicles"] == 1
        assert stats["monthly_mileage"] == Decimal("15")

    @pytest.mark.asyncio
    async def test_admin_only(self, reports, cast):
        with pytest.raises(PermissionDenied):
            await reports.dashboard_stats(cast.manager)


class TestMonthlyReports:
    @pytest.mark.asyncio
    async def test_monthly_rides(self, reports, cast, tomorrow, month_of_rides):
        report = await reports.monthly_rides(
            cast.manager, tomorrow.year, tomorrow.month
        )
        assert report["summary"].total_rides == 3
        assert report["summary"].completed_rides == 1
        assert report["per_day"] == {tomorrow: 3}

    @pytest.mark.asyncio
    async def test_other_month_is_empty(self, reports, cast, tomorrow, month_of_rides):
        report = await reports.monthly_rides(cast.admin, tomorrow.year - 1, 1)
        assert report["summary"].total_rides == 0
        assert report["per_day"] == {}

    @pytest.mark.asyncio
    async def test_driver_performance(self, reports, cast, tomorrow, month_of_rides):
        rows = await reports.driver_performance(
            cast.manager, tomorrow.year, tomorrow.month
        )
        assert [d.id for d, _ in rows] == [cast.driver1.user_id, cast.driver2.user_id]
        assert rows[0][1].completed_rides == 1
        assert rows[1][1].total_rides == 0

    @pytest.mark.asyncio
    async def test_vehicle_usage(self, reports, cast, tomorrow, month_of_rides):
        rows = await reports.vehicle_usage(cast.admin, tomorrow.year, tomorrow.month)
        assert rows[0][0].id == cast.vehicle1_id
        assert rows[0][1].total_distance == Decimal("15")
        assert len(rows) == 3

    @pytest.mark.asyncio
    async def test_bad_month(self, reports, cast):
        with pytest.raises(ValidationFailed):
            await reports.monthly_rides(cast.manager, 2026, 13)

    @pytest.mark.asyncio
    async def test_requesters_refused(self, reports, cast):
        with pytest.raises(PermissionDenied):
            await reports.vehicle_usage(cast.requester, 2026, 3)


class TestVehicleStats:
    @pytest.mark.asyncio
    async def test_lifetime_figures(self, db_session, cast, tomorrow, month_of_rides):
        fleet = FleetService(db_session)
        stats = await fleet.vehicle_stats(cast.manager, cast.vehicle1_id)
        assert stats["vehicle"].vehicle_number == "NB-1985"
        assert stats["summary"].completed_rides == 1
        assert stats["last_ride_date"] == tomorrow

        idle = await fleet.vehicle_stats(cast.admin, cast.vehicle2_id)
        assert idle["summary"].total_rides == 0
        assert idle["last_ride_date"] is None

    @pytest.mark.asyncio
    async def test_access(self, db_session, cast):
        fleet = FleetService(db_session)
        with pytest.raises(PermissionDenied):
            await fleet.vehicle_stats(cast.requester, cast.vehicle1_id)
        with pytest.raises(NotFound):
            await fleet.vehicle_stats(cast.admin, 9999)
