"""
Integration tests for the REST API endpoints.

Runs the real app over SQLite; the DB session, notifier and Redis
dependencies are overridden.  Callers identify themselves with the
``X-User-Id`` header.
"""

from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from rideflow.api.app import create_app
from rideflow.api.dependencies import get_db, get_notifier
from rideflow.api.middleware import limiter
from rideflow.infrastructure.redis_client import get_redis

DAY = (date.today() + timedelta(days=2)).isoformat()


def _as(actor_or_id) -> dict[str, str]:
    user_id = getattr(actor_or_id, "user_id", actor_or_id)
    return {"X-User-Id": str(user_id)}


def _ride_body(distance_km=6.0, time="09:00", **overrides):
    body = {
        "ride_type": "one_way",
        "pickup": {"address": "Head Office", "lat": 6.9010, "lng": 79.8535},
        "destination": {"address": "Port of Colombo", "lat": 6.9497, "lng": 79.8428},
        "scheduled_date": DAY,
        "scheduled_time": time,
        "distance_km": distance_km,
    }
    body.update(overrides)
    return body


# ── Fixture ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def redis_mock():
    mock = AsyncMock()
    mock.set = AsyncMock(return_value=True)
    mock.eval = AsyncMock(return_value=1)
    return mock


@pytest_asyncio.fixture
async def client(session_factory, cast, notifier, redis_mock):
    """AsyncClient backed by SQLite with a recording notifier."""

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _test_notifier():
        return notifier

    async def _test_redis():
        return redis_mock

    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    app.dependency_overrides[get_notifier] = _test_notifier
    app.dependency_overrides[get_redis] = _test_redis
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ── Tests ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_notification_events(client: AsyncClient):
    resp = await client.get("/api/v1/admin/notification-events")
    assert "ride_unassigned" in resp.json()


@pytest.mark.asyncio
async def test_missing_user_header_is_401(client: AsyncClient):
    resp = await client.get("/api/v1/rides/mine")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_unknown_user_is_401(client: AsyncClient):
    resp = await client.get("/api/v1/rides/mine", headers=_as(9999))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_inactive_user_is_403(client: AsyncClient, cast):
    resp = await client.get("/api/v1/rides/mine", headers=_as(cast.inactive_driver_id))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_create_short_ride(client: AsyncClient, cast):
    resp = await client.post(
        "/api/v1/rides", json=_ride_body(6.0), headers=_as(cast.requester)
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "awaiting_admin"
    assert data["is_long_distance"] is False
    assert data["ride_code"].startswith("RD-")
    assert data["requester_id"] == cast.requester.user_id


@pytest.mark.asyncio
async def test_create_return_trip_goes_to_manager(client: AsyncClient, cast):
    resp = await client.post(
        "/api/v1/rides",
        json=_ride_body(9.0, ride_type="return"),
        headers=_as(cast.requester),
    )
    assert resp.status_code == 201
    assert resp.json()["calculated_distance"] == 18.0
    assert resp.json()["status"] == "awaiting_manager"


@pytest.mark.asyncio
async def test_admin_cannot_book(client: AsyncClient, cast):
    resp = await client.post("/api/v1/rides", json=_ride_body(), headers=_as(cast.admin))
    assert resp.status_code == 403
    assert resp.json()["code"] == "PermissionDenied"


@pytest.mark.asyncio
async def test_bad_time_is_422(client: AsyncClient, cast):
    resp = await client.post(
        "/api/v1/rides", json=_ride_body(time="25:00"), headers=_as(cast.requester)
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "InvalidBooking"


@pytest.mark.asyncio
async def test_idempotency_key(client: AsyncClient, cast):
    body = _ride_body(idempotency_key="unique-key-123")
    resp1 = await client.post("/api/v1/rides", json=body, headers=_as(cast.requester))
    resp2 = await client.post("/api/v1/rides", json=body, headers=_as(cast.requester))
    assert resp1.status_code == 201
    assert resp2.status_code == 201
    assert resp1.json()["id"] == resp2.json()["id"]


@pytest.mark.asyncio
async def test_full_lifecycle(client: AsyncClient, cast, notifier):
    created = await client.post(
        "/api/v1/rides", json=_ride_body(18.0), headers=_as(cast.requester)
    )
    ride_id = created.json()["id"]
    assert created.json()["is_long_distance"] is True

    queue = await client.get("/api/v1/rides/awaiting-manager", headers=_as(cast.manager))
    assert [r["id"] for r in queue.json()] == [ride_id]

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/manager-approve", headers=_as(cast.manager)
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "awaiting_admin"
    assert resp.json()["manager_approval"]["decision"] == "approved"

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/admin-approve", json={}, headers=_as(cast.admin)
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "NoteRequired"

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/admin-approve",
        json={"note": "Client VIP request"},
        headers=_as(cast.admin),
    )
    assert resp.status_code == 200
    assert resp.json()["admin_approval"]["comment"] == "Client VIP request"

    drivers = await client.get(
        "/api/v1/rides/available-drivers",
        params={"date": DAY, "time": "09:00"},
        headers=_as(cast.admin),
    )
    assert drivers.status_code == 200
    assert all(d["is_available"] for d in drivers.json())

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/assign",
        json={"driver_id": cast.driver1.user_id, "vehicle_id": cast.vehicle1_id},
        headers=_as(cast.admin),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "assigned"

    assigned = await client.get("/api/v1/rides/driver/assigned", headers=_as(cast.driver1))
    assert [r["id"] for r in assigned.json()] == [ride_id]

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/start",
        json={"start_mileage": 1000.0},
        headers=_as(cast.driver1),
    )
    assert resp.json()["status"] == "in_progress"

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/complete",
        json={"end_mileage": 1042.3},
        headers=_as(cast.driver1),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"
    assert resp.json()["actual_distance"] == pytest.approx(42.3)

    history = await client.get("/api/v1/rides/history", headers=_as(cast.requester))
    assert [r["id"] for r in history.json()] == [ride_id]
    assert "ride_completed" in [e.value for e in notifier.events()]


@pytest.mark.asyncio
async def test_reject_requires_reason(client: AsyncClient, cast):
    created = await client.post(
        "/api/v1/rides", json=_ride_body(), headers=_as(cast.requester)
    )
    ride_id = created.json()["id"]
    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/admin-reject",
        json={"reason": "nope"},
        headers=_as(cast.admin),
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "ReasonTooShort"

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/admin-reject",
        json={"reason": "Vehicle pool exhausted for that day"},
        headers=_as(cast.admin),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"


@pytest.mark.asyncio
async def test_get_ride_not_found(client: AsyncClient, cast):
    resp = await client.get("/api/v1/rides/9999", headers=_as(cast.admin))
    assert resp.status_code == 404
    assert resp.json()["code"] == "NotFound"


@pytest.mark.asyncio
async def test_cancel_waiting_ride(client: AsyncClient, cast):
    created = await client.post(
        "/api/v1/rides", json=_ride_body(), headers=_as(cast.requester)
    )
    ride_id = created.json()["id"]
    resp = await client.patch(f"/api/v1/rides/{ride_id}/cancel", headers=_as(cast.requester))
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


@pytest.mark.asyncio
async def test_cancel_already_cancelled_ride_fails(client: AsyncClient, cast):
    created = await client.post(
        "/api/v1/rides", json=_ride_body(), headers=_as(cast.requester)
    )
    ride_id = created.json()["id"]
    await client.patch(f"/api/v1/rides/{ride_id}/cancel", headers=_as(cast.requester))
    resp = await client.patch(f"/api/v1/rides/{ride_id}/cancel", headers=_as(cast.requester))
    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "InvalidTransition"
    assert body["current_status"] == "cancelled"


@pytest.mark.asyncio
async def test_vehicle_management(client: AsyncClient, cast):
    resp = await client.post(
        "/api/v1/vehicles",
        json={"vehicle_number": "wp-3318", "vehicle_type": "car"},
        headers=_as(cast.admin),
    )
    assert resp.status_code == 201
    vehicle = resp.json()
    assert vehicle["vehicle_number"] == "WP-3318"
    assert vehicle["status"] == "available"

    dup = await client.post(
        "/api/v1/vehicles",
        json={"vehicle_number": "WP-3318", "vehicle_type": "car"},
        headers=_as(cast.admin),
    )
    assert dup.status_code == 422

    bad = await client.post(
        "/api/v1/vehicles",
        json={"vehicle_number": "W-33", "vehicle_type": "car"},
        headers=_as(cast.admin),
    )
    assert bad.json()["code"] == "InvalidVehicleNumber"

    unknown_type = await client.post(
        "/api/v1/vehicles",
        json={"vehicle_number": "WP-3319", "vehicle_type": "hovercraft"},
        headers=_as(cast.admin),
    )
    assert unknown_type.status_code == 422

    vans = await client.get(
        "/api/v1/vehicles", params={"vehicle_type": "van"}, headers=_as(cast.admin)
    )
    assert [v["vehicle_number"] for v in vans.json()] == ["CAB-4521"]

    resp = await client.patch(
        f"/api/v1/vehicles/{vehicle['id']}/maintenance",
        json={"in_maintenance": True},
        headers=_as(cast.admin),
    )
    assert resp.json()["status"] == "maintenance"

    listing = await client.get("/api/v1/vehicles", headers=_as(cast.manager))
    assert len(listing.json()) == 4

    denied = await client.get("/api/v1/vehicles", headers=_as(cast.requester))
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_mileage_summary_and_reset(client: AsyncClient, cast, redis_mock):
    summary = await client.get("/api/v1/vehicles/mileage-summary", headers=_as(cast.admin))
    assert summary.status_code == 200
    data = summary.json()
    assert data["total_mileage"] == 0
    assert data["status_counts"] == {"available": 2, "maintenance": 1}

    resp = await client.post(
        "/api/v1/vehicles/reset-monthly-mileage", headers=_as(cast.admin)
    )
    assert resp.status_code == 200
    assert resp.json()["vehicles_reset"] == 3
    redis_mock.set.assert_awaited_once()


@pytest.mark.asyncio
async def test_mileage_reset_while_locked_is_409(client: AsyncClient, cast, redis_mock):
    redis_mock.set = AsyncMock(return_value=False)
    resp = await client.post(
        "/api/v1/vehicles/reset-monthly-mileage", headers=_as(cast.admin)
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "LockNotAcquired"


@pytest.mark.asyncio
async def test_openapi_documents_error_shape(client: AsyncClient):
    openapi = (await client.get("/openapi.json")).json()
    assert "ErrorResponse" in openapi["components"]["schemas"]
    responses = openapi["paths"]["/api/v1/rides/{ride_id}/assign"]["patch"]["responses"]
    assert responses["409"]["content"]["application/json"]["schema"] == {
        "$ref": "#/components/schemas/ErrorResponse"
    }
    assert "403" in openapi["paths"]["/api/v1/users"]["post"]["responses"]


# ── Users ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_user_management(client: AsyncClient, cast):
    resp = await client.post(
        "/api/v1/users",
        json={
            "name": "Kamal Silva",
            "email": "kamal@example.com",
            "role": "driver",
            "phone": "0771234599",
        },
        headers=_as(cast.admin),
    )
    assert resp.status_code == 201
    kamal = resp.json()
    assert kamal["phone"] == "+94771234599"
    assert kamal["driver_status"] == "available"

    dup = await client.post(
        "/api/v1/users",
        json={"name": "Kamal Again", "email": "KAMAL@example.com"},
        headers=_as(cast.admin),
    )
    assert dup.status_code == 422
    assert dup.json()["code"] == "InvalidUser"

    drivers = await client.get(
        "/api/v1/users", params={"role": "driver"}, headers=_as(cast.admin)
    )
    assert kamal["id"] in [u["id"] for u in drivers.json()]

    counts = await client.get("/api/v1/users/counts", headers=_as(cast.admin))
    assert counts.json()["driver"] == 3

    resp = await client.patch(
        f"/api/v1/users/{kamal['id']}",
        json={"phone": "+94712223334"},
        headers=_as(cast.admin),
    )
    assert resp.json()["phone"] == "+94712223334"

    resp = await client.delete(f"/api/v1/users/{kamal['id']}", headers=_as(cast.admin))
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False
    assert resp.json()["driver_status"] == "offline"
    locked_out = await client.get("/api/v1/rides/driver/assigned", headers=_as(kamal["id"]))
    assert locked_out.status_code == 403

    resp = await client.patch(
        f"/api/v1/users/{kamal['id']}",
        json={"is_active": True},
        headers=_as(cast.admin),
    )
    assert resp.json()["is_active"] is True
    assert resp.json()["driver_status"] == "available"


@pytest.mark.asyncio
async def test_user_endpoints_are_admin_only(client: AsyncClient, cast):
    resp = await client.post(
        "/api/v1/users",
        json={"name": "Kamal Silva", "email": "kamal@example.com"},
        headers=_as(cast.manager),
    )
    assert resp.status_code == 403
    own = await client.get(
        f"/api/v1/users/{cast.requester.user_id}", headers=_as(cast.requester)
    )
    assert own.status_code == 200
    other = await client.get(
        f"/api/v1/users/{cast.manager.user_id}", headers=_as(cast.requester)
    )
    assert other.status_code == 403
    drivers = await client.get("/api/v1/users/drivers", headers=_as(cast.manager))
    assert len(drivers.json()) == 2


@pytest.mark.asyncio
async def test_bad_role_is_422(client: AsyncClient, cast):
    resp = await client.post(
        "/api/v1/users",
        json={"name": "Kamal Silva", "email": "kamal@example.com", "role": "pilot"},
        headers=_as(cast.admin),
    )
    assert resp.status_code == 422


# ── Statistics and reports ────────────────────────────────────────────


async def _completed_ride(client: AsyncClient, cast) -> int:
    ride_id = (
        await client.post("/api/v1/rides", json=_ride_body(6.0), headers=_as(cast.requester))
    ).json()["id"]
    await client.patch(
        f"/api/v1/rides/{ride_id}/admin-approve", json={}, headers=_as(cast.admin)
    )
    await client.patch(
        f"/api/v1/rides/{ride_id}/assign",
        json={"driver_id": cast.driver1.user_id, "vehicle_id": cast.vehicle1_id},
        headers=_as(cast.admin),
    )
    await client.patch(
        f"/api/v1/rides/{ride_id}/start",
        json={"start_mileage": 100},
        headers=_as(cast.driver1),
    )
    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/complete",
        json={"end_mileage": 112.5},
        headers=_as(cast.driver1),
    )
    assert resp.json()["status"] == "completed"
    return ride_id


@pytest.mark.asyncio
async def test_requester_and_driver_stats(client: AsyncClient, cast):
    ride_id = await _completed_ride(client, cast)

    mine = await client.get("/api/v1/rides/my-stats", headers=_as(cast.requester))
    assert mine.status_code == 200
    assert mine.json()["completed_rides"] == 1
    assert mine.json()["total_distance"] == pytest.approx(12.5)
    assert mine.json()["completion_rate"] == 100.0

    daily = await client.get(
        "/api/v1/rides/driver/daily", params={"date": DAY}, headers=_as(cast.driver1)
    )
    assert daily.status_code == 200
    assert daily.json()["completed"] == 1
    assert [r["id"] for r in daily.json()["rides"]] == [ride_id]

    stats = await client.get(
        f"/api/v1/users/drivers/{cast.driver1.user_id}/stats",
        headers=_as(cast.driver1),
    )
    assert stats.json()["total_distance"] == pytest.approx(12.5)
    peek = await client.get(
        f"/api/v1/users/drivers/{cast.driver2.user_id}/stats",
        headers=_as(cast.driver1),
    )
    assert peek.status_code == 403


@pytest.mark.asyncio
async def test_reports(client: AsyncClient, cast):
    await _completed_ride(client, cast)
    await client.post(
        "/api/v1/rides", json=_ride_body(20.0, "11:00"), headers=_as(cast.requester)
    )
    year, month = DAY[:4], DAY[5:7]

    dashboard = await client.get(
        "/api/v1/reports/dashboard-stats", headers=_as(cast.admin)
    )
    assert dashboard.status_code == 200
    assert dashboard.json()["awaiting_manager"] == 1
    assert dashboard.json()["monthly_mileage"] == pytest.approx(12.5)

    monthly = await client.get(
        "/api/v1/reports/monthly-rides",
        params={"year": year, "month": month},
        headers=_as(cast.manager),
    )
    assert monthly.status_code == 200
    assert monthly.json()["summary"]["total_rides"] == 2
    assert monthly.json()["per_day"] == {DAY: 2}

    drivers = await client.get(
        "/api/v1/reports/driver-performance",
        params={"year": year, "month": month},
        headers=_as(cast.manager),
    )
    assert drivers.json()[0]["driver_id"] == cast.driver1.user_id

    usage = await client.get(
        "/api/v1/reports/vehicle-usage",
        params={"year": year, "month": month},
        headers=_as(cast.admin),
    )
    assert usage.json()[0]["vehicle_number"] == "NB-1985"

    stats = await client.get(
        f"/api/v1/vehicles/{cast.vehicle1_id}/stats", headers=_as(cast.manager)
    )
    assert stats.json()["summary"]["completed_rides"] == 1
    assert stats.json()["last_ride_date"] == DAY

    denied = await client.get(
        "/api/v1/reports/vehicle-usage", headers=_as(cast.requester)
    )
    assert denied.status_code == 403
    bad = await client.get(
        "/api/v1/reports/monthly-rides",
        params={"month": 13},
        headers=_as(cast.manager),
    )
    assert bad.status_code == 422
