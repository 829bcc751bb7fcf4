"""
Shared test fixtures.

Uses a file-backed SQLite database (via aiosqlite) per test so tests run
without Docker / PostgreSQL / Redis.  ``NullPool`` gives every session its
own connection, which the concurrency tests rely on.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from rideflow.domain.entities import Actor, Location
from rideflow.domain.enums import (
    DriverStatus,
    NotificationEvent,
    Role,
    VehicleStatus,
)
from rideflow.infrastructure.database import Base
from rideflow.infrastructure.models import UserModel, VehicleModel
from rideflow.services.workflow import RideWorkflow

OFFICE = Location("Head Office, Colombo 03", 6.9010, 79.8535)
FACTORY = Location("Biyagama Export Zone", 6.9415, 79.9905)


# ── Notifications ─────────────────────────────────────────────────────


@dataclass
class RecordingNotifier:
    sent: list[tuple[int, NotificationEvent, dict[str, Any]]] = field(
        default_factory=list
    )

    async def notify(self, user_id, event, payload):
        self.sent.append((user_id, event, payload))

    def events(self) -> list[NotificationEvent]:
        return [e for _, e, _ in self.sent]

    def for_user(self, user_id: int) -> list[NotificationEvent]:
        return [e for u, e, _ in self.sent if u == user_id]


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'rideflow.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@dataclass
class Cast:
    requester: Actor
    other_requester: Actor
    manager: Actor
    admin: Actor
    driver1: Actor
    driver2: Actor
    inactive_driver_id: int
    vehicle1_id: int
    vehicle2_id: int
    maintenance_vehicle_id: int


@pytest_asyncio.fixture
async def cast(session_factory) -> Cast:
    """Users and vehicles every workflow test starts from."""
    async with session_factory() as session:
        users = {
            "requester": UserModel(
                name="Nimal Perera", email="nimal@example.com", role=Role.REQUESTER
            ),
            "other_requester": UserModel(
                name="Sachini Fernando",
                email="sachini@example.com",
                role=Role.REQUESTER,
            ),
            "manager": UserModel(
                name="Ruwan Bandara", email="ruwan@example.com", role=Role.MANAGER
            ),
            "admin": UserModel(
                name="Anoma Wickrama", email="anoma@example.com", role=Role.ADMIN
            ),
            "driver1": UserModel(
                name="Sunil Rathnayake",
                email="sunil@example.com",
                phone="+94771234501",
                role=Role.DRIVER,
                driver_status=DriverStatus.AVAILABLE,
            ),
            "driver2": UserModel(
                name="Chaminda Herath",
                email="chaminda@example.com",
                phone="+94771234502",
                role=Role.DRIVER,
                driver_status=DriverStatus.AVAILABLE,
            ),
            "inactive": UserModel(
                name="Lalith Kumara",
                email="lalith@example.com",
                role=Role.DRIVER,
                driver_status=DriverStatus.OFFLINE,
                is_active=False,
            ),
        }
        vehicles = {
            "v1": VehicleModel(vehicle_number="NB-1985", vehicle_type="car"),
            "v2": VehicleModel(vehicle_number="CAB-4521", vehicle_type="van"),
            "v3": VehicleModel(
                vehicle_number="KV-7730",
                vehicle_type="car",
                status=VehicleStatus.MAINTENANCE,
            ),
        }
        for v in vehicles.values():
            v.total_mileage = Decimal("0")
            v.monthly_mileage = Decimal("0")
        session.add_all([*users.values(), *vehicles.values()])
        await session.commit()

        def actor(key: str) -> Actor:
            return Actor(users[key].id, users[key].role)

        return Cast(
            requester=actor("requester"),
            other_requester=actor("other_requester"),
            manager=actor("manager"),
            admin=actor("admin"),
            driver1=actor("driver1"),
            driver2=actor("driver2"),
            inactive_driver_id=users["inactive"].id,
            vehicle1_id=vehicles["v1"].id,
            vehicle2_id=vehicles["v2"].id,
            maintenance_vehicle_id=vehicles["v3"].id,
        )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def workflow(db_session, notifier) -> RideWorkflow:
    return RideWorkflow(db_session, notifier=notifier)


@pytest.fixture
def tomorrow() -> date:
    return date.today() + timedelta(days=1)


async def book(
    workflow: RideWorkflow,
    actor: Actor,
    distance_km: float,
    scheduled_date: date,
    scheduled_time: str = "09:00",
    ride_type: str = "one_way",
    **kwargs,
):
    return await workflow.create_ride(
        actor,
        ride_type=ride_type,
        pickup=OFFICE,
        destination=FACTORY,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        distance_km=distance_km,
        **kwargs,
    )
