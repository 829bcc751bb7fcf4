"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 4 requesters, 1 manager, 1 admin
  - 4 drivers
  - 6 vehicles (one in maintenance)
  - 4 sample rides (one short, one long-distance, one approved, one completed)

Rides are booked through the same core functions the API uses, so their
status and distance follow the normal routing rules.
"""

import asyncio
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import text

from rideflow.domain import assignment, booking, ledger, mileage
from rideflow.domain.entities import Actor, Location
from rideflow.domain.enums import DriverStatus, RideType, Role, VehicleStatus
from rideflow.infrastructure.database import async_session_factory, engine
from rideflow.infrastructure.models import RideModel, UserModel, VehicleModel

# Colombo head office (approx)
OFFICE = Location("Head Office, Colombo 03", 6.9010, 79.8535)


USERS = [
    {"name": "Nimal Perera", "email": "nimal@example.com", "role": Role.REQUESTER},
    {"name": "Sachini Fernando", "email": "sachini@example.com", "role": Role.REQUESTER},
    {"name": "Kasun Silva", "email": "kasun@example.com", "role": Role.REQUESTER},
    {"name": "Dilani Jayawardena", "email": "dilani@example.com", "role": Role.REQUESTER},
    {"name": "Ruwan Bandara", "email": "ruwan@example.com", "role": Role.MANAGER},
    {"name": "Anoma Wickrama", "email": "anoma@example.com", "role": Role.ADMIN},
]

DRIVERS = [
    {"name": "Sunil Rathnayake", "email": "sunil@example.com", "phone": "+94771234501"},
    {"name": "Chaminda Herath", "email": "chaminda@example.com", "phone": "+94771234502"},
    {"name": "Lalith Kumara", "email": "lalith@example.com", "phone": "+94771234503"},
    {"name": "Pradeep Senanayake", "email": "pradeep@example.com", "phone": "+94771234504"},
]

VEHICLES = [
    {"vehicle_number": "NB-1985", "vehicle_type": "car", "capacity": 4},
    {"vehicle_number": "CAB-4521", "vehicle_type": "cab", "capacity": 4},
    {"vehicle_number": "KV-7730", "vehicle_type": "van", "capacity": 8},
    {"vehicle_number": "PH-0042", "vehicle_type": "crew_cab", "capacity": 5},
    {"vehicle_number": "WP-3318", "vehicle_type": "car", "capacity": 4},
    {
        "vehicle_number": "CAR-9001",
        "vehicle_type": "van",
        "capacity": 8,
        "status": VehicleStatus.MAINTENANCE,
    },
]

DESTINATIONS = {
    "airport": Location("Bandaranaike International Airport", 7.1808, 79.8841),
    "port": Location("Port of Colombo", 6.9497, 79.8428),
    "factory": Location("Biyagama Export Zone", 6.9415, 79.9905),
}


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        user_models = []
        for u in USERS:
            m = UserModel(name=u["name"], email=u["email"], role=u["role"])
            session.add(m)
            user_models.append(m)
        driver_models = []
        for d in DRIVERS:
            m = UserModel(
                name=d["name"],
                email=d["email"],
                phone=d["phone"],
                role=Role.DRIVER,
                driver_status=DriverStatus.AVAILABLE,
            )
            session.add(m)
            driver_models.append(m)
        await session.flush()
        print(f"  Created {len(user_models)} staff users, {len(driver_models)} drivers")

        # ── Vehicles ──────────────────────────────────────────────────
        vehicle_models = []
        for v in VEHICLES:
            m = VehicleModel(
                vehicle_number=v["vehicle_number"],
                vehicle_type=v["vehicle_type"],
                capacity=v["capacity"],
                status=v.get("status", VehicleStatus.AVAILABLE),
                total_mileage=Decimal("0"),
                monthly_mileage=Decimal("0"),
            )
            session.add(m)
            vehicle_models.append(m)
        await session.flush()
        print(f"  Created {len(vehicle_models)} vehicles")

        # ── Rides ─────────────────────────────────────────────────────
        requesters = [
            Actor(u.id, Role.REQUESTER) for u in user_models if u.role is Role.REQUESTER
        ]
        manager = Actor(user_models[4].id, Role.MANAGER)
        admin = Actor(user_models[5].id, Role.ADMIN)
        tomorrow = date.today() + timedelta(days=1)

        def book(actor, ride_type, dest, time, km):
            return booking.new_ride(
                actor,
                ride_type,
                OFFICE,
                DESTINATIONS[dest],
                tomorrow,
                time,
                None,
                km,
                ride_factory=RideModel,
            )

        # short one-way: straight to the admin queue
        short = book(requesters[0], RideType.ONE_WAY, "port", "09:00", 6.4)
        # long return trip: 2 x 18 km, needs the manager first
        long_trip = book(requesters[1], RideType.RETURN, "factory", "10:30", 18.0)
        # approved and waiting for a driver
        approved = book(requesters[2], RideType.ONE_WAY, "airport", "14:00", 32.5)
        ledger.approve(approved, manager)
        ledger.approve(approved, admin, note="Airport pickup for visiting auditors")
        # finished ride with reconciled mileage
        done = book(requesters[3], RideType.ONE_WAY, "port", "08:00", 6.4)
        ledger.approve(done, admin)
        assignment.assign(done, driver_models[0], vehicle_models[0], [])
        mileage.start_ride(done, Decimal("15200.0"))
        mileage.complete_ride(done, Decimal("15207.2"))
        vehicle_models[0].total_mileage += done.actual_distance
        vehicle_models[0].monthly_mileage += done.actual_distance

        rides = [short, long_trip, approved, done]
        session.add_all(rides)
        await session.flush()
        print(f"  Created {len(rides)} rides")
        for r in rides:
            print(f"    {r.ride_code}  {r.status.value:<16} {r.calculated_distance} km")

        await session.commit()
        print(f"\nSeed complete at {datetime.now(timezone.utc):%Y-%m-%d %H:%M} UTC")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
