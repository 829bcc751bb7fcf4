"""Unit tests for the assignment coordinator on in-memory entities."""

from datetime import date

import pytest

from rideflow.domain.assignment import assign
from rideflow.domain.entities import Driver, Ride, Vehicle
from rideflow.domain.enums import ResourceKind, RideStatus, Role, VehicleStatus
from rideflow.domain.errors import InvalidTransition, UnavailableResource

DAY = date(2026, 3, 10)


def _ride(ride_id, status=RideStatus.APPROVED, driver_id=None, vehicle_id=None):
    return Ride(
        id=ride_id,
        ride_code=f"RD-{ride_id}",
        scheduled_date=DAY,
        scheduled_time="09:00",
        status=status,
        assigned_driver_id=driver_id,
        assigned_vehicle_id=vehicle_id,
    )


D1, D2 = Driver(1, "D1"), Driver(2, "D2")
V1, V2 = Vehicle(10, "NB-1985"), Vehicle(11, "CAB-4521")


class TestAssign:
    def test_assign_sets_pair_and_status(self):
        ride = _ride(1)
        result = assign(ride, D1, V1, [])
        assert ride.status == RideStatus.ASSIGNED
        assert (ride.assigned_driver_id, ride.assigned_vehicle_id) == (1, 10)
        assert result.previous_driver_id is None
        assert not result.driver_changed

    def test_busy_driver_is_rejected(self):
        other = _ride(2, RideStatus.ASSIGNED, driver_id=1, vehicle_id=11)
        ride = _ride(1)
        with pytest.raises(UnavailableResource) as exc:
            assign(ride, D1, V1, [other])
        assert exc.value.kind is ResourceKind.DRIVER
        assert ride.status == RideStatus.APPROVED
        assert ride.assigned_driver_id is None and ride.assigned_vehicle_id is None

    def test_busy_vehicle_is_rejected(self):
        other = _ride(2, RideStatus.IN_PROGRESS, driver_id=2, vehicle_id=10)
        with pytest.raises(UnavailableResource) as exc:
            assign(_ride(1), D1, V1, [other])
        assert exc.value.kind is ResourceKind.VEHICLE

    def test_maintenance_vehicle_is_rejected(self):
        broken = Vehicle(12, "KV-7730", status=VehicleStatus.MAINTENANCE)
        with pytest.raises(UnavailableResource):
            assign(_ride(1), D1, broken, [])

    def test_assign_requires_approved(self):
        with pytest.raises(InvalidTransition):
            assign(_ride(1, RideStatus.AWAITING_ADMIN), D1, V1, [])

    def test_assign_requires_admin(self):
        with pytest.raises(InvalidTransition):
            assign(_ride(1), D1, V1, [], role=Role.MANAGER)

    def test_transition_checked_before_availability(self):
        # an already-assigned ride must fail as a state error, not a busy one
        ride = _ride(1, RideStatus.ASSIGNED, driver_id=1, vehicle_id=10)
        other = _ride(2, RideStatus.ASSIGNED, driver_id=2, vehicle_id=11)
        with pytest.raises(InvalidTransition):
            assign(ride, D2, V2, [ride, other])


class TestReassign:
    def test_keep_own_driver_swap_vehicle(self):
        ride = _ride(1, RideStatus.ASSIGNED, driver_id=1, vehicle_id=10)
        result = assign(ride, D1, V2, [ride], reassign=True)
        assert ride.status == RideStatus.ASSIGNED
        assert ride.assigned_vehicle_id == 11
        assert result.previous_vehicle_id == 10
        assert not result.driver_changed

    def test_driver_change_is_reported(self):
        ride = _ride(1, RideStatus.ASSIGNED, driver_id=1, vehicle_id=10)
        result = assign(ride, D2, V1, [ride], reassign=True)
        assert result.driver_changed
        assert result.previous_driver_id == 1

    def test_reassign_requires_assigned(self):
        with pytest.raises(InvalidTransition):
            assign(_ride(1), D1, V1, [], reassign=True)

    def test_reassign_to_busy_driver_fails(self):
        ride = _ride(1, RideStatus.ASSIGNED, driver_id=1, vehicle_id=10)
        other = _ride(2, RideStatus.ASSIGNED, driver_id=2, vehicle_id=11)
        with pytest.raises(UnavailableResource):
            assign(ride, D2, V1, [ride, other], reassign=True)
        assert ride.assigned_driver_id == 1
