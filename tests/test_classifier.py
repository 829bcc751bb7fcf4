"""Unit tests for distance classification and the haversine estimate."""

import math

import pytest

from rideflow.domain.classifier import calculated_distance, classify, is_long_distance
from rideflow.domain.distance import estimate_km, haversine_km
from rideflow.domain.entities import Location
from rideflow.domain.enums import RideStatus, RideType
from rideflow.domain.errors import InvalidBooking


class TestClassify:
    def test_threshold_is_not_long_distance(self):
        decision = classify(15.0, RideType.ONE_WAY)
        assert decision.requires_manager_approval is False
        assert decision.initial_status is RideStatus.AWAITING_ADMIN

    def test_just_over_threshold_needs_manager(self):
        decision = classify(15.01, RideType.ONE_WAY)
        assert decision.requires_manager_approval is True
        assert decision.initial_status is RideStatus.AWAITING_MANAGER

    def test_zero_distance_goes_to_admin(self):
        assert classify(0.0).requires_manager_approval is False

    def test_custom_threshold(self):
        assert classify(12.0, threshold=10.0).requires_manager_approval is True

    def test_negative_distance_rejected(self):
        with pytest.raises(InvalidBooking):
            classify(-1.0)

    def test_is_long_distance_strict(self):
        assert not is_long_distance(15.0)
        assert is_long_distance(15.1)


class TestCalculatedDistance:
    def test_return_trip_is_doubled(self):
        assert calculated_distance(9.0, RideType.RETURN) == 18.0
        # 2 x 9 km crosses the threshold even though each leg does not
        assert classify(calculated_distance(9.0, RideType.RETURN)).requires_manager_approval

    def test_one_way_unchanged(self):
        assert calculated_distance(9, RideType.ONE_WAY) == 9.0

    def test_accepts_string_ride_type(self):
        assert calculated_distance(5.0, "return") == 10.0

    @pytest.mark.parametrize("bad", [-0.1, math.nan, math.inf, "12", None, True])
    def test_invalid_distance(self, bad):
        with pytest.raises(InvalidBooking):
            calculated_distance(bad, RideType.ONE_WAY)


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(6.9, 79.85, 6.9, 79.85) == 0.0

    def test_one_degree_latitude(self):
        # ~111.19 km per degree on a 6371 km sphere
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, abs=0.01)

    def test_estimate_rounds_to_tenth(self):
        km = estimate_km(
            Location("a", 0.0, 0.0), Location("b", 1.0, 0.0)
        )
        assert km == 111.2
