"""
Tests for shared geographic functions.

Tests haversine distance, rounding and tile projection.
"""

import math

import pytest

from gpx_pipeline.shared.geo import (
    haversine,
    haversine_distance,
    calculate_total_distance,
    calculate_grade,
    round_coordinate,
    round_elevation,
    lonlat_to_tile,
    EARTH_RADIUS_M,
)


# =============================================================================
# Test Haversine Distance
# =============================================================================

class TestHaversine:
    """Tests for haversine function (lon, lat order, meters)."""

    def test_same_point(self):
        """Distance between same point should be 0."""
        assert haversine(147.32, -42.88, 147.32, -42.88) == 0.0

    def test_one_degree_latitude(self):
        """(0,0) -> (0,1) is ~111 195 m."""
        dist = haversine_distance((0.0, 0.0), (0.0, 1.0))
        assert dist == pytest.approx(111_195, rel=0.005)

    def test_one_degree_longitude_at_equator(self):
        dist = haversine(0.0, 0.0, 1.0, 0.0)
        assert dist == pytest.approx(111_195, rel=0.005)

    def test_symmetry(self):
        """Distance A->B should equal B->A."""
        dist_ab = haversine(147.0, -42.0, 148.0, -43.0)
        dist_ba = haversine(148.0, -43.0, 147.0, -42.0)
        assert dist_ab == pytest.approx(dist_ba, rel=0.0001)

    def test_never_negative(self):
        for a, b in [((0, 0), (0, 0)), ((-179, -89), (179, 89)), ((10, 10), (-10, -10))]:
            assert haversine_distance(a, b) >= 0

    def test_known_distance_hobart_launceston(self):
        """Hobart to Launceston is ~160 km."""
        dist = haversine(147.3272, -42.8821, 147.1441, -41.4332)
        assert 155_000 < dist < 170_000

    def test_antimeridian(self):
        """2 degrees across the antimeridian at the equator."""
        dist = haversine(179.0, 0.0, -179.0, 0.0)
        assert 220_000 < dist < 225_000

    @pytest.mark.parametrize("a,b", [
        ((0.0, 0.08), (180.0, -0.08)),
        ((10.0, 0.08), (-170.0, -0.08)),
        ((0.0, 90.0), (0.0, -90.0)),
    ])
    def test_near_antipodal_points(self, a, b):
        """Half the circumference at most, never a math domain error."""
        dist = haversine_distance(a, b)
        assert 0 <= dist <= math.pi * EARTH_RADIUS_M
        assert dist == pytest.approx(math.pi * EARTH_RADIUS_M, rel=0.001)

    def test_earth_radius_constant(self):
        assert EARTH_RADIUS_M == 6_371_000.0


# =============================================================================
# Test Total Distance
# =============================================================================

class TestCalculateTotalDistance:
    """Tests for calculate_total_distance function."""

    def test_empty_list(self):
        assert calculate_total_distance([]) == 0.0

    def test_single_point(self):
        assert calculate_total_distance([(147.0, -42.0)]) == 0.0

    def test_multiple_points_sum(self):
        points = [(147.0, -42.0), (147.0, -42.001), (147.0, -42.002)]
        expected = haversine_distance(points[0], points[1]) + haversine_distance(points[1], points[2])
        assert calculate_total_distance(points) == pytest.approx(expected)

    def test_extra_coordinates_ignored(self):
        """A third (elevation) item does not change horizontal distance."""
        flat = [(147.0, -42.0, 0), (147.0, -42.01, 0)]
        climb = [(147.0, -42.0, 0), (147.0, -42.01, 1000)]
        assert calculate_total_distance(flat) == calculate_total_distance(climb)


# =============================================================================
# Test Rounding
# =============================================================================

class TestRounding:
    """Tests for coordinate and elevation rounding."""

    def test_coordinate_five_places(self):
        assert round_coordinate(147.123456789) == 147.12346

    def test_elevation_one_place(self):
        assert round_elevation(123.456) == 123.5

    def test_half_away_from_zero(self):
        assert round_elevation(0.25) == 0.3
        assert round_elevation(-0.25) == -0.3
        assert round_coordinate(1.000005) == 1.00001

    @pytest.mark.parametrize("value", [0.0, 1.23456789, -42.8812345, 147.999995, 1e-7])
    def test_idempotent(self, value):
        once = round_coordinate(value)
        assert round_coordinate(once) == once
        once = round_elevation(value)
        assert round_elevation(once) == once


# =============================================================================
# Test Grade and Tiles
# =============================================================================

class TestGrade:

    def test_zero_distance(self):
        assert calculate_grade(0.0, 10.0) == 0.0

    def test_ten_percent(self):
        assert calculate_grade(1000.0, 100.0) == pytest.approx(10.0)

    def test_negative(self):
        assert calculate_grade(100.0, -5.0) == pytest.approx(-5.0)


class TestLonLatToTile:

    def test_origin_is_tile_center(self):
        x, y = lonlat_to_tile(0.0, 0.0, 1)
        assert x == pytest.approx(1.0)
        assert y == pytest.approx(1.0)

    def test_zoom_zero_single_tile(self):
        x, y = lonlat_to_tile(147.32, -42.88, 0)
        assert 0 <= x < 1
        assert 0 <= y < 1

    def test_edges_stay_inside_grid(self):
        x, y = lonlat_to_tile(180.0, -90.0, 14)
        assert x < 2 ** 14
        assert y < 2 ** 14
