"""
Tests for shared elevation utilities.
"""

import pytest

from gpx_pipeline.shared.elevation import (
    decode_terrain_rgb,
    calculate_elevation_changes,
    elevation_range,
    zero_elevations,
)


class TestDecodeTerrainRGB:
    """elevation = -10000 + (R*65536 + G*256 + B) * 0.1"""

    def test_zero_pixel(self):
        assert decode_terrain_rgb(0, 0, 0) == -10000.0

    def test_sea_level(self):
        # 100000 * 0.1 = 10000
        assert decode_terrain_rgb(1, 134, 160) == 0.0

    def test_hundred_meters(self):
        assert decode_terrain_rgb(1, 138, 136) == 100.0

    def test_rounded_to_one_decimal(self):
        value = decode_terrain_rgb(1, 134, 165)
        assert value == pytest.approx(0.5)
        assert value == round(value, 1)


class TestElevationChanges:

    def test_empty(self):
        assert calculate_elevation_changes([]) == (0.0, 0.0)

    def test_gain_and_loss(self):
        gain, loss = calculate_elevation_changes([100, 110, 105, 120, 90])
        assert gain == pytest.approx(25.0)
        assert loss == pytest.approx(35.0)

    def test_flat(self):
        assert calculate_elevation_changes([50.0] * 5) == (0.0, 0.0)


class TestElevationRange:

    def test_empty_track(self):
        assert elevation_range([]) == (0.0, 0.0)

    def test_max_min(self):
        assert elevation_range([3.0, -1.5, 8.2]) == (8.2, -1.5)


def test_zero_elevations_length():
    assert zero_elevations(3) == [0.0, 0.0, 0.0]
