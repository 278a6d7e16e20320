"""
Shared utilities (NOT business logic).

Usage:
    from gpx_pipeline.shared import haversine, round_coordinate
    from gpx_pipeline.shared.elevation import decode_terrain_rgb
"""
from .geo import (
    haversine,
    haversine_distance,
    calculate_total_distance,
    calculate_grade,
    round_coordinate,
    round_elevation,
    lonlat_to_tile,
    EARTH_RADIUS_M,
)
from .elevation import (
    decode_terrain_rgb,
    calculate_elevation_changes,
    elevation_range,
    zero_elevations,
)

__all__ = [
    # geo
    "haversine",
    "haversine_distance",
    "calculate_total_distance",
    "calculate_grade",
    "round_coordinate",
    "round_elevation",
    "lonlat_to_tile",
    "EARTH_RADIUS_M",
    # elevation
    "decode_terrain_rgb",
    "calculate_elevation_changes",
    "elevation_range",
    "zero_elevations",
]
