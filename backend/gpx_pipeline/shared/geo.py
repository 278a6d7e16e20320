"""
Geographic utility functions.

This is the SINGLE SOURCE OF TRUTH for geographic calculations.
DO NOT duplicate these functions elsewhere.

Coordinates are (longitude, latitude) pairs, distances are meters.
"""
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence, Tuple

# Earth radius in meters
EARTH_RADIUS_M = 6_371_000.0

# ~1.1 m at the equator
COORDINATE_PRECISION = 5
ELEVATION_PRECISION = 1


def _round_half_away(value: float, places: int) -> float:
    """Round to fixed decimal places, halves away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def round_coordinate(value: float) -> float:
    """Round a longitude/latitude to 5 decimal places."""
    return _round_half_away(value, COORDINATE_PRECISION)


def round_elevation(value: float) -> float:
    """Round an elevation in meters to 1 decimal place."""
    return _round_half_away(value, ELEVATION_PRECISION)


def haversine(
    lon1: float, lat1: float,
    lon2: float, lat2: float
) -> float:
    """
    Calculate great-circle distance between two points.

    Args:
        lon1, lat1: First point coordinates (degrees)
        lon2, lat2: Second point coordinates (degrees)

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) *
        math.sin(delta_lon / 2) ** 2
    )
    # rounding can push a past 1.0 for near-antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def haversine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Distance in meters between two (lon, lat) pairs or TrackPoints."""
    return haversine(a[0], a[1], b[0], b[1])


def calculate_total_distance(points: Sequence[Sequence[float]]) -> float:
    """
    Calculate total distance for a route.

    Args:
        points: Sequence of (lon, lat) pairs; extra items are ignored

    Returns:
        Total distance in meters (0 for fewer than two points)
    """
    total = 0.0

    for i in range(1, len(points)):
        total += haversine_distance(points[i - 1], points[i])

    return total


def calculate_grade(distance_m: float, elevation_diff_m: float) -> float:
    """
    Calculate grade in percent.

    Returns 0 for non-positive distance.
    """
    if distance_m <= 0:
        return 0.0
    return elevation_diff_m / distance_m * 100


def lonlat_to_tile(
    lon: float, lat: float, zoom: int
) -> Tuple[float, float]:
    """
    Project a coordinate onto fractional Web Mercator tile coordinates.

    The integer part is the slippy-map tile x/y at the given zoom, the
    fractional part is the position inside that tile.
    """
    lat = max(min(lat, 85.0511287798), -85.0511287798)
    n = 2 ** zoom
    x = (lon + 180.0) / 360.0 * n
    lat_rad = math.radians(lat)
    y = (1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0 * n
    # lon == 180 and the southern clamp land exactly on the far edge
    x = min(max(x, 0.0), n - 1e-9)
    y = min(max(y, 0.0), n - 1e-9)
    return x, y
