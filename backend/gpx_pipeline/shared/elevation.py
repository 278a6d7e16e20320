"""
Elevation processing utilities.

This is the SINGLE SOURCE OF TRUTH for elevation calculations.
"""
from typing import List, Sequence, Tuple

from .geo import round_elevation

# Terrain-RGB: height = -10000 + (R * 256 * 256 + G * 256 + B) * 0.1
TERRAIN_RGB_BASE_M = -10000.0
TERRAIN_RGB_STEP_M = 0.1


def decode_terrain_rgb(r: int, g: int, b: int) -> float:
    """
    Decode a Terrain-RGB pixel into meters.

    Args:
        r, g, b: Channel values 0-255

    Returns:
        Elevation rounded to 0.1 m
    """
    packed = r * 65536 + g * 256 + b
    return round_elevation(TERRAIN_RGB_BASE_M + packed * TERRAIN_RGB_STEP_M)


def calculate_elevation_changes(
    elevations: Sequence[float]
) -> Tuple[float, float]:
    """
    Calculate total elevation gain and loss.

    Sums of positive and negative consecutive deltas. No smoothing is
    applied so the totals match the resolved samples exactly.

    Args:
        elevations: List of elevation values

    Returns:
        Tuple of (gain_m, loss_m), both non-negative
    """
    gain = 0.0
    loss = 0.0

    for i in range(1, len(elevations)):
        diff = elevations[i] - elevations[i - 1]
        if diff > 0:
            gain += diff
        else:
            loss += abs(diff)

    return gain, loss


def elevation_range(elevations: Sequence[float]) -> Tuple[float, float]:
    """Return (max, min) elevation, (0, 0) for an empty track."""
    if not elevations:
        return 0.0, 0.0
    return max(elevations), min(elevations)


def zero_elevations(count: int) -> List[float]:
    """Neutral elevation samples used when lookups fail."""
    return [0.0] * count
