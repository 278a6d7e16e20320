"""
Route statistics.

Elevation totals come from the resolved elevation samples (never from
profile grades). Timing totals need a timestamp on every point.
"""

from typing import Sequence, Tuple

from gpx_pipeline.shared.elevation import calculate_elevation_changes, elevation_range
from gpx_pipeline.shared.geo import haversine_distance, round_elevation

from .config import PipelineConfig
from .schemas import RouteStatistics, TrackPoint


def calculate_timing(
    points: Sequence[TrackPoint],
    moving_threshold: float = PipelineConfig.MOVING_SPEED_THRESHOLD,
) -> Tuple[float, float]:
    """
    Total and moving time in seconds.

    A step counts as moving when its speed is at least `moving_threshold`
    m/s. Returns (0, 0) unless every point has a timestamp.
    """
    if len(points) < 2 or any(p.time is None for p in points):
        return 0.0, 0.0

    total_time = (points[-1].time - points[0].time).total_seconds()
    if total_time <= 0:
        return 0.0, 0.0

    moving_time = 0.0
    for prev, curr in zip(points, points[1:]):
        seconds = (curr.time - prev.time).total_seconds()
        if seconds <= 0:
            continue
        if haversine_distance(prev, curr) / seconds >= moving_threshold:
            moving_time += seconds

    return total_time, moving_time


def build_statistics(
    points: Sequence[TrackPoint],
    elevations: Sequence[float],
    total_distance: float,
) -> RouteStatistics:
    """
    Assemble RouteStatistics.

    Args:
        points: Parsed track points
        elevations: One resolved sample per point
        total_distance: Route length in meters
    """
    gain, loss = calculate_elevation_changes(elevations)
    max_elevation, min_elevation = elevation_range(elevations)
    total_time, moving_time = calculate_timing(points)
    average_speed = total_distance / moving_time if moving_time > 0 else 0.0

    return RouteStatistics(
        total_distance=total_distance,
        elevation_gain=round_elevation(gain),
        elevation_loss=round_elevation(loss),
        max_elevation=max_elevation,
        min_elevation=min_elevation,
        average_speed=round(average_speed, 2),
        moving_time=moving_time,
        total_time=total_time,
    )
