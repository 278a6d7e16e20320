"""
Surface Analyzer

Classifies a route geometry by surface type and builds the base elevation
profile. Elevations in the profile are 0 until the elevation stage merges
resolved samples in (see merge_elevations).

Input is a GeoJSON FeatureCollection of LineString features. A feature may
carry an OSM-style `surface` (or `class`) property; unlabeled features are
treated as trail. Distances are apportioned per feature.
"""

import logging
from typing import Any, Dict, List, Sequence, Tuple

from gpx_pipeline.shared.geo import calculate_grade, calculate_total_distance

from .errors import ErrorCode
from .results import StageResult
from .schemas import (
    ElevationProfilePoint,
    SurfaceAnalysis,
    SurfaceSegment,
    SurfaceType,
)

logger = logging.getLogger(__name__)


# OSM surface / road class tags grouped by our surface types
ROAD_TAGS = {
    "paved", "asphalt", "concrete", "concrete:plates", "concrete:lanes",
    "paving_stones", "sett", "cobblestone", "metal", "wood",
    "motorway", "trunk", "primary", "secondary", "tertiary",
    "residential", "street", "road",
}
TRAIL_TAGS = {
    "unpaved", "dirt", "gravel", "fine_gravel", "path", "track", "ground",
    "earth", "grass", "sand", "compacted", "pebblestone", "mud", "service",
    "trail", "footway", "bridleway",
}
WATER_TAGS = {"water", "ferry"}

# (roughness, difficulty, quality) per surface type
SURFACE_SCORES: Dict[SurfaceType, Tuple[float, float, float]] = {
    SurfaceType.ROAD: (0.1, 0.2, 1.0),
    SurfaceType.TRAIL: (0.5, 0.5, 0.8),
    SurfaceType.WATER: (1.0, 1.0, 0.0),
    SurfaceType.UNKNOWN: (0.5, 0.5, 0.5),
}


def classify_surface_tag(tag: str | None) -> SurfaceType:
    """Map an OSM surface/class tag to a SurfaceType."""
    if tag is None:
        return SurfaceType.TRAIL
    key = str(tag).strip().lower()
    if key in ROAD_TAGS:
        return SurfaceType.ROAD
    if key in TRAIL_TAGS:
        return SurfaceType.TRAIL
    if key in WATER_TAGS:
        return SurfaceType.WATER
    return SurfaceType.UNKNOWN


def default_surface_analysis() -> SurfaceAnalysis:
    """Fallback used for empty or unusable geometry."""
    return SurfaceAnalysis(
        surface_types=[
            SurfaceSegment(surface_type=SurfaceType.UNKNOWN, percentage=100, distance=0)
        ],
        elevation_profile=[],
        total_distance=0.0,
        roughness=0.0,
        difficulty_rating=0.0,
        surface_quality=0.0,
    )


def build_geojson(points: Sequence[Sequence[float]]) -> Dict[str, Any]:
    """Base geometry: one LineString feature over the (lon, lat) points."""
    return {
        "type": "FeatureCollection",
        "features": [{
            "type": "Feature",
            "properties": {},
            "geometry": {
                "type": "LineString",
                "coordinates": [[p[0], p[1]] for p in points],
            },
        }],
    }


def merge_elevations(
    analysis: SurfaceAnalysis,
    elevations: Sequence[float],
) -> SurfaceAnalysis:
    """
    Return a copy of the analysis with resolved elevations in the profile.

    Grades are recomputed from consecutive elevation and distance deltas.
    A length mismatch leaves the profile untouched.
    """
    profile = analysis.elevation_profile
    if not profile:
        return analysis
    if len(profile) != len(elevations):
        logger.warning(
            f"Elevation count {len(elevations)} does not match profile "
            f"length {len(profile)}, keeping base profile"
        )
        return analysis

    merged: List[ElevationProfilePoint] = []
    for i, (point, elevation) in enumerate(zip(profile, elevations)):
        grade = 0.0
        if i > 0:
            grade = calculate_grade(
                point.distance - profile[i - 1].distance,
                elevation - elevations[i - 1],
            )
        merged.append(ElevationProfilePoint(
            elevation=elevation,
            distance=point.distance,
            grade=round(grade, 2),
        ))

    return analysis.model_copy(update={"elevation_profile": merged})


class SurfaceAnalyzer:
    """
    Surface classification for a route geometry.

    Never raises: any failure degrades to default_surface_analysis().
    """

    def analyze(self, geojson: Dict[str, Any]) -> SurfaceAnalysis:
        """Analyze the geometry, falling back to the default on failure."""
        return self.analyze_stage(geojson).value

    def analyze_stage(self, geojson: Dict[str, Any]) -> StageResult[SurfaceAnalysis]:
        """Analyze the geometry and tag whether the result is degraded."""
        try:
            lines = self._extract_lines(geojson)
            if not lines:
                return StageResult.ok(default_surface_analysis())
            return StageResult.ok(self._analyze_lines(lines))
        except Exception as e:
            logger.warning(f"Surface analysis error: {e}")
            return StageResult.degraded(
                default_surface_analysis(),
                f"{ErrorCode.SURFACE_ANALYSIS_ERROR.value}: {e}",
            )

    def _extract_lines(
        self, geojson: Dict[str, Any]
    ) -> List[Tuple[List[List[float]], Any]]:
        """
        Return [(coordinates, surface_tag)] for a simple path.

        Empty list when the geometry is empty or is not made only of
        LineStrings.
        """
        features = (geojson or {}).get("features") or []
        lines = []
        for feature in features:
            geometry = feature.get("geometry") or {}
            if geometry.get("type") != "LineString":
                return []
            coordinates = geometry.get("coordinates") or []
            if not coordinates:
                continue
            properties = feature.get("properties") or {}
            tag = properties.get("surface") or properties.get("class")
            lines.append((coordinates, tag))
        return lines

    def _analyze_lines(
        self, lines: List[Tuple[List[List[float]], Any]]
    ) -> SurfaceAnalysis:
        coordinates: List[List[float]] = []
        distance_by_type: Dict[SurfaceType, float] = {}
        order: List[SurfaceType] = []

        for line_coords, tag in lines:
            surface = classify_surface_tag(tag)
            # distance between features belongs to the following feature
            line_distance = calculate_total_distance(line_coords)
            if coordinates:
                line_distance += calculate_total_distance(
                    [coordinates[-1], line_coords[0]]
                )
            coordinates.extend(line_coords)
            if surface not in distance_by_type:
                distance_by_type[surface] = 0.0
                order.append(surface)
            distance_by_type[surface] += line_distance

        total_distance = calculate_total_distance(coordinates)
        segments = self._build_segments(order, distance_by_type, total_distance)

        n = len(coordinates)
        profile = [
            ElevationProfilePoint(
                elevation=0.0,
                distance=(i / (n - 1)) * total_distance if n > 1 else 0.0,
                grade=0.0,
            )
            for i in range(n)
        ]

        roughness, difficulty, quality = self._scores(segments)
        return SurfaceAnalysis(
            surface_types=segments,
            elevation_profile=profile,
            total_distance=total_distance,
            roughness=roughness,
            difficulty_rating=difficulty,
            surface_quality=quality,
        )

    def _build_segments(
        self,
        order: List[SurfaceType],
        distance_by_type: Dict[SurfaceType, float],
        total_distance: float,
    ) -> List[SurfaceSegment]:
        measured = sum(distance_by_type.values())
        if measured <= 0:
            # zero-length route: first surface takes the whole share
            return [SurfaceSegment(surface_type=order[0], percentage=100, distance=0)]

        segments = []
        for surface in order:
            share = distance_by_type[surface] / measured
            segments.append(SurfaceSegment(
                surface_type=surface,
                percentage=round(share * 100, 2),
                distance=share * total_distance,
            ))
        return segments

    def _scores(self, segments: List[SurfaceSegment]) -> Tuple[float, float, float]:
        """Percentage-weighted roughness, difficulty and quality."""
        weight_total = sum(s.percentage for s in segments) or 1.0
        roughness = difficulty = quality = 0.0
        for segment in segments:
            r, d, q = SURFACE_SCORES[segment.surface_type]
            weight = segment.percentage / weight_total
            roughness += r * weight
            difficulty += d * weight
            quality += q * weight
        return (
            min(round(roughness, 3), 1.0),
            min(round(difficulty, 3), 1.0),
            min(round(quality, 3), 1.0),
        )
