"""
Tests for SurfaceAnalyzer and profile merging.
"""

import pytest

from gpx_pipeline.features.gpx import (
    SurfaceAnalyzer,
    SurfaceType,
    build_geojson,
    merge_elevations,
)
from gpx_pipeline.features.gpx.surface import classify_surface_tag, default_surface_analysis


@pytest.fixture
def analyzer():
    return SurfaceAnalyzer()


def _feature(coordinates, **properties):
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": {"type": "LineString", "coordinates": coordinates},
    }


# =============================================================================
# Empty and Unusable Geometry
# =============================================================================

class TestFallback:

    def test_empty_track(self, analyzer):
        analysis = analyzer.analyze(build_geojson([]))
        assert analysis.total_distance == 0
        assert analysis.elevation_profile == []
        assert len(analysis.surface_types) == 1
        segment = analysis.surface_types[0]
        assert segment.surface_type == SurfaceType.UNKNOWN
        assert segment.percentage == 100
        assert segment.distance == 0

    def test_empty_feature_collection(self, analyzer):
        result = analyzer.analyze_stage({"type": "FeatureCollection", "features": []})
        assert result.is_ok
        assert result.value == default_surface_analysis()

    def test_non_linestring_geometry(self, analyzer):
        geojson = {
            "type": "FeatureCollection",
            "features": [{
                "type": "Feature",
                "properties": {},
                "geometry": {"type": "Point", "coordinates": [147.3, -42.9]},
            }],
        }
        assert analyzer.analyze(geojson) == default_surface_analysis()

    def test_broken_input_degrades(self, analyzer):
        result = analyzer.analyze_stage({"features": ["not a feature"]})
        assert result.is_degraded
        assert result.value == default_surface_analysis()
        assert "SURFACE_ANALYSIS_ERROR" in result.reason

    def test_serialized_default(self):
        data = default_surface_analysis().to_json_dict()
        assert data["surfaceTypes"] == [{"type": "unknown", "percentage": 100.0, "distance": 0.0}]
        assert data["elevationProfile"] == []
        assert data["totalDistance"] == 0.0


# =============================================================================
# Distances and Profile
# =============================================================================

class TestAnalysis:

    def test_one_degree_route(self, analyzer):
        analysis = analyzer.analyze(build_geojson([(0.0, 0.0), (0.0, 1.0)]))
        assert analysis.total_distance == pytest.approx(111_195, rel=0.005)
        assert len(analysis.elevation_profile) == 2
        assert analysis.elevation_profile[0].distance == 0
        assert analysis.elevation_profile[-1].distance == pytest.approx(analysis.total_distance)

    def test_unlabeled_route_is_trail(self, analyzer):
        analysis = analyzer.analyze(build_geojson([(147.0, -42.0), (147.0, -42.01)]))
        assert [s.surface_type for s in analysis.surface_types] == [SurfaceType.TRAIL]
        assert analysis.surface_types[0].percentage == 100

    def test_profile_distances_non_decreasing(self, analyzer):
        points = [(147.0 + i * 0.001, -42.0) for i in range(20)]
        profile = analyzer.analyze(build_geojson(points)).elevation_profile
        distances = [p.distance for p in profile]
        assert distances == sorted(distances)
        assert all(p.elevation == 0 for p in profile)

    def test_single_point(self, analyzer):
        analysis = analyzer.analyze(build_geojson([(147.0, -42.0)]))
        assert analysis.total_distance == 0
        assert analysis.surface_types[0].percentage == 100
        assert len(analysis.elevation_profile) == 1

    def test_mixed_surfaces_sum_to_total(self, analyzer):
        geojson = {
            "type": "FeatureCollection",
            "features": [
                _feature([[147.0, -42.0], [147.0, -42.01]], surface="asphalt"),
                _feature([[147.0, -42.01], [147.0, -42.03]], surface="gravel"),
                _feature([[147.0, -42.03], [147.0, -42.04]], surface="ferry"),
            ],
        }
        analysis = analyzer.analyze(geojson)
        types = [s.surface_type for s in analysis.surface_types]
        assert types == [SurfaceType.ROAD, SurfaceType.TRAIL, SurfaceType.WATER]
        assert sum(s.percentage for s in analysis.surface_types) == pytest.approx(100, abs=0.05)
        assert sum(s.distance for s in analysis.surface_types) == pytest.approx(analysis.total_distance)
        assert analysis.surface_types[1].percentage == pytest.approx(50, abs=0.1)

    def test_scores_in_range(self, analyzer):
        geojson = {
            "type": "FeatureCollection",
            "features": [_feature([[147.0, -42.0], [147.0, -42.01]], surface="water")],
        }
        analysis = analyzer.analyze(geojson)
        for score in (analysis.roughness, analysis.difficulty_rating, analysis.surface_quality):
            assert 0 <= score <= 1
        assert analysis.surface_quality == 0.0


class TestClassifySurfaceTag:

    @pytest.mark.parametrize("tag,expected", [
        ("asphalt", SurfaceType.ROAD),
        ("Paved", SurfaceType.ROAD),
        ("gravel", SurfaceType.TRAIL),
        (None, SurfaceType.TRAIL),
        ("ferry", SurfaceType.WATER),
        ("lava", SurfaceType.UNKNOWN),
    ])
    def test_tags(self, tag, expected):
        assert classify_surface_tag(tag) == expected


# =============================================================================
# Elevation Merge
# =============================================================================

class TestMergeElevations:

    def test_elevations_and_grades(self, analyzer):
        analysis = analyzer.analyze(build_geojson([(147.0, -42.0), (147.0, -42.001), (147.0, -42.002)]))
        merged = merge_elevations(analysis, [100.0, 110.0, 105.0])

        assert [p.elevation for p in merged.elevation_profile] == [100.0, 110.0, 105.0]
        assert merged.elevation_profile[0].grade == 0.0
        assert merged.elevation_profile[1].grade > 0
        assert merged.elevation_profile[2].grade < 0
        # original untouched
        assert all(p.elevation == 0 for p in analysis.elevation_profile)

    def test_length_mismatch_keeps_profile(self, analyzer):
        analysis = analyzer.analyze(build_geojson([(147.0, -42.0), (147.0, -42.001)]))
        assert merge_elevations(analysis, [1.0]) is analysis

    def test_empty_profile(self):
        analysis = default_surface_analysis()
        assert merge_elevations(analysis, []) is analysis
