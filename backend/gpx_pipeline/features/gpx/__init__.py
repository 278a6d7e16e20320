"""
GPX track processing module.

Usage:
    from gpx_pipeline.features.gpx import GPXProcessingService
    from gpx_pipeline.features.gpx import ProgressTracker, UploadSessionRegistry

Components:
- GPXParser: Parse GPX text into track points and name
- SurfaceAnalyzer: Surface mix and base elevation profile
- TerrainElevationResolver: Terrain-RGB elevation per point
- MapboxRoadMatcher: Optional snapping to the road network
- ProgressTracker: Observable per-upload progress snapshots
- UploadSessionRegistry: Upload id -> tracker lookup
- GPXProcessingService: Pipeline orchestrator
"""

from .errors import (
    ErrorCode,
    GPXProcessingError,
    ParseError,
    MatchingError,
    ElevationError,
    MissingCredentialError,
)
from .results import StageResult, StageOutcome
from .schemas import (
    TrackPoint,
    ParsedTrack,
    SurfaceType,
    SurfaceSegment,
    ElevationProfilePoint,
    SurfaceAnalysis,
    MatchingStatus,
    MapboxMatchResult,
    ProcessingStatus,
    RouteStatistics,
    RouteStatus,
    ProcessedRoute,
    ProgressUpdate,
    UploadStatus,
    UploadResponse,
)
from .parser import GPXParser
from .surface import SurfaceAnalyzer, build_geojson, merge_elevations
from .elevation import TerrainElevationResolver
from .matching import MapboxRoadMatcher
from .progress import ProgressTracker, Subscription
from .registry import UploadSessionRegistry, UploadStore, InMemoryUploadStore
from .service import GPXProcessingService, generate_upload_id

__all__ = [
    # Errors
    "ErrorCode",
    "GPXProcessingError",
    "ParseError",
    "MatchingError",
    "ElevationError",
    "MissingCredentialError",
    # Stage results
    "StageResult",
    "StageOutcome",
    # Schemas
    "TrackPoint",
    "ParsedTrack",
    "SurfaceType",
    "SurfaceSegment",
    "ElevationProfilePoint",
    "SurfaceAnalysis",
    "MatchingStatus",
    "MapboxMatchResult",
    "ProcessingStatus",
    "RouteStatistics",
    "RouteStatus",
    "ProcessedRoute",
    "ProgressUpdate",
    "UploadStatus",
    "UploadResponse",
    # Components
    "GPXParser",
    "SurfaceAnalyzer",
    "build_geojson",
    "merge_elevations",
    "TerrainElevationResolver",
    "MapboxRoadMatcher",
    "ProgressTracker",
    "Subscription",
    "UploadSessionRegistry",
    "UploadStore",
    "InMemoryUploadStore",
    # Service
    "GPXProcessingService",
    "generate_upload_id",
]
