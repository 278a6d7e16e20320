"""
GPX pipeline schemas.

Pydantic models for route processing results and progress snapshots.
JSON field names are camelCase for the web and mobile clients.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Literal, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Track Data
# =============================================================================

class TrackPoint(NamedTuple):
    """Single (lon, lat) sample, rounded to 5 decimals by the parser."""
    lon: float
    lat: float
    time: Optional[datetime] = None


class ParsedTrack(NamedTuple):
    """Parser output."""
    points: List[TrackPoint]
    name: Optional[str]
    description: Optional[str] = None


# =============================================================================
# Surface Analysis
# =============================================================================

class SurfaceType(str, Enum):
    ROAD = "road"
    TRAIL = "trail"
    WATER = "water"
    UNKNOWN = "unknown"


class SurfaceSegment(CamelModel):
    """Share of the route on one surface type."""

    surface_type: SurfaceType = Field(alias="type")
    percentage: float = Field(ge=0, le=100)
    distance: float = Field(ge=0, description="Meters")


class ElevationProfilePoint(CamelModel):
    """One analyzed coordinate of the elevation profile."""

    elevation: float = 0.0
    distance: float = Field(default=0.0, description="Cumulative meters")
    grade: float = Field(default=0.0, description="Percent")


class SurfaceAnalysis(CamelModel):
    """Surface mix, elevation profile and derived scores of a route."""

    surface_types: List[SurfaceSegment]
    elevation_profile: List[ElevationProfilePoint] = Field(default_factory=list)
    total_distance: float = 0.0
    roughness: float = Field(default=0.0, ge=0, le=1)
    difficulty_rating: float = Field(default=0.0, ge=0, le=1)
    surface_quality: float = Field(default=0.0, ge=0, le=1)


# =============================================================================
# Map Matching
# =============================================================================

class MatchingStatus(str, Enum):
    MATCHED = "matched"
    PARTIAL = "partial"
    FAILED = "failed"


class MapboxMatchResult(CamelModel):
    """Geometry snapped onto the road network."""

    geojson: dict[str, Any]
    confidence: float = Field(ge=0, le=1)
    matching_status: MatchingStatus
    distance: float = 0.0
    duration: float = 0.0


# =============================================================================
# Route
# =============================================================================

class ProcessingStatus(str, Enum):
    """Job state machine: pending -> processing -> completed | failed."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)

    def can_transition_to(self, target: "ProcessingStatus") -> bool:
        # processing -> processing is a progress update
        return not self.is_terminal and target is not ProcessingStatus.PENDING


class RouteStatistics(CamelModel):
    """Route totals. Distances in meters, times in seconds, speed in m/s."""

    total_distance: float = 0.0
    elevation_gain: float = 0.0
    elevation_loss: float = 0.0
    max_elevation: float = 0.0
    min_elevation: float = 0.0
    average_speed: float = 0.0
    moving_time: float = 0.0
    total_time: float = 0.0


class RouteError(CamelModel):
    code: str
    message: str
    details: Optional[str] = None


class RouteStatus(CamelModel):
    processing_state: ProcessingStatus
    progress: int = Field(ge=0, le=100)
    error: Optional[RouteError] = None


class ProcessedRoute(CamelModel):
    """Finished pipeline output, handed to the persistence layer."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: Optional[str] = None
    color: str
    is_visible: bool = True
    geojson: dict[str, Any]
    surface: SurfaceAnalysis
    statistics: RouteStatistics
    status: RouteStatus
    mapbox_match: Optional[MapboxMatchResult] = None
    warnings: List[str] = Field(default_factory=list)


# =============================================================================
# Progress
# =============================================================================

ProgressState = Literal["processing", "complete", "error"]


class ProgressUpdate(CamelModel):
    """Full snapshot of an upload's progress (never a delta)."""

    model_config = ConfigDict(frozen=True)

    status: ProgressState = "processing"
    progress: int = Field(default=0, ge=0, le=100)
    current_task: str = ""
    errors: List[str] = Field(default_factory=list)
    result: Optional[ProcessedRoute] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ("complete", "error")


class UploadStatus(CamelModel):
    """Compact status for polling clients."""

    status: ProgressState
    progress: int
    message: str


class UploadResponse(CamelModel):
    """Response for GPX upload."""

    upload_id: str
    message: str
    filename: Optional[str] = None
