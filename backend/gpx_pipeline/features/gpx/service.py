"""
GPX Processing Service

Orchestrates the pipeline for one upload:
- Parse GPX -> track points + name
- Build base geometry
- (optional) Match to the road network
- Surface analysis
- Terrain elevation lookup, merged into profile and statistics
- Route statistics
- Final ProcessedRoute pushed as the terminal `complete` update

process_upload() registers a ProgressTracker and returns the upload id at
once; the pipeline itself runs as a background task. Any unexpected error
ends the job in the terminal `error` state and never escapes the task.
"""

import asyncio
import logging
import secrets
import time
from typing import List, Optional

import httpx

from gpx_pipeline.config import Settings
from gpx_pipeline.shared.geo import calculate_total_distance

from .config import PipelineConfig
from .elevation import TerrainElevationResolver
from .errors import GPXProcessingError, MissingCredentialError
from .matching import MapboxRoadMatcher
from .parser import GPXParser
from .progress import ProgressTracker
from .registry import InMemoryUploadStore, UploadSessionRegistry
from .results import StageResult
from .schemas import (
    MapboxMatchResult,
    ProcessedRoute,
    ProcessingStatus,
    RouteStatus,
    UploadStatus,
)
from .statistics import build_statistics
from .surface import SurfaceAnalyzer, build_geojson, merge_elevations

logger = logging.getLogger(__name__)


def generate_upload_id() -> str:
    """Time-ordered id with a random suffix, e.g. '18c2f3a9b10-4f1a9c2e7d3b'."""
    return f"{int(time.time() * 1000):x}-{secrets.token_hex(6)}"


class GPXProcessingService:
    """
    Pipeline orchestrator.

    Usage:
        service = GPXProcessingService(token)
        upload_id = await service.process_upload(content, "ride.gpx")
        async for update in service.get_progress_tracker(upload_id).listen():
            ...
    """

    def __init__(
        self,
        mapbox_token: Optional[str],
        registry: Optional[UploadSessionRegistry] = None,
        parser: Optional[GPXParser] = None,
        surface_analyzer: Optional[SurfaceAnalyzer] = None,
        elevation_resolver: Optional[TerrainElevationResolver] = None,
        road_matcher: Optional[MapboxRoadMatcher] = None,
    ):
        """
        Args:
            mapbox_token: Terrain/matching credential (required)
            registry: Upload registry, in-memory by default
            parser: GPX parser
            surface_analyzer: Surface analyzer
            elevation_resolver: Terrain elevation client
            road_matcher: Map matching client; matching is skipped when None

        Raises:
            MissingCredentialError: If mapbox_token is empty
        """
        if not mapbox_token:
            raise MissingCredentialError("MAPBOX_TOKEN is required for GPX processing")

        self.mapbox_token = mapbox_token
        self.registry = registry or UploadSessionRegistry()
        self.parser = parser or GPXParser()
        self.surface_analyzer = surface_analyzer or SurfaceAnalyzer()
        self.elevation_resolver = elevation_resolver or TerrainElevationResolver(mapbox_token)
        self.road_matcher = road_matcher
        # Keep strong references to running jobs to prevent GC
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "GPXProcessingService":
        """Build the service and its collaborators from application settings."""
        token = settings.mapbox_token
        if not token:
            raise MissingCredentialError("MAPBOX_TOKEN is required for GPX processing")

        road_matcher = None
        if settings.map_matching_enabled:
            road_matcher = MapboxRoadMatcher(
                token,
                client=client,
                api_url=settings.map_matching_url,
                profile=settings.map_matching_profile,
                radius_m=settings.map_matching_radius_m,
                batch_size=settings.map_matching_batch_size,
            )

        return cls(
            token,
            registry=UploadSessionRegistry(
                InMemoryUploadStore(
                    ttl_seconds=settings.upload_ttl_seconds,
                    maxsize=settings.upload_max_entries,
                )
            ),
            elevation_resolver=TerrainElevationResolver(
                token,
                client=client,
                tile_url=settings.terrain_tile_url,
                zoom=settings.terrain_zoom,
                concurrency=settings.elevation_concurrency,
                timeout=settings.elevation_timeout,
            ),
            road_matcher=road_matcher,
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def process_upload(self, content: bytes, filename: Optional[str] = None) -> str:
        """
        Start processing an uploaded GPX file.

        The tracker is registered before this returns, so status and
        progress lookups are valid immediately.

        Returns:
            Upload id
        """
        upload_id = generate_upload_id()
        tracker = ProgressTracker(upload_id)
        self.registry.put(upload_id, tracker)

        logger.info(f"Starting GPX processing {upload_id} ({filename}, {len(content)} bytes)")
        task = asyncio.create_task(self.run_pipeline(upload_id, content, tracker))
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_task_done(t, tracker))
        return upload_id

    async def run_pipeline(
        self,
        upload_id: str,
        content: bytes | str,
        tracker: ProgressTracker,
    ) -> Optional[ProcessedRoute]:
        """
        Run all stages and drive the tracker to a terminal state.

        Returns:
            The ProcessedRoute, or None when the job failed
        """
        try:
            route = await self._process(upload_id, content, tracker)
        except asyncio.CancelledError:
            tracker.fail(["GPX processing cancelled"])
            raise
        except Exception as e:
            logger.exception(f"GPX processing failed for upload {upload_id}")
            message = e.message if isinstance(e, GPXProcessingError) else str(e)
            tracker.fail([f"GPX processing failed: {message or type(e).__name__}"])
            return None

        tracker.complete(route)
        logger.info(f"GPX processing complete {upload_id}")
        return route

    def _on_task_done(self, task: asyncio.Task, tracker: ProgressTracker) -> None:
        self._tasks.discard(task)
        # a job cancelled before it started never reached run_pipeline
        if task.cancelled():
            tracker.fail(["GPX processing cancelled"])

    def get_progress_tracker(self, upload_id: str) -> Optional[ProgressTracker]:
        return self.registry.get(upload_id)

    def get_upload_status(self, upload_id: str) -> UploadStatus:
        return self.registry.get_status(upload_id)

    def get_result(self, upload_id: str) -> Optional[ProcessedRoute]:
        """Finished route, None while running, failed or unknown."""
        tracker = self.registry.get(upload_id)
        if tracker is None:
            return None
        return tracker.get_progress().result

    async def shutdown(self) -> None:
        """Cancel jobs still running."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} running GPX jobs")

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    async def _process(
        self,
        upload_id: str,
        content: bytes | str,
        tracker: ProgressTracker,
    ) -> ProcessedRoute:
        warnings: List[str] = []

        # 1. Parse
        parsed = self.parser.parse(content)
        points = parsed.points
        tracker.update_progress(
            progress=PipelineConfig.PROGRESS_PARSED,
            current_task=f"Parsed {len(points)} track points",
        )

        # 2. Base geometry
        geojson = build_geojson(points)
        tracker.update_progress(
            progress=PipelineConfig.PROGRESS_GEOMETRY,
            current_task="Built route geometry",
        )

        # Optional: road matching
        mapbox_match: Optional[MapboxMatchResult] = None
        if self.road_matcher is not None:
            match = await self.road_matcher.match_stage(points)
            mapbox_match = self._accept(match, warnings, "Map matching")
            tracker.update_progress(
                progress=PipelineConfig.PROGRESS_MATCHED,
                current_task="Matched to road network" if mapbox_match else "Map matching skipped",
            )

        # 3. Surfaces
        surface = self._accept(
            self.surface_analyzer.analyze_stage(geojson), warnings, "Surface analysis"
        )
        tracker.update_progress(
            progress=PipelineConfig.PROGRESS_SURFACE,
            current_task="Analyzed surfaces",
        )

        # 4. Elevation
        elevation = await self.elevation_resolver.resolve(points)
        elevations = self._require(elevation, warnings, "Elevation lookup")
        if len(elevations) != len(points):
            raise GPXProcessingError(
                f"Elevation lookup returned {len(elevations)} samples for {len(points)} points"
            )
        surface = merge_elevations(surface, elevations)
        tracker.update_progress(
            progress=PipelineConfig.PROGRESS_ELEVATION,
            current_task="Resolved elevations",
        )

        # 5. Statistics
        total_distance = calculate_total_distance(points)
        statistics = build_statistics(points, elevations, total_distance)

        # 6. Result
        return ProcessedRoute(
            id=upload_id,
            name=parsed.name or PipelineConfig.DEFAULT_ROUTE_NAME,
            description=parsed.description,
            color=PipelineConfig.DEFAULT_ROUTE_COLOR,
            geojson=geojson,
            surface=surface,
            statistics=statistics,
            status=RouteStatus(
                processing_state=ProcessingStatus.COMPLETED,
                progress=PipelineConfig.PROGRESS_COMPLETE,
            ),
            mapbox_match=mapbox_match,
            warnings=warnings,
        )

    def _accept(self, result: StageResult, warnings: List[str], stage: str):
        """Skippable stage: FATAL drops the stage, DEGRADED keeps the value."""
        if result.is_fatal:
            warnings.append(f"{stage} skipped: {result.reason}")
            return None
        if result.is_degraded:
            logger.warning(f"{stage} degraded: {result.reason}")
            warnings.append(f"{stage} degraded: {result.reason}")
        return result.value

    def _require(self, result: StageResult, warnings: List[str], stage: str):
        """Mandatory stage: FATAL aborts the job."""
        if result.is_fatal:
            return result.unwrap()
        return self._accept(result, warnings, stage)
