"""
Terrain elevation resolver.

Resolves one elevation sample per track point from Terrain-RGB raster
tiles. Each point is projected onto a tile at a fixed zoom, the covering
tile is fetched once per batch and the pixel under the point is decoded:

    elevation = -10000 + (R * 65536 + G * 256 + B) * 0.1

Elevation is best-effort enrichment. A failed lookup yields 0.0 for that
point only, and a total outage yields 0.0 for every point. The output
always has exactly one sample per input point, in the same order.
"""

import asyncio
import io
import logging
from typing import Dict, List, Optional, Sequence, Tuple

import httpx
from PIL import Image, UnidentifiedImageError

from gpx_pipeline.shared.elevation import decode_terrain_rgb, zero_elevations
from gpx_pipeline.shared.geo import lonlat_to_tile

from .errors import ElevationError, ErrorCode
from .results import StageResult
from .schemas import TrackPoint

logger = logging.getLogger(__name__)

TileKey = Tuple[int, int, int]


class TerrainElevationResolver:
    """
    Async Terrain-RGB elevation client.

    Usage:
        resolver = TerrainElevationResolver(token, client=http_client)
        result = await resolver.resolve(points)
        elevations = result.value
    """

    DEFAULT_TILE_URL = "https://api.mapbox.com/v4/mapbox.terrain-rgb/{z}/{x}/{y}.pngraw"

    def __init__(
        self,
        access_token: str,
        client: Optional[httpx.AsyncClient] = None,
        tile_url: str = DEFAULT_TILE_URL,
        zoom: int = 14,
        concurrency: int = 8,
        timeout: float = 10.0,
    ):
        self.access_token = access_token
        self.tile_url = tile_url
        self.zoom = zoom
        self.concurrency = max(1, concurrency)
        self.timeout = timeout
        self._client = client

    async def resolve(self, points: Sequence[TrackPoint]) -> StageResult[List[float]]:
        """
        Resolve elevations for all points.

        Returns:
            OK with one sample per point, or DEGRADED (same cardinality)
            when some or all lookups failed and were replaced by 0.0
        """
        if not points:
            return StageResult.ok([])

        try:
            if self._client is not None:
                elevations, failures = await self._resolve_all(self._client, points)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    elevations, failures = await self._resolve_all(client, points)
        except Exception as e:
            logger.error(f"Failed to calculate elevations: {e}")
            return StageResult.degraded(
                zero_elevations(len(points)),
                f"{ErrorCode.ELEVATION_ERROR.value}: {e}",
            )

        if failures:
            return StageResult.degraded(
                elevations,
                f"{failures} of {len(points)} elevation lookups failed",
            )
        return StageResult.ok(elevations)

    async def _resolve_all(
        self,
        client: httpx.AsyncClient,
        points: Sequence[TrackPoint],
    ) -> Tuple[List[float], int]:
        semaphore = asyncio.Semaphore(self.concurrency)
        # One in-flight download per tile; points sharing a tile reuse it
        tiles: Dict[TileKey, asyncio.Task] = {}

        def tile_task(key: TileKey) -> asyncio.Task:
            if key not in tiles:
                tiles[key] = asyncio.create_task(
                    self._fetch_tile(client, semaphore, key)
                )
            return tiles[key]

        async def resolve_point(point: TrackPoint) -> Optional[float]:
            fx, fy = lonlat_to_tile(point[0], point[1], self.zoom)
            key = (self.zoom, int(fx), int(fy))
            try:
                image = await tile_task(key)
                width, height = image.size
                px = min(int((fx - int(fx)) * width), width - 1)
                py = min(int((fy - int(fy)) * height), height - 1)
                r, g, b = image.getpixel((px, py))[:3]
                return decode_terrain_rgb(r, g, b)
            except (ElevationError, httpx.HTTPError) as e:
                logger.warning(
                    f"Failed to get elevation for point [{point[0]}, {point[1]}]: {e}"
                )
                return None

        try:
            results = await asyncio.gather(*(resolve_point(p) for p in points))
        finally:
            for task in tiles.values():
                if not task.done():
                    task.cancel()

        failures = sum(1 for value in results if value is None)
        elevations = [0.0 if value is None else value for value in results]
        return elevations, failures

    async def _fetch_tile(
        self,
        client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
        key: TileKey,
    ) -> Image.Image:
        z, x, y = key
        url = self.tile_url.format(z=z, x=x, y=y)

        async with semaphore:
            response = await client.get(
                url,
                params={"access_token": self.access_token},
                timeout=self.timeout,
            )

        if response.status_code != 200:
            raise ElevationError(
                f"Terrain tile {z}/{x}/{y} returned {response.status_code}"
            )

        try:
            image = Image.open(io.BytesIO(response.content))
            return image.convert("RGB")
        except (UnidentifiedImageError, OSError) as e:
            raise ElevationError(f"Terrain tile {z}/{x}/{y} is not an image: {e}") from e
