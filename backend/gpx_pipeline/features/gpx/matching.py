"""
Road matcher.

Snaps the raw trace onto the road/trail network with the Mapbox Map
Matching API. Matching is an enhancement: callers treat MatchingError as
a skippable stage and keep the raw geometry.

API Limits:
- 100 coordinates per request (longer traces are split into batches)
- one search radius per coordinate
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .config import PipelineConfig
from .errors import MatchingError
from .results import StageResult
from .schemas import MapboxMatchResult, MatchingStatus, TrackPoint

logger = logging.getLogger(__name__)


def chunk_points(points: Sequence[TrackPoint], size: int) -> List[List[TrackPoint]]:
    """
    Split points into batches of at most `size`.

    A trailing single-point batch borrows the last point of the previous
    batch, since the API needs at least two coordinates per request.
    """
    batches = [list(points[i:i + size]) for i in range(0, len(points), size)]
    if len(batches) > 1 and len(batches[-1]) == 1:
        batches[-1].insert(0, batches[-2].pop())
    return batches


def classify_confidence(confidence: float) -> MatchingStatus:
    """Map a 0-1 confidence onto matched / partial / failed."""
    if confidence >= PipelineConfig.MATCHED_CONFIDENCE:
        return MatchingStatus.MATCHED
    if confidence >= PipelineConfig.PARTIAL_CONFIDENCE:
        return MatchingStatus.PARTIAL
    return MatchingStatus.FAILED


class MapboxRoadMatcher:
    """
    Async client for the Map Matching API.

    Usage:
        matcher = MapboxRoadMatcher(token, client=http_client)
        result = await matcher.match(points)
    """

    API_URL = "https://api.mapbox.com/matching/v5/mapbox"

    def __init__(
        self,
        access_token: str,
        client: Optional[httpx.AsyncClient] = None,
        api_url: str = API_URL,
        profile: str = "cycling",
        radius_m: float = 25.0,
        batch_size: int = 100,
        timeout: float = 30.0,
    ):
        self.access_token = access_token
        self.api_url = api_url.rstrip("/")
        self.profile = profile
        self.radius_m = radius_m
        self.batch_size = max(2, min(batch_size, 100))
        self.timeout = timeout
        self._client = client

    async def match(self, points: Sequence[TrackPoint]) -> MapboxMatchResult:
        """
        Match the trace to the road network.

        Returns:
            MapboxMatchResult with the combined snapped geometry

        Raises:
            MatchingError: On non-success or malformed responses and transport errors
        """
        if len(points) < 2:
            raise MatchingError("Map matching needs at least two points")

        batches = chunk_points(points, self.batch_size)

        try:
            if self._client is not None:
                matchings = [await self._match_batch(self._client, b) for b in batches]
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    matchings = [await self._match_batch(client, b) for b in batches]
            return self._combine(matchings, points)
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            # malformed upstream body (ValidationError is a ValueError)
            raise MatchingError(f"Mapbox matching returned an unexpected response: {e}") from e

    async def match_stage(
        self, points: Sequence[TrackPoint]
    ) -> StageResult[MapboxMatchResult]:
        """match() as a tagged result; errors become FATAL for this stage only."""
        try:
            return StageResult.ok(await self.match(points))
        except MatchingError as e:
            logger.warning(f"Map matching skipped: {e}")
            return StageResult.fatal(e)

    async def _match_batch(
        self,
        client: httpx.AsyncClient,
        batch: Sequence[TrackPoint],
    ) -> Optional[Dict[str, Any]]:
        """Best matching for one batch, None when upstream found no match."""
        coordinates = ";".join(f"{p[0]},{p[1]}" for p in batch)
        radiuses = ";".join(f"{self.radius_m:g}" for _ in batch)
        url = f"{self.api_url}/{self.profile}/{coordinates}"

        try:
            response = await client.get(
                url,
                params={
                    "access_token": self.access_token,
                    "geometries": "geojson",
                    "radiuses": radiuses,
                    "overview": "full",
                    "tidy": "true",
                    "steps": "true",
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise MatchingError(f"Mapbox matching failed: {e}") from e

        if response.status_code != 200:
            raise MatchingError(
                f"Mapbox matching failed: {response.status_code}",
                details=response.text[:500],
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MatchingError(f"Mapbox matching returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise MatchingError("Mapbox matching returned an unexpected response body")

        code = data.get("code")
        matchings = data.get("matchings") or []
        if code == "NoMatch" or not matchings:
            logger.warning("No matches found for batch, using original points")
            return None
        if code != "Ok":
            raise MatchingError(f"Mapbox matching failed: {code}", details=data.get("message"))

        return max(matchings, key=lambda m: m.get("confidence") or 0.0)

    def _combine(
        self,
        matchings: List[Optional[Dict[str, Any]]],
        points: Sequence[TrackPoint],
    ) -> MapboxMatchResult:
        features = []
        weighted_confidence = 0.0
        total_distance = 0.0
        total_duration = 0.0
        matched = [m for m in matchings if m is not None]

        for matching in matched:
            distance = float(matching.get("distance") or 0.0)
            total_distance += distance
            total_duration += float(matching.get("duration") or 0.0)
            weighted_confidence += float(matching.get("confidence") or 0.0) * distance
            features.append({
                "type": "Feature",
                "properties": {"confidence": matching.get("confidence")},
                "geometry": matching.get("geometry") or {
                    "type": "LineString", "coordinates": []
                },
            })

        if not matched:
            return MapboxMatchResult(
                geojson={
                    "type": "FeatureCollection",
                    "features": [{
                        "type": "Feature",
                        "properties": {},
                        "geometry": {
                            "type": "LineString",
                            "coordinates": [[p[0], p[1]] for p in points],
                        },
                    }],
                },
                confidence=0.0,
                matching_status=MatchingStatus.FAILED,
            )

        if total_distance > 0:
            confidence = weighted_confidence / total_distance
        else:
            confidence = sum(float(m.get("confidence") or 0.0) for m in matched) / len(matched)
        # unmatched batches count as zero confidence
        confidence *= len(matched) / len(matchings)
        confidence = max(0.0, min(confidence, 1.0))

        return MapboxMatchResult(
            geojson={"type": "FeatureCollection", "features": features},
            confidence=round(confidence, 4),
            matching_status=classify_confidence(confidence),
            distance=total_distance,
            duration=total_duration,
        )
