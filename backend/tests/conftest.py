"""
Shared fixtures for GPX pipeline tests.

Upstream HTTP services are replaced by httpx.MockTransport handlers.
"""

import io
from typing import Callable

import httpx
import pytest
from PIL import Image

from gpx_pipeline.features.gpx import (
    ProcessedRoute,
    ProcessingStatus,
    RouteStatistics,
    RouteStatus,
    build_geojson,
)
from gpx_pipeline.features.gpx.surface import default_surface_analysis


# Terrain-RGB pixel (1, 138, 136) decodes to exactly 100.0 m
TILE_RGB_100M = (1, 138, 136)


def make_tile_png(rgb=TILE_RGB_100M, size: int = 256) -> bytes:
    """Solid-color PNG tile."""
    buffer = io.BytesIO()
    Image.new("RGB", (size, size), rgb).save(buffer, format="PNG")
    return buffer.getvalue()


def make_gpx(points, name: str | None = "Test Track", times=None) -> str:
    """Build a GPX 1.1 document from (lat, lon) pairs."""
    trkpts = []
    for i, (lat, lon) in enumerate(points):
        time = f"<time>{times[i]}</time>" if times else ""
        trkpts.append(f'<trkpt lat="{lat}" lon="{lon}">{time}</trkpt>')
    name_xml = f"<name>{name}</name>" if name else ""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">'
        f"<trk>{name_xml}<trkseg>{''.join(trkpts)}</trkseg></trk>"
        "</gpx>"
    )


@pytest.fixture
def tile_png() -> bytes:
    return make_tile_png()


@pytest.fixture
def terrain_handler(tile_png) -> Callable[[httpx.Request], httpx.Response]:
    """Serves the 100 m tile for every request."""
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=tile_png, headers={"content-type": "image/png"})
    return handler


@pytest.fixture
def failing_handler() -> Callable[[httpx.Request], httpx.Response]:
    """Upstream that answers every request with 500."""
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="upstream error")
    return handler


@pytest.fixture
def sample_gpx() -> str:
    return make_gpx([
        (-42.88, 147.32),
        (-42.881, 147.321),
        (-42.882, 147.322),
        (-42.883, 147.323),
    ], name="Hobart Loop")


@pytest.fixture
def gpx_factory() -> Callable[..., str]:
    return make_gpx


@pytest.fixture
def tile_factory() -> Callable[..., bytes]:
    return make_tile_png


@pytest.fixture
def processed_route() -> ProcessedRoute:
    """Minimal finished route for tracker tests."""
    return ProcessedRoute(
        id="upload-1",
        name="Test Track",
        color="#FF0000",
        geojson=build_geojson([]),
        surface=default_surface_analysis(),
        statistics=RouteStatistics(),
        status=RouteStatus(processing_state=ProcessingStatus.COMPLETED, progress=100),
    )
