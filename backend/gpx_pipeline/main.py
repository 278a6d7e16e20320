"""
GPX Pipeline API

FastAPI application for GPX track processing with live progress.
"""

from contextlib import asynccontextmanager
import logging
import sys

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gpx_pipeline import __version__
from gpx_pipeline.config import settings
from gpx_pipeline.api.v1.router import api_router
from gpx_pipeline.features.gpx import GPXProcessingService, MissingCredentialError


# === Logging Setup ===
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)


# === GPX Service Setup ===
async def _setup_gpx_service(app: FastAPI):
    """Create the pipeline service; startup aborts without a credential."""
    app.state.http_client = httpx.AsyncClient(timeout=settings.elevation_timeout)
    try:
        app.state.gpx_service = GPXProcessingService.from_settings(
            settings, client=app.state.http_client
        )
    except MissingCredentialError as e:
        logger.error(f"Cannot start GPX processing: {e}")
        await app.state.http_client.aclose()
        raise
    logger.info("GPX processing service initialized")


async def _shutdown_gpx_service(app: FastAPI):
    """Cancel running jobs and close the shared HTTP client."""
    service = getattr(app.state, "gpx_service", None)
    if service:
        await service.shutdown()
    client = getattr(app.state, "http_client", None)
    if client:
        await client.aclose()


# === Lifespan ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logger.info("Starting GPX Pipeline API...")
    await _setup_gpx_service(app)

    yield

    # Shutdown
    await _shutdown_gpx_service(app)
    logger.info("Shutting down...")


# === App Creation ===
app = FastAPI(
    title="GPX Pipeline API",
    description="GPX upload processing with surface, elevation and progress streaming",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# === Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Routes ===
app.include_router(api_router, prefix="/api/v1")


# === Health Check ===
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
