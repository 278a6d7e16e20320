"""
GPX Processing Routes

Endpoints for uploading GPX files and following their processing.
"""

import logging

from fastapi import APIRouter, UploadFile, File, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from gpx_pipeline.config import settings
from gpx_pipeline.features.gpx import (
    GPXProcessingService,
    ProcessedRoute,
    UploadResponse,
    UploadStatus,
)
from gpx_pipeline.features.gpx.streaming import SSE_HEADERS, progress_events

logger = logging.getLogger(__name__)

router = APIRouter()


def get_gpx_service(request: Request) -> GPXProcessingService:
    """Dependency: pipeline service created at startup."""
    return request.app.state.gpx_service


@router.post("/upload", response_model=UploadResponse)
async def upload_gpx(
    file: UploadFile = File(...),
    service: GPXProcessingService = Depends(get_gpx_service)
):
    """
    Upload a GPX file and start processing.

    Returns the upload id immediately; follow it with /progress or /status.
    """
    if not file.filename or not file.filename.lower().endswith('.gpx'):
        raise HTTPException(status_code=400, detail="Only .gpx files are allowed")

    content = await file.read()

    if len(content) == 0:
        raise HTTPException(status_code=400, detail="File is empty")

    if len(content) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise HTTPException(status_code=400, detail=f"File too large (max {limit_mb}MB)")

    upload_id = await service.process_upload(content, file.filename)

    return UploadResponse(
        upload_id=upload_id,
        message="File uploaded successfully",
        filename=file.filename
    )


@router.get("/progress/{upload_id}")
async def stream_progress(
    upload_id: str,
    request: Request,
    service: GPXProcessingService = Depends(get_gpx_service)
):
    """Server-Sent Events stream of progress snapshots until the job ends."""
    tracker = service.get_progress_tracker(upload_id)
    if tracker is None:
        raise HTTPException(status_code=404, detail="Upload not found")

    return StreamingResponse(
        progress_events(tracker, request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/status/{upload_id}", response_model=UploadStatus)
async def get_status(
    upload_id: str,
    service: GPXProcessingService = Depends(get_gpx_service)
):
    """Compact status; unknown ids report an error status, not a 404."""
    return service.get_upload_status(upload_id)


@router.get("/result/{upload_id}", response_model=ProcessedRoute)
async def get_result(
    upload_id: str,
    service: GPXProcessingService = Depends(get_gpx_service)
):
    """Finished route for a completed upload."""
    route = service.get_result(upload_id)
    if route is None:
        raise HTTPException(status_code=404, detail="Result not available")
    return route
