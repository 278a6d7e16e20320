"""
GPX pipeline configuration constants.

Contains fixed values for processing behavior. Deployment-specific values
(tokens, URLs, concurrency) live in gpx_pipeline.config.Settings.
"""


class PipelineConfig:
    """Configuration for pipeline behavior."""

    # ==========================================================================
    # Progress Checkpoints (percent)
    # ==========================================================================
    PROGRESS_PARSED = 20
    PROGRESS_GEOMETRY = 40
    PROGRESS_MATCHED = 50  # only emitted when map matching is enabled
    PROGRESS_SURFACE = 60
    PROGRESS_ELEVATION = 80
    PROGRESS_COMPLETE = 100

    # ==========================================================================
    # Route Defaults
    # ==========================================================================
    DEFAULT_ROUTE_NAME = "Unnamed Track"
    DEFAULT_ROUTE_COLOR = "#FF0000"

    # ==========================================================================
    # Map Matching
    # ==========================================================================
    # Upstream classification of the combined confidence
    MATCHED_CONFIDENCE = 0.8
    PARTIAL_CONFIDENCE = 0.3

    # ==========================================================================
    # Timing Statistics
    # ==========================================================================
    # Steps slower than this count as stopped time (m/s)
    MOVING_SPEED_THRESHOLD = 0.5

    # ==========================================================================
    # Status Messages
    # ==========================================================================
    NOT_FOUND_MESSAGE = "Upload not found"
    QUEUED_TASK = "Waiting to start"
