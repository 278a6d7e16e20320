"""
GPX pipeline exceptions.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable failure codes attached to pipeline errors."""
    INVALID_FILE = "INVALID_FILE"
    PARSING_ERROR = "PARSING_ERROR"
    MATCHING_ERROR = "MATCHING_ERROR"
    SURFACE_ANALYSIS_ERROR = "SURFACE_ANALYSIS_ERROR"
    ELEVATION_ERROR = "ELEVATION_ERROR"
    PROCESSING_ERROR = "PROCESSING_ERROR"


class GPXProcessingError(Exception):
    """Base GPX pipeline error."""

    code = ErrorCode.PROCESSING_ERROR

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ParseError(GPXProcessingError):
    """Input is not a well-formed XML document."""
    code = ErrorCode.PARSING_ERROR


class MatchingError(GPXProcessingError):
    """Map-matching service rejected or failed the request."""
    code = ErrorCode.MATCHING_ERROR


class ElevationError(GPXProcessingError):
    """Terrain tile could not be fetched or decoded."""
    code = ErrorCode.ELEVATION_ERROR


class MissingCredentialError(RuntimeError):
    """Required service credential is not configured."""
    pass
