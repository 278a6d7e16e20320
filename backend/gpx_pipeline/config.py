"""
Application Configuration

Uses Pydantic Settings for type-safe configuration.
"""

from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, ConfigDict

# Project root: repository checkout containing backend/
PROJECT_ROOT = Path(__file__).parent.parent.parent


class Settings(BaseSettings):
    """Application settings with validation."""

    # === Core ===
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # === CORS ===
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # === Mapbox ===
    mapbox_token: Optional[str] = Field(
        default=None,
        description="Access token for terrain tiles and map matching"
    )

    # === Terrain elevation ===
    terrain_tile_url: str = Field(
        default="https://api.mapbox.com/v4/mapbox.terrain-rgb/{z}/{x}/{y}.pngraw",
        description="Terrain-RGB tile URL template"
    )
    terrain_zoom: int = Field(default=14, ge=0, le=22)
    elevation_concurrency: int = Field(
        default=8, ge=1,
        description="Max parallel tile requests per upload"
    )
    elevation_timeout: float = Field(default=10.0, gt=0)

    # === Map matching ===
    map_matching_enabled: bool = Field(default=False)
    map_matching_url: str = Field(
        default="https://api.mapbox.com/matching/v5/mapbox",
        description="Map Matching API base URL"
    )
    map_matching_profile: str = Field(default="cycling")
    map_matching_radius_m: float = Field(default=25.0, gt=0)
    map_matching_batch_size: int = Field(default=100, ge=2, le=100)

    # === Upload sessions ===
    upload_ttl_seconds: int = Field(
        default=14 * 24 * 3600,
        description="How long finished and abandoned uploads are kept"
    )
    upload_max_entries: int = Field(default=10_000, ge=1)
    max_upload_bytes: int = Field(default=50 * 1024 * 1024)

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',')]
        return v

    @field_validator('mapbox_token', mode='before')
    @classmethod
    def blank_token_is_missing(cls, v):
        """Treat an empty MAPBOX_TOKEN as not configured."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
