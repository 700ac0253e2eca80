"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="LASTMILE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Last-mile Route Assignment API"
    api_prefix: str = "/api"
    routing_origin_lat: Optional[float] = Field(
        default=None,
        description="Default route origin latitude, used when a request does not override it.",
    )
    routing_origin_lng: Optional[float] = Field(
        default=None,
        description="Default route origin longitude, used when a request does not override it.",
    )
    mapbox_base_url: str = Field(
        default="https://api.mapbox.com",
        description="Base URL for the Mapbox Optimization and Directions APIs.",
    )
    mapbox_access_token: Optional[str] = Field(
        default=None,
        description="Mapbox access token used for optimization and distance lookups.",
    )
    default_profile: str = Field(default="driving", description="Travel profile used when a request omits one.")
    allowed_profiles: tuple[str, ...] = Field(
        default=("driving", "driving-traffic", "walking", "cycling"),
    )
    provider_timeout_seconds: float = Field(default=30.0, gt=0.0)
    provider_max_retries: int = Field(default=3, ge=0)
    provider_backoff_seconds: float = Field(default=1.0, ge=0.0)
    optimization_max_coordinates: int = Field(
        default=12,
        ge=2,
        description="Maximum coordinates (origin included) accepted by one optimization request.",
    )
    shipment_sync_max_workers: int = Field(default=4, ge=1)
    route_creation_timeout_seconds: Optional[float] = Field(
        default=120.0,
        gt=0.0,
        description="Deadline for one route creation, honored at every provider and repository call.",
    )
    terminal_shipment_statuses: tuple[str, ...] = Field(default=("delivered",))
    waypoint_match_tolerance: float = Field(default=1e-4, gt=0.0)
    waypoint_proximity_tolerance: float = Field(default=5e-3, gt=0.0)
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator(
        "allowed_profiles",
        "terminal_shipment_statuses",
        "frontend_allowed_origins",
        mode="before",
    )
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("routing_origin_lat", "routing_origin_lng", mode="before")
    @classmethod
    def _blank_coordinate_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


settings = Settings()
