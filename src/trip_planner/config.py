"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="TRIP_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Trip Planner API"
    api_prefix: str = "/api"
    geocode_provider: Literal["nominatim", "locationiq", "mapbox"] = Field(
        default="nominatim",
        description="Geocoding provider used when a request does not name one.",
    )
    geocode_api_key: Optional[str] = Field(
        default=None,
        description="API key for the paid geocoding providers (LocationIQ, Mapbox).",
    )
    mapbox_api_key: Optional[str] = Field(
        default=None,
        description="Mapbox access token used for travel-time routing.",
    )
    geocode_cache_file: Path = Field(
        default=Path("data/geocode_cache.json"),
        description="JSON file holding previously geocoded addresses.",
    )
    geocode_user_agent: str = "AddressClusterTool/1.0"
    nominatim_delay_seconds: float = Field(default=1.1, ge=0.0)
    provider_delay_seconds: float = Field(default=0.3, ge=0.0)
    common_locality: str = Field(
        default="",
        description="City/state suffix appended to addresses that carry no state code.",
    )
    http_timeout_seconds: float = Field(default=30.0, gt=0.0)
    http_max_retries: int = Field(default=2, ge=0)
    http_backoff_seconds: float = Field(default=1.0, ge=0.0)
    mapbox_profile: Literal["driving", "driving-traffic", "walking", "cycling"] = "driving"
    mapbox_matrix_max_coordinates: int = Field(default=12, ge=1, le=12)
    size_repair_max_iterations: int = Field(default=30, ge=1)
    kmeans_random_state: Optional[int] = Field(default=42)
    kmeans_max_iter: int = Field(default=300, ge=1)
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("geocode_cache_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
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


settings = Settings()
