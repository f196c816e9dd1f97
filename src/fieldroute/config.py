"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FIELDROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Field Route Planner API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root logger level.")
    data_root: Path = Field(default=Path("data"), description="Root directory for stored routes and check-ins.")
    company_file: Path = Field(
        default=Path("data/companies.csv"),
        description="Company cache exported from the CRM (id, name, address, lat/lng).",
    )

    directions_base_url: Optional[str] = Field(
        default="https://api.mapbox.com/directions/v5/mapbox",
        description="Base URL of the driving-directions service (Mapbox or OSRM-compatible).",
    )
    directions_access_token: Optional[str] = Field(
        default=None,
        description="Access token appended to directions requests (Mapbox). Leave empty for OSRM.",
    )
    directions_profile: str = Field(default="driving", description="Routing profile.")
    directions_geometries: Literal["geojson", "polyline"] = Field(
        default="geojson",
        description="Geometry encoding requested from the directions service.",
    )
    directions_timeout_seconds: float = Field(default=10.0, gt=0.0)
    directions_max_retries: int = Field(default=2, ge=0)
    directions_backoff_seconds: float = Field(default=0.5, ge=0.0)
    directions_max_waypoints: int = Field(
        default=25,
        ge=2,
        description="Provider waypoint ceiling (origin included). Larger itineraries use the greedy fallback.",
    )

    proximity_threshold_meters: float = Field(
        default=800 / 3.28084,
        gt=0.0,
        description="Distance at which an uncompleted stop triggers a check-in prompt (800 ft).",
    )
    default_radius_miles: float = Field(default=25.0, ge=1.0, le=100.0)

    hubspot_api_key: Optional[str] = Field(
        default=None,
        description="HubSpot private app token used to log field visits.",
    )
    hubspot_base_url: str = Field(default="https://api.hubapi.com")
    hubspot_association_type_id: Optional[int] = Field(
        default=None,
        description="Association type linking field_visits records to companies.",
    )

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

    @field_validator("data_root", "company_file", mode="before")
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
