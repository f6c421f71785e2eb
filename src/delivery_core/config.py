"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DELIVERY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Delivery Core API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for persisted snapshots.")
    catalog_file: Optional[Path] = Field(
        default=None,
        description="Optional JSON file with coverage areas, districts and promos. Built-in seed data is used when unset.",
    )
    currency: str = "IDR"

    free_delivery_threshold: int = Field(default=100_000, ge=0)
    average_speed_kmh: float = Field(default=30.0, gt=0.0)
    tracking_stop_distance_km: float = Field(default=0.1, gt=0.0)
    tracking_step_fraction: float = Field(default=0.1, gt=0.0, le=1.0)
    simulation_seed: Optional[int] = Field(
        default=None,
        description="Seed for the driver simulation random source. Unset means nondeterministic.",
    )

    driver_tick_seconds: float = Field(default=10.0, gt=0.0)
    order_poll_seconds: float = Field(default=30.0, gt=0.0)
    payment_poll_seconds: float = Field(default=30.0, gt=0.0)

    geolocation_timeout_seconds: float = Field(default=10.0, gt=0.0)
    fallback_latitude: float = Field(default=-7.2575, ge=-90.0, le=90.0)
    fallback_longitude: float = Field(default=112.7521, ge=-180.0, le=180.0)

    promo_timezone: str = Field(
        default="Asia/Jakarta",
        description="IANA zone used for calendar promo rules such as weekend-only codes.",
    )

    cart_ttl_hours: float = Field(default=24.0, gt=0.0)

    payment_api_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the payment backend (e.g., http://localhost:3000/api).",
    )
    payment_timeout_seconds: float = Field(default=10.0, gt=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("catalog_file", mode="before")
    @classmethod
    def _expand_optional_path(cls, value: Any) -> Optional[Path]:
        if value is None or value == "":
            return None
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
            # Try JSON first
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
