"""Application configuration and settings management."""

from datetime import time
from pathlib import Path
from typing import Any, Literal

import json
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="WASTEFLEET_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Waste Fleet Collection Engine API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for seed data and outputs.")
    seed_file: Path = Field(
        default=Path("data/seed.json"),
        description="Bins, drivers and schedules loaded when the engine starts.",
    )
    depot_latitude: float = Field(default=51.5072, ge=-90.0, le=90.0)
    depot_longitude: float = Field(default=-0.1276, ge=-180.0, le=180.0)
    route_capacity: int = Field(default=12, ge=1, description="Maximum bins per route.")
    service_minutes_per_bin: float = Field(default=5.0, ge=0.0)
    average_speed_kmh: float = Field(default=25.0, gt=0.0)
    shift_start: time = Field(default=time(6, 0))
    shift_end: time = Field(default=time(18, 0))
    full_threshold: float = Field(default=0.8, gt=0.0, le=1.0)
    partial_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    sequencing_method: Literal["nearest_neighbor", "ortools"] = Field(
        default="nearest_neighbor",
        description="Strategy used to order bins within a route.",
    )
    solver_time_limit_seconds: int = Field(default=5, ge=0)
    persist_plans: bool = Field(default=False, description="Write planning cycle outputs under data_root.")
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:8081",
            "http://127.0.0.1:8081",
            "http://localhost:19006",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", "seed_file", mode="before")
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

    @model_validator(mode="after")
    def _check_windows(self) -> "Settings":
        if self.shift_start >= self.shift_end:
            raise ValueError("shift_start must be earlier than shift_end")
        if self.partial_threshold >= self.full_threshold:
            raise ValueError("partial_threshold must be lower than full_threshold")
        return self


settings = Settings()
