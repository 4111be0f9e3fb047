"""Application configuration and settings management."""

from pathlib import Path
from typing import Any

import json
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTING_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Courier Route Planner API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for run outputs.")
    exact_solver_max_orders: int = Field(
        default=18,
        ge=1,
        le=20,
        description="Largest batch solved exactly; bigger batches use the greedy heuristic.",
    )
    geometric_minutes_per_degree: float = Field(
        default=300.0,
        gt=0.0,
        description="Minutes per degree of planar lat/lon distance when no table entry exists.",
    )
    min_travel_minutes: float = Field(default=5.0, ge=0.0)
    max_travel_minutes: float = Field(default=30.0, ge=0.0)
    default_travel_minutes: float = Field(
        default=15.0,
        ge=0.0,
        description="Travel time used when coordinates are unavailable for either end.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
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
    def _check_travel_bounds(self) -> "Settings":
        if self.min_travel_minutes > self.max_travel_minutes:
            raise ValueError("min_travel_minutes must not exceed max_travel_minutes")
        return self


settings = Settings()
