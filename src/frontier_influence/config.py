"""Settings for the territory influence service."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, overridable through the environment or a `.env` file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str = Field(
        default="sqlite:///frontier_influence.db", description="SQLAlchemy database URL"
    )
    DATABASE_ECHO: bool = Field(default=False, description="Echo emitted SQL statements")
    DATABASE_POOL_SIZE: int = Field(default=10, ge=1)
    DATABASE_MAX_OVERFLOW: int = Field(default=20, ge=0)
    DATABASE_POOL_RECYCLE: int = Field(default=1800, ge=-1)
    DATABASE_POOL_TIMEOUT: int = Field(default=30, ge=1)
    SQLITE_BUSY_TIMEOUT_MS: int = Field(
        default=30_000, ge=0, description="How long SQLite writers wait for the write lock"
    )

    default_floor: float = Field(
        default=5.0,
        ge=0.0,
        le=100.0,
        description="Minimum influence for a faction/territory pair unless seeded otherwise",
    )
    decay_rate: float = Field(
        default=0.01,
        gt=0.0,
        le=1.0,
        description="Fraction of the gap to equilibrium closed by one decay run",
    )
    decay_max_step: float = Field(
        default=2.0, gt=0.0, description="Largest movement a single decay run may apply"
    )
    decay_cron: str = Field(
        default="0 3 * * *", description="Cron expression (UTC) for the daily decay run"
    )
    decay_enabled: bool = Field(
        default=True, description="Start the background decay loop with the API"
    )
    overview_cache_ttl_seconds: float = Field(
        default=30.0, ge=0.0, description="Lifetime of cached faction overviews"
    )
    benefit_table_path: Path | None = Field(
        default=None, description="Optional JSON file overriding the benefit table"
    )
    influence_per_gold: float = Field(
        default=0.01, gt=0.0, description="Influence granted per unit of donated gold"
    )
    max_donation_influence: float = Field(
        default=10.0, gt=0.0, description="Cap on influence from a single donation"
    )
    transient_retry_attempts: int = Field(default=3, ge=1)
    transient_retry_base_delay_seconds: float = Field(default=0.05, ge=0.0)
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed to call the HTTP API",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
