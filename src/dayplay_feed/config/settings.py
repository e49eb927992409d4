"""
Centralized settings management using pydantic-settings.

All environment variables and deployment knobs are defined here.
Use get_settings() to access the cached settings instance.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScoreComposition(str, Enum):
    """
    How the affinity and trending signals are folded into one ranking key.

    Fixed per deployment: changing it changes the feed order for every
    session, so it is never chosen per request.
    """
    AFFINITY_PLUS_TRENDING = "affinity_plus_trending"
    AFFINITY = "affinity"
    TRENDING = "trending"
    NONE = "none"


class StoreBackend(str, Enum):
    SUPABASE = "supabase"
    MEMORY = "memory"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Supabase credentials are only required when STORE_BACKEND=supabase.

    Optional environment variables:
        - HOST / PORT: Server bind address (default: 0.0.0.0:8080)
        - ENVIRONMENT: development, staging, production
        - UPSTREAM_TIMEOUT_SECONDS: Deadline for catalog/history/signal fetches
        - SCORE_COMPOSITION: affinity_plus_trending | affinity | trending | none
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    # ==========================================================================
    # Server Configuration
    # ==========================================================================
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    cors_origins: List[str] = Field(
        default=[
            "http://localhost:8081",
            "http://localhost:19006",
            "http://127.0.0.1:8081",
        ],
        description="Allowed CORS origins (Expo dev servers by default)"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # ==========================================================================
    # Storage
    # ==========================================================================
    store_backend: StoreBackend = Field(
        default=StoreBackend.SUPABASE,
        description="Where listings, swipes and upvotes are read from"
    )
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_service_key: str = Field(default="", description="Supabase service role key")
    catalog_fetch_limit: int = Field(
        default=3000,
        description="Max listings pulled per catalog query (PostgREST caps pages at 1000)"
    )

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    # ==========================================================================
    # Upstream Fetches
    # ==========================================================================
    upstream_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Request-scoped deadline for the concurrent upstream fetches"
    )

    # ==========================================================================
    # Feed Defaults
    # ==========================================================================
    default_radius_km: float = Field(default=15.0, gt=0)
    default_page_size: int = Field(default=20, ge=1)
    max_page_size: int = Field(default=100, ge=1)
    session_ttl_seconds: int = Field(
        default=86400,
        description="Idle lifetime of a feed session (24 hours)"
    )

    # ==========================================================================
    # Ranking
    # ==========================================================================
    score_composition: ScoreComposition = Field(
        default=ScoreComposition.AFFINITY_PLUS_TRENDING,
        description="Fixed rule for composing affinity and trending scores"
    )
    affinity_history_window: int = Field(
        default=50,
        ge=1,
        description="Most recent swipes that feed the affinity profile"
    )
    trending_window_days: Optional[int] = Field(
        default=None,
        ge=1,
        description="Only count upvotes newer than this many days (None = unbounded)"
    )
    trending_recent_days: int = Field(default=7, ge=1)
    trending_recent_weight: int = Field(
        default=1,
        ge=1,
        description="Multiplier for upvotes inside the recent window (1 = plain count)"
    )
    trending_bonus_slots: int = Field(
        default=5,
        ge=0,
        description="Top-N trending listings that receive an inverse-rank bonus"
    )
    trending_default_limit: int = Field(default=5, ge=1)


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Settings are loaded from environment variables and the project-root .env
    file when one exists. Call get_settings.cache_clear() to reload.
    """
    env_file = Path(__file__).resolve().parents[3] / ".env"
    return Settings(_env_file=env_file if env_file.exists() else None)


def get_settings_for_testing(**overrides) -> Settings:
    """
    Create an uncached settings instance for tests.

    Defaults to the in-memory store backend so no Supabase project is needed.
    """
    test_defaults = {
        "environment": "testing",
        "debug": True,
        "store_backend": StoreBackend.MEMORY,
    }
    test_defaults.update(overrides)
    return Settings(**test_defaults)
