"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for local development.

Usage:
    from jellywatch.core.config import settings
    print(settings.SEARCH_RADIUS_KM)
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings loaded from environment variables or .env file.

    Precedence: env var > .env file > default value
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ──
    APP_NAME: str = "JellyWatch"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | staging | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── Server ──
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 1
    RELOAD: bool = True

    # ── CORS ──
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]
    CORS_ALLOW_ALL: bool = True  # False in production

    # ── Feature flags ──
    JELLYFISH_ENABLED: bool = True

    # ── Sighting providers ──
    INATURALIST_URL: str = "https://api.inaturalist.org/v1/observations"
    GBIF_URL: str = "https://api.gbif.org/v1/occurrence/search"
    OBIS_URL: str = "https://api.obis.org/v3/occurrence"
    USER_AGENT: str = "JellyWatch/1.0"
    INATURALIST_TIMEOUT: float = 5.0  # seconds
    GBIF_TIMEOUT: float = 8.0
    OBIS_TIMEOUT: float = 8.0
    RESULTS_PER_SOURCE: int = 20
    SEARCH_TAXON: str = "Cnidaria"
    SEARCH_BOX_OFFSET_DEG: float = 0.5  # ≈ 55 km half-width
    GBIF_COUNTRY: Optional[str] = None  # ISO 3166 alpha-2, e.g. "ES"

    # ── Fan-out ──
    FANOUT_DEADLINE_SECONDS: float = 10.0
    FANOUT_MAX_CONCURRENCY: int = 3

    # ── Curation ──
    SEARCH_RADIUS_KM: float = 50.0
    MAX_SIGHTING_AGE_DAYS: int = 30
    MAX_CURATED_SIGHTINGS: int = 10

    # ── Result cache ──
    CACHE_TTL_SECONDS: int = 300  # 5 min
    CACHE_MAX_ENTRIES: int = 100
    CACHE_KEY_PRECISION: int = 4  # decimal places ≈ 11 m

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
