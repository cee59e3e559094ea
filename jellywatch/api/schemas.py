"""
Pydantic schemas for the jellyfish risk API.

Separated from the route handler so they are reusable across
the codebase (background workers, tests).
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class LocationQuery(BaseModel):
    """A resolved beach location as sent by the client."""
    latitude: float = Field(
        ..., ge=-90.0, le=90.0,
        description="Latitude in decimal degrees",
        examples=[38.5384],
    )
    longitude: float = Field(
        ..., ge=-180.0, le=180.0,
        description="Longitude in decimal degrees",
        examples=[-0.1293],
    )
    name: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Display name echoed back in the report",
        examples=["Benidorm"],
    )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class SightingOut(BaseModel):
    """A single curated sighting."""
    species: str
    common_name: Optional[str] = None
    severity: str = Field(..., description="HARMLESS … EXTREME")
    severity_description: str
    severity_display: str = Field(..., description="Emoji and description, e.g. '⚫ Life-threatening'")
    observed_at: str
    age_days: int
    time_ago: str = Field(..., description="Human-readable age, e.g. '3 days ago'")
    distance_km: float = Field(..., description="Distance from the queried point in km")
    distance: str = Field(..., description="Human-readable distance string")
    latitude: float
    longitude: float
    source_provider: str
    verified: bool = True


class RiskReportOut(BaseModel):
    """Response for GET /api/v1/jellyfish/risk."""
    location: Optional[str] = None
    latitude: float
    longitude: float
    risk_level: str = Field(..., description="VERY_LOW / LOW / MODERATE / HIGH / VERY_HIGH")
    risk_display: str
    risk_description: str
    prediction: str
    safety_advice: str
    source: str
    computed_at: str
    has_prediction: bool
    dangerous_sightings_count: int
    recent_sightings_count: int
    sightings: List[SightingOut]


class ThresholdsOut(BaseModel):
    recent_days: int
    very_recent_days: int
    close_distance_km: float
    close_window_days: int
    search_radius_km: float
    max_sighting_age_days: int
    max_curated_sightings: int
    fanout_deadline_seconds: float
    provider_timeouts: Dict[str, float]


class CacheStatsOut(BaseModel):
    size: int
    capacity: int
    ttl_seconds: float
    hits: int
    misses: int
    evictions: int


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "1.0.0"
    module: str = "jellyfish-risk"
    enabled: bool = True
