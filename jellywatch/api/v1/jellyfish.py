"""
FastAPI jellyfish risk endpoints.

Endpoints:
    GET    /api/v1/jellyfish/risk        — Risk report for a coordinate
    POST   /api/v1/jellyfish/risk        — Same, location in the request body
    GET    /api/v1/jellyfish/thresholds  — Classifier and curator constants
    GET    /api/v1/jellyfish/cache       — Result cache statistics
    DELETE /api/v1/jellyfish/cache       — Drop every cached report
    GET    /api/v1/jellyfish/health      — Module health
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from jellywatch.api.schemas import (
    CacheStatsOut,
    HealthResponse,
    LocationQuery,
    RiskReportOut,
    ThresholdsOut,
)
from jellywatch.core.config import settings
from jellywatch.core.errors import JellyWatchError
from jellywatch.risk import classifier
from jellywatch.risk.service import RiskService
from jellywatch.spatial.radius_utils import Coordinate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/jellyfish", tags=["jellyfish-risk"])


def get_risk_service(request: Request) -> RiskService:
    service = getattr(request.app.state, "risk_service", None)
    if service is None:
        raise JellyWatchError(
            "Risk service is not available",
            status_code=503,
            error_code="SERVICE_UNAVAILABLE",
        )
    return service


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/risk",
    response_model=RiskReportOut,
    summary="Jellyfish risk for a location",
    description=(
        "Aggregates recent Cnidaria sightings from iNaturalist, GBIF and OBIS "
        "around the coordinate and returns a five-level risk report."
    ),
)
async def get_risk(
    latitude: float = Query(..., ge=-90.0, le=90.0, description="Latitude in decimal degrees"),
    longitude: float = Query(..., ge=-180.0, le=180.0, description="Longitude in decimal degrees"),
    name: Optional[str] = Query(None, max_length=200, description="Location display name"),
    service: RiskService = Depends(get_risk_service),
):
    report = await service.assess(Coordinate(latitude, longitude), name)
    return report.to_dict()


@router.post("/risk", response_model=RiskReportOut, summary="Jellyfish risk (JSON body)")
async def post_risk(
    req: LocationQuery,
    service: RiskService = Depends(get_risk_service),
):
    report = await service.assess(Coordinate(req.latitude, req.longitude), req.name)
    return report.to_dict()


@router.get(
    "/thresholds",
    response_model=ThresholdsOut,
    summary="Get Risk Thresholds",
    description="Returns the windows and limits used to curate and classify sightings.",
)
async def get_thresholds(service: RiskService = Depends(get_risk_service)):
    return {
        "recent_days": classifier.RECENT_DAYS,
        "very_recent_days": classifier.VERY_RECENT_DAYS,
        "close_distance_km": classifier.CLOSE_DISTANCE_KM,
        "close_window_days": classifier.CLOSE_WINDOW_DAYS,
        "search_radius_km": service.radius_km,
        "max_sighting_age_days": settings.MAX_SIGHTING_AGE_DAYS,
        "max_curated_sightings": settings.MAX_CURATED_SIGHTINGS,
        "fanout_deadline_seconds": service.coordinator.deadline,
        "provider_timeouts": {s.name: s.timeout for s in service.sources},
    }


@router.get("/cache", response_model=CacheStatsOut, summary="Result cache statistics")
async def get_cache_stats(service: RiskService = Depends(get_risk_service)):
    return service.cache.stats()


@router.delete("/cache", summary="Clear the result cache")
async def clear_cache(service: RiskService = Depends(get_risk_service)):
    removed = service.cache.clear()
    logger.info("Cleared %d cached jellyfish reports", removed)
    return {"cleared": removed}


@router.get("/health", response_model=HealthResponse)
async def health(service: RiskService = Depends(get_risk_service)):
    return HealthResponse(
        version=settings.APP_VERSION,
        enabled=service.is_enabled(),
    )
