"""
service.py — Jellyfish risk assessment pipeline.

    coordinate
        │
        ▼
    ResultCache.get ──── hit ───────────────────────────────┐
        │ miss                                               │
        ▼                                                    │
    FanOutCoordinator.aggregate  (iNaturalist ∥ GBIF ∥ OBIS) │
        ▼                                                    │
    curate  (age / radius / quality filter → rank → top 10)  │
        ▼                                                    │
    classify  (risk level + prediction + advice)             │
        ▼                                                    │
    RiskReport ── ResultCache.put ──────────────────────────►┴──► caller

The service never raises. A missing or out-of-range coordinate yields the
empty VERY_LOW report without any network traffic; failing providers
simply contribute zero sightings.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

import httpx

from jellywatch.core.cache import ResultCache
from jellywatch.core.config import settings
from jellywatch.ingestion import GBIFSource, INaturalistSource, OBISSource, SightingSource
from jellywatch.risk.classifier import classify
from jellywatch.risk.curator import curate
from jellywatch.risk.fanout import FanOutCoordinator
from jellywatch.risk.models import RiskLevel, RiskReport
from jellywatch.spatial.radius_utils import Coordinate

logger = logging.getLogger(__name__)

SOURCE_ATTRIBUTION = "iNaturalist + GBIF + OBIS"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def create_empty_report(
    location: Optional[str] = None,
    *,
    latitude: float = 0.0,
    longitude: float = 0.0,
    now: Optional[datetime] = None,
) -> RiskReport:
    """Fallback report for unusable input or a disabled service."""
    return RiskReport(
        latitude=latitude,
        longitude=longitude,
        risk_level=RiskLevel.VERY_LOW,
        sightings=(),
        prediction="No data available for this location",
        safety_advice="Check local beach conditions before swimming",
        source="No data",
        computed_at=now or _utc_now(),
        location=location,
        has_prediction=False,
    )


class RiskService:
    """
    Owns the HTTP client, the source adapters, the coordinator and the cache.

    Construct once per process and share it; the cache lives on the
    instance, not in a module global.

    Usage:
        service = RiskService()
        report = await service.assess(Coordinate(38.5384, -0.1293), "Benidorm")
        await service.close()
    """

    def __init__(
        self,
        *,
        sources: Optional[Sequence[SightingSource]] = None,
        cache: Optional[ResultCache[RiskReport]] = None,
        client: Optional[httpx.AsyncClient] = None,
        radius_km: Optional[float] = None,
        deadline: Optional[float] = None,
        enabled: Optional[bool] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.clock = clock
        self.radius_km = settings.SEARCH_RADIUS_KM if radius_km is None else radius_km
        self.enabled = settings.JELLYFISH_ENABLED if enabled is None else enabled
        self.cache: ResultCache[RiskReport] = cache if cache is not None else ResultCache(clock=clock)

        self._owns_client = client is None and sources is None
        self._client = client
        if sources is None:
            if self._client is None:
                self._client = httpx.AsyncClient(follow_redirects=True)
            sources = [
                INaturalistSource(self._client, clock=clock),
                GBIFSource(self._client, clock=clock),
                OBISSource(self._client, clock=clock),
            ]
        self.sources = list(sources)
        self.coordinator = FanOutCoordinator(
            self.sources, deadline=deadline, radius_km=self.radius_km,
        )

    def is_enabled(self) -> bool:
        return self.enabled

    async def close(self) -> None:
        """Close the HTTP client if this service created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def assess(
        self,
        coordinate: Optional[Coordinate],
        location_name: Optional[str] = None,
    ) -> RiskReport:
        """
        Produce the jellyfish risk report for a coordinate.

        Parameters
        ----------
        coordinate : Coordinate | None
            Resolved location; None means the geocoder found nothing.
        location_name : str | None
            Echoed back in the report.

        Returns
        -------
        RiskReport
            Never raises; worst case is the empty VERY_LOW report.
        """
        if coordinate is None:
            logger.warning("Cannot assess jellyfish risk for an unresolved location")
            return create_empty_report(location_name, now=self.clock())

        if not self.enabled:
            logger.info("Jellyfish monitoring disabled, returning empty report")
            return create_empty_report(
                location_name,
                latitude=coordinate.latitude,
                longitude=coordinate.longitude,
                now=self.clock(),
            )

        cached = self.cache.get(coordinate)
        if cached is not None:
            logger.info(
                "Using cached jellyfish report for %s", location_name or self.cache.key_for(coordinate),
                extra={"lat": coordinate.latitude, "lon": coordinate.longitude},
            )
            if cached.location != location_name:
                cached = replace(cached, location=location_name)
            return cached

        start = time.monotonic()
        logger.info(
            "Assessing jellyfish risk for %s at (%.4f, %.4f)",
            location_name or "unnamed location", coordinate.latitude, coordinate.longitude,
            extra={"lat": coordinate.latitude, "lon": coordinate.longitude},
        )

        raw = await self.coordinator.aggregate(coordinate)
        curated = curate(raw, self.radius_km)
        result = classify(curated)

        report = RiskReport(
            latitude=coordinate.latitude,
            longitude=coordinate.longitude,
            risk_level=result.level,
            sightings=tuple(curated),
            prediction=result.prediction,
            safety_advice=result.advice,
            source=SOURCE_ATTRIBUTION,
            computed_at=self.clock(),
            location=location_name,
            has_prediction=True,
        )

        logger.info(
            "Jellyfish analysis complete: %d of %d sightings kept, risk level %s",
            len(curated), len(raw), result.level.name,
            extra={
                "lat": coordinate.latitude,
                "lon": coordinate.longitude,
                "risk_level": result.level.name,
                "sighting_count": len(curated),
                "duration_ms": (time.monotonic() - start) * 1000,
            },
        )

        self.cache.put(coordinate, report)
        return report

    async def assess_point(
        self,
        latitude: Optional[float],
        longitude: Optional[float],
        location_name: Optional[str] = None,
    ) -> RiskReport:
        """Like ``assess`` but from raw degrees; invalid input → empty report."""
        if latitude is None or longitude is None:
            return await self.assess(None, location_name)
        try:
            coordinate = Coordinate(float(latitude), float(longitude))
        except (TypeError, ValueError) as e:
            logger.warning("Invalid coordinate (%s, %s): %s", latitude, longitude, e)
            return create_empty_report(location_name, now=self.clock())
        return await self.assess(coordinate, location_name)
