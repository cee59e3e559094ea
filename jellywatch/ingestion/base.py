"""
base.py — Shared fetch/parse machinery for sighting source adapters.

Each provider adapter only describes two things:

    build_params(coordinate, radius_km)  → query string for one GET request
    extract_fields(item)                 → species / coordinates / date /
                                           vernacular name of one element

Everything else lives here and is identical for all providers.

Error Handling Strategy
========================
    Level 1 — Transport (timeout, DNS, connection refused)
        → no retry; WARNING log, empty result

    Level 2 — Protocol (non-200 status, body is not JSON, no results array)
        → ExternalServiceError raised internally, converted to an empty
          result at the adapter boundary with a WARNING log

    Level 3 — Malformed element (missing date, bad coordinates)
        → element skipped with a DEBUG log, the rest of the batch survives

fetch() therefore never raises; a failed provider is simply zero sightings
for this invocation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx

from jellywatch.core.config import settings
from jellywatch.core.errors import ExternalServiceError, MalformedRecordError
from jellywatch.ingestion.models import SightingRecord
from jellywatch.ingestion.normalizer import normalize_sighting
from jellywatch.spatial.radius_utils import Coordinate

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SightingSource:
    """
    Base class for one external sighting provider.

    Usage:
        async with httpx.AsyncClient() as client:
            source = INaturalistSource(client)
            sightings = await source.fetch(Coordinate(38.5384, -0.1293), 50.0)
    """

    name: str = "source"
    provider_label: str = "Unknown"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        url: str,
        timeout: float,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.client = client
        self.url = url
        self.timeout = timeout
        self.clock = clock

    # ── Provider-specific hooks ──

    def build_params(self, coordinate: Coordinate, radius_km: float) -> Dict[str, Any]:
        raise NotImplementedError

    def extract_fields(self, item: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    # ── Public contract ──

    async def fetch(
        self,
        coordinate: Coordinate,
        radius_km: float,
        deadline: Optional[float] = None,
    ) -> List[SightingRecord]:
        """
        Query the provider for sightings around ``coordinate``.

        Parameters
        ----------
        coordinate : Coordinate
            Query point.
        radius_km : float
            Search radius, used by providers that accept point + radius.
        deadline : float | None
            Seconds the caller is willing to wait. The adapter's own timeout
            is clipped to it.

        Returns
        -------
        list of SightingRecord
            Empty on any failure.
        """
        timeout = self.timeout if deadline is None else min(self.timeout, deadline)
        start = time.monotonic()

        try:
            payload = await asyncio.wait_for(
                self._request(coordinate, radius_km, timeout), timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "%s timed out after %.1fs", self.name, timeout,
                extra={"provider": self.name},
            )
            return []
        except (httpx.HTTPError, ExternalServiceError) as e:
            logger.warning(
                "%s request failed: %s", self.name, e,
                extra={"provider": self.name},
            )
            return []
        except Exception as e:
            logger.warning(
                "%s unexpected failure: %s", self.name, e,
                extra={"provider": self.name},
            )
            return []

        sightings = self.parse_response(payload, coordinate)
        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            "%s returned %d sightings (%.0fms)",
            self.name, len(sightings), duration_ms,
            extra={
                "provider": self.name,
                "sighting_count": len(sightings),
                "duration_ms": duration_ms,
            },
        )
        return sightings

    # ── HTTP layer ──

    async def _request(
        self,
        coordinate: Coordinate,
        radius_km: float,
        timeout: float,
    ) -> Dict[str, Any]:
        params = self.build_params(coordinate, radius_km)
        logger.debug("%s request: %s %s", self.name, self.url, params)

        response = await self.client.get(
            self.url,
            params=params,
            headers={"User-Agent": settings.USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
        )
        if response.status_code != 200:
            raise ExternalServiceError(
                self.name, f"HTTP {response.status_code}",
                http_status=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise ExternalServiceError(self.name, f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ExternalServiceError(self.name, "response is not a JSON object")
        return data

    # ── Parsing ──

    def parse_response(
        self,
        payload: Dict[str, Any],
        coordinate: Coordinate,
    ) -> List[SightingRecord]:
        """Normalise every element of ``results``; bad elements are skipped."""
        results = payload.get("results")
        if not isinstance(results, list):
            logger.debug("%s response has no results array", self.name)
            return []

        now = self.clock()
        sightings: List[SightingRecord] = []
        for item in results:
            try:
                if not isinstance(item, dict):
                    raise MalformedRecordError("element is not an object")
                fields = self.extract_fields(item)
                sightings.append(normalize_sighting(
                    center=coordinate,
                    provider=self.provider_label,
                    now=now,
                    **fields,
                ))
            except (MalformedRecordError, KeyError, TypeError, ValueError, AttributeError) as e:
                logger.debug("Skipping %s record: %s", self.name, e)
        return sightings
