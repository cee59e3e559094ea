"""
curator.py — Filter, rank and truncate raw sightings.

Pipeline (order matters):

    1. Age       — keep 0 ≤ age_days ≤ 30 (drops stale and future-dated)
    2. Distance  — keep distance_km ≤ search radius (50 km default)
    3. Quality   — keep records with a non-blank common name AND species
    4. Rank      — severity desc → age_days asc → distance_km asc
                   (stable: full ties keep input order)
    5. Truncate  — first 10

Cross-provider duplicates are kept: the same real-world sighting reported
by two providers counts as two signals.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from jellywatch.core.config import settings
from jellywatch.ingestion.models import SightingRecord


def relevance_key(sighting: SightingRecord) -> tuple:
    """Sort key: most dangerous, then most recent, then closest first."""
    return (-int(sighting.severity), sighting.age_days, sighting.distance_km)


def _has_usable_names(sighting: SightingRecord) -> bool:
    return bool(
        sighting.common_name and sighting.common_name.strip()
        and sighting.species and sighting.species.strip()
    )


def curate(
    sightings: Iterable[SightingRecord],
    radius_km: Optional[float] = None,
    *,
    max_age_days: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[SightingRecord]:
    """
    Reduce raw adapter output to the bounded, ranked list shown to users.

    Parameters
    ----------
    sightings : iterable of SightingRecord
        Concatenated output of all adapters.
    radius_km : float | None
        Search radius; defaults to settings.SEARCH_RADIUS_KM.
    max_age_days : int | None
        Defaults to settings.MAX_SIGHTING_AGE_DAYS.
    limit : int | None
        Defaults to settings.MAX_CURATED_SIGHTINGS.

    Returns
    -------
    list of SightingRecord
        At most ``limit`` records, ranked by relevance.
    """
    radius_km = settings.SEARCH_RADIUS_KM if radius_km is None else radius_km
    max_age_days = settings.MAX_SIGHTING_AGE_DAYS if max_age_days is None else max_age_days
    limit = settings.MAX_CURATED_SIGHTINGS if limit is None else limit

    kept = [s for s in sightings if 0 <= s.age_days <= max_age_days]
    kept = [s for s in kept if s.distance_km <= radius_km]
    kept = [s for s in kept if _has_usable_names(s)]

    kept.sort(key=relevance_key)
    return kept[:limit]
