"""
models.py — Canonical sighting record shared by every source adapter.

Defines:
    • Severity       — ordered danger classification of a species' sting
    • SightingRecord — one normalised observation, independent of provider

Every adapter produces SightingRecord instances; nothing downstream of the
adapters ever sees a provider-specific payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, Optional

from jellywatch.spatial.radius_utils import format_distance, format_time_ago


class Severity(IntEnum):
    """
    Sting severity — integer ordering enables comparison.

    Higher value = more dangerous to a swimmer.
    """
    HARMLESS  = 1
    MILD      = 2
    PAINFUL   = 3
    DANGEROUS = 4
    EXTREME   = 5

    @property
    def description(self) -> str:
        return _SEVERITY_DISPLAY[self][0]

    @property
    def emoji(self) -> str:
        return _SEVERITY_DISPLAY[self][1]

    @property
    def formatted(self) -> str:
        return f"{self.emoji} {self.description}"

    @property
    def is_dangerous(self) -> bool:
        return self >= Severity.DANGEROUS


_SEVERITY_DISPLAY = {
    Severity.HARMLESS:  ("Harmless", "🟢"),
    Severity.MILD:      ("Mild sting", "🟡"),
    Severity.PAINFUL:   ("Painful sting", "🟠"),
    Severity.DANGEROUS: ("Dangerous", "🔴"),
    Severity.EXTREME:   ("Life-threatening", "⚫"),
}


@dataclass(frozen=True)
class SightingRecord:
    """
    A single normalised jellyfish observation.

    Attributes
    ----------
    species : str
        Scientific name as reported by the provider (may be empty).
    common_name : str | None
        Display name; None when no usable name could be derived.
    severity : Severity
        From the species lookup table, MILD when unknown.
    observed_at : datetime
        Timezone-aware UTC observation time.
    age_days : int
        Whole calendar days between the observation and the query time.
        Negative for future-dated reports.
    distance_km : float
        Great-circle distance from the queried coordinate.
    latitude, longitude : float
        Where the sighting was made.
    source_provider : str
        Attribution of the adapter that produced the record.
    verified : bool
        Always True for provider-sourced records.
    """
    species: str
    common_name: Optional[str]
    severity: Severity
    observed_at: datetime
    age_days: int
    distance_km: float
    latitude: float
    longitude: float
    source_provider: str
    verified: bool = True

    @property
    def formatted_distance(self) -> str:
        return format_distance(self.distance_km)

    @property
    def formatted_time_ago(self) -> str:
        return format_time_ago(self.age_days)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "species": self.species,
            "common_name": self.common_name,
            "severity": self.severity.name,
            "severity_description": self.severity.description,
            "severity_display": self.severity.formatted,
            "observed_at": self.observed_at.isoformat(),
            "age_days": self.age_days,
            "time_ago": self.formatted_time_ago,
            "distance_km": round(self.distance_km, 2),
            "distance": self.formatted_distance,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "source_provider": self.source_provider,
            "verified": self.verified,
        }
