"""
models.py — Risk levels and the composed risk report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple

from jellywatch.ingestion.models import SightingRecord


class RiskLevel(IntEnum):
    """Aggregate jellyfish risk for a coordinate (higher = worse)."""
    VERY_LOW  = 1
    LOW       = 2
    MODERATE  = 3
    HIGH      = 4
    VERY_HIGH = 5

    @property
    def display_name(self) -> str:
        return _RISK_DISPLAY[self][0]

    @property
    def emoji(self) -> str:
        return _RISK_DISPLAY[self][1]

    @property
    def description(self) -> str:
        return _RISK_DISPLAY[self][2]

    @property
    def formatted(self) -> str:
        return f"{self.emoji} {self.display_name}"


_RISK_DISPLAY = {
    RiskLevel.VERY_LOW:  ("Very Low", "🟢", "Safe swimming conditions"),
    RiskLevel.LOW:       ("Low", "🟡", "Few jellyfish expected"),
    RiskLevel.MODERATE:  ("Moderate", "🟠", "Some jellyfish possible"),
    RiskLevel.HIGH:      ("High", "🔴", "High jellyfish activity expected"),
    RiskLevel.VERY_HIGH: ("Very High", "⚫", "Dangerous conditions - avoid swimming"),
}


@dataclass(frozen=True)
class Classification:
    """Output of the risk classifier."""
    level: RiskLevel
    prediction: str
    advice: str


@dataclass(frozen=True)
class RiskReport:
    """
    Complete jellyfish risk assessment for one coordinate.

    This is the single return type of the risk service; a presentation
    layer renders it without needing anything else. Immutable, since the
    result cache hands the same instance to every caller.
    """
    latitude: float
    longitude: float
    risk_level: RiskLevel
    sightings: Tuple[SightingRecord, ...]
    prediction: str
    safety_advice: str
    source: str
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    location: Optional[str] = None
    has_prediction: bool = True

    @property
    def dangerous_sightings_count(self) -> int:
        return sum(1 for s in self.sightings if s.severity.is_dangerous)

    @property
    def recent_sightings_count(self) -> int:
        """Sightings reported within the last week."""
        return sum(1 for s in self.sightings if s.age_days <= 7)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise for API response."""
        return {
            "location": self.location,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "risk_level": self.risk_level.name,
            "risk_display": self.risk_level.formatted,
            "risk_description": self.risk_level.description,
            "prediction": self.prediction,
            "safety_advice": self.safety_advice,
            "source": self.source,
            "computed_at": self.computed_at.isoformat(),
            "has_prediction": self.has_prediction,
            "dangerous_sightings_count": self.dangerous_sightings_count,
            "recent_sightings_count": self.recent_sightings_count,
            "sightings": [s.to_dict() for s in self.sightings],
        }
