"""
classifier.py — Risk level, prediction and safety advice from curated sightings.

═══════════════════════════════════════════════════════════════════════════
DERIVED COUNTS
═══════════════════════════════════════════════════════════════════════════

    recent_dangerous = #{ age ≤ 7 days  AND severity ∈ {DANGEROUS, EXTREME} }
    very_recent      = #{ age ≤ 3 days }
    close_recent     = #{ distance ≤ 10 km AND age ≤ 14 days }

═══════════════════════════════════════════════════════════════════════════
CLASSIFICATION (first matching rule wins)
═══════════════════════════════════════════════════════════════════════════

    VERY_HIGH   recent_dangerous > 0 AND very_recent > 2
    HIGH        recent_dangerous > 0 OR (very_recent > 3 AND close_recent > 1)
    MODERATE    close_recent > 2 OR very_recent > 1
    LOW         any sightings at all
    VERY_LOW    no sightings

A single dangerous species seen this week is therefore always at least
HIGH, however few other reports there are.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

from jellywatch.ingestion.models import SightingRecord
from jellywatch.risk.models import Classification, RiskLevel


# ═══════════════════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════════════════

RECENT_DAYS = 7
VERY_RECENT_DAYS = 3
CLOSE_DISTANCE_KM = 10.0
CLOSE_WINDOW_DAYS = 14
MAX_NAMED_SPECIES = 3

NO_ACTIVITY_PREDICTION = "No recent jellyfish activity detected in this area"
FALLBACK_SPECIES_TEXT = "marine life"

PREDICTION_TEMPLATES: Dict[RiskLevel, str] = {
    RiskLevel.VERY_HIGH: "High risk: {count} recent dangerous jellyfish sightings ({species})",
    RiskLevel.HIGH: "Elevated risk: {count} recent jellyfish sightings including {species}",
    RiskLevel.MODERATE: "Moderate activity: {count} jellyfish sightings reported recently ({species})",
    RiskLevel.LOW: "Low activity: Few jellyfish sightings ({species})",
    RiskLevel.VERY_LOW: "Minimal jellyfish activity - conditions appear safe",
}

SAFETY_ADVICE: Dict[RiskLevel, str] = {
    RiskLevel.VERY_HIGH: "Swimming not recommended! Stay out of the water.",
    RiskLevel.HIGH: "Exercise extreme caution. Consider avoiding swimming.",
    RiskLevel.MODERATE: "Check water carefully before entering. Swim with caution.",
    RiskLevel.LOW: "Generally safe, but remain alert for jellyfish.",
    RiskLevel.VERY_LOW: "Good swimming conditions - minimal jellyfish risk.",
}

DANGEROUS_SPECIES_WARNING = (
    " Dangerous species reported - seek immediate medical attention if stung."
)


@dataclass(frozen=True)
class SightingCounts:
    recent_dangerous: int
    very_recent: int
    close_recent: int


def count_sightings(sightings: Sequence[SightingRecord]) -> SightingCounts:
    return SightingCounts(
        recent_dangerous=sum(
            1 for s in sightings
            if s.age_days <= RECENT_DAYS and s.severity.is_dangerous
        ),
        very_recent=sum(1 for s in sightings if s.age_days <= VERY_RECENT_DAYS),
        close_recent=sum(
            1 for s in sightings
            if s.distance_km <= CLOSE_DISTANCE_KM and s.age_days <= CLOSE_WINDOW_DAYS
        ),
    )


def classify_risk_level(sightings: Sequence[SightingRecord]) -> RiskLevel:
    """
    Apply the rule table above.

    >>> classify_risk_level([])
    <RiskLevel.VERY_LOW: 1>
    """
    if not sightings:
        return RiskLevel.VERY_LOW

    c = count_sightings(sightings)

    if c.recent_dangerous > 0 and c.very_recent > 2:
        return RiskLevel.VERY_HIGH
    if c.recent_dangerous > 0 or (c.very_recent > 3 and c.close_recent > 1):
        return RiskLevel.HIGH
    if c.close_recent > 2 or c.very_recent > 1:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


def top_species_names(
    sightings: Sequence[SightingRecord],
    limit: int = MAX_NAMED_SPECIES,
) -> List[str]:
    """First ``limit`` distinct common names, in curated order."""
    names: List[str] = []
    for s in sightings:
        name = s.common_name
        if name and name.strip() and name not in names:
            names.append(name)
            if len(names) == limit:
                break
    return names


def generate_prediction(sightings: Sequence[SightingRecord], level: RiskLevel) -> str:
    if not sightings:
        return NO_ACTIVITY_PREDICTION

    recent_count = sum(1 for s in sightings if s.age_days <= RECENT_DAYS)
    species_text = ", ".join(top_species_names(sightings)) or FALLBACK_SPECIES_TEXT
    return PREDICTION_TEMPLATES[level].format(count=recent_count, species=species_text)


def generate_safety_advice(sightings: Sequence[SightingRecord], level: RiskLevel) -> str:
    advice = SAFETY_ADVICE[level]
    if any(s.severity.is_dangerous for s in sightings):
        advice += DANGEROUS_SPECIES_WARNING
    return advice


def classify(sightings: Sequence[SightingRecord]) -> Classification:
    """
    Classify a curated sighting list.

    Parameters
    ----------
    sightings : sequence of SightingRecord
        Output of ``curate`` (already ranked, at most 10 entries).

    Returns
    -------
    Classification
        Risk level, templated prediction and per-level safety advice.
    """
    level = classify_risk_level(sightings)
    return Classification(
        level=level,
        prediction=generate_prediction(sightings, level),
        advice=generate_safety_advice(sightings, level),
    )
