"""
normalizer.py — Turns provider fields into canonical SightingRecords.

Three lookups shape every record:

    1. Severity   — ordered species table, first substring match wins,
                    MILD for anything unrecognised.
    2. Common name — priority chain:
                        known species table
                      → provider vernacular name
                      → "<Genus> Jellyfish" for binomial names
                      → "Jellyfish" for the bare phylum
                      → the scientific name, capitalised
    3. Date       — ISO date, ISO datetime (with or without offset),
                    GBIF "start/end" intervals, or epoch milliseconds.

Anything that makes a record unusable (no date, unparseable date, no
coordinates) raises MalformedRecordError; adapters catch it per record.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timezone
from typing import Optional, Tuple, Union

from jellywatch.core.errors import MalformedRecordError
from jellywatch.ingestion.models import Severity, SightingRecord
from jellywatch.spatial.radius_utils import Coordinate, haversine

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Lookup tables (ordered: first match wins)
# ═══════════════════════════════════════════════════════════════════════════

SPECIES_SEVERITY: Tuple[Tuple[str, Severity], ...] = (
    ("Physalia physalis", Severity.EXTREME),     # Portuguese Man o' War
    ("Chironex fleckeri", Severity.EXTREME),     # Box Jellyfish
    ("Carybdea", Severity.DANGEROUS),            # Box Jellyfish family
    ("Pelagia noctiluca", Severity.PAINFUL),     # Mauve Stinger
    ("Chrysaora", Severity.PAINFUL),             # Sea Nettle
    ("Aurelia aurita", Severity.MILD),           # Moon Jellyfish
    ("Rhizostoma pulmo", Severity.MILD),         # Barrel Jellyfish
)

COMMON_NAMES: Tuple[Tuple[str, str], ...] = (
    ("Physalia physalis", "Portuguese Man o' War"),
    ("Chironex fleckeri", "Box Jellyfish"),
    ("Pelagia noctiluca", "Mauve Stinger"),
    ("Chrysaora quinquecirrha", "Sea Nettle"),
    ("Chrysaora", "Sea Nettle"),
    ("Aurelia aurita", "Moon Jellyfish"),
    ("Aurelia", "Moon Jellyfish"),
    ("Rhizostoma pulmo", "Barrel Jellyfish"),
    ("Rhizostoma", "Barrel Jellyfish"),
    ("Cnidaria", "Jellyfish"),
)

# Date-only observations are pinned to midday UTC
DATE_ONLY_TIME = time(12, 0, tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
# Species lookups
# ═══════════════════════════════════════════════════════════════════════════

def determine_severity(species: Optional[str]) -> Severity:
    """
    Map a scientific name to a sting severity.

    >>> determine_severity("Physalia physalis")
    <Severity.EXTREME: 5>
    >>> determine_severity("Chrysaora hysoscella")
    <Severity.PAINFUL: 3>
    >>> determine_severity("Cassiopea andromeda")
    <Severity.MILD: 2>
    """
    if not species:
        return Severity.MILD

    lowered = species.lower()
    for key, severity in SPECIES_SEVERITY:
        if key.lower() in lowered:
            return severity
    return Severity.MILD


def _make_readable(name: str) -> Optional[str]:
    name = name.strip()
    if not name:
        return None
    return name[:1].upper() + name[1:].lower()


def resolve_common_name(
    species: Optional[str],
    vernacular: Optional[str] = None,
) -> Optional[str]:
    """
    Derive a display name for a sighting.

    Returns None when the species is empty; such records are later
    discarded by the curator.

    >>> resolve_common_name("Pelagia noctiluca", "Mauve stinger (ES)")
    'Mauve Stinger'
    >>> resolve_common_name("Cotylorhiza tuberculata", "Fried egg jellyfish")
    'Fried egg jellyfish'
    >>> resolve_common_name("Cotylorhiza tuberculata")
    'Cotylorhiza Jellyfish'
    >>> resolve_common_name("HYDROZOA")
    'Hydrozoa'
    """
    if species is None or not species.strip():
        return None

    lowered = species.lower()
    for key, name in COMMON_NAMES:
        if key.lower() in lowered:
            return name

    if vernacular is not None:
        vernacular = str(vernacular).strip()
        if vernacular and vernacular.lower() != "null":
            return vernacular

    stripped = species.strip()
    if " " in stripped:
        genus = stripped.split(" ")[0]
        return f"{_make_readable(genus)} Jellyfish"

    if stripped.lower() == "cnidaria":
        return "Jellyfish"

    return _make_readable(stripped)


# ═══════════════════════════════════════════════════════════════════════════
# Date handling
# ═══════════════════════════════════════════════════════════════════════════

def parse_observed_at(raw: Union[str, int, float, None]) -> datetime:
    """
    Parse a provider date into a timezone-aware UTC datetime.

    Accepts:
        "2024-07-01"                    → 2024-07-01 12:00 UTC
        "2024-07-01T09:30:00"           → naive values are taken as UTC
        "2024-07-01T09:30:00Z" / +02:00 → converted to UTC
        "2024-07-01/2024-07-03"         → start of the interval
        1719835200000 (int/float)       → epoch milliseconds

    Raises MalformedRecordError when the value is missing or unparseable.
    """
    if raw is None or isinstance(raw, bool):
        raise MalformedRecordError("missing date")

    if isinstance(raw, (int, float)):
        if raw <= 0:
            raise MalformedRecordError("non-positive timestamp", value=raw)
        try:
            return datetime.fromtimestamp(raw / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise MalformedRecordError("timestamp out of range", value=raw) from e

    text = str(raw).strip()
    if not text or text.lower() == "null":
        raise MalformedRecordError("missing date")

    # GBIF intervals: keep the start of the range
    text = text.split("/")[0]

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        if "T" not in text and len(text) == 10:
            return datetime.combine(
                datetime.strptime(text, "%Y-%m-%d").date(), DATE_ONLY_TIME
            )
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise MalformedRecordError("unparseable date", value=raw) from e

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def age_in_days(observed_at: datetime, now: datetime) -> int:
    """Whole calendar days between the observation date and today (UTC)."""
    return (now.astimezone(timezone.utc).date() - observed_at.date()).days


# ═══════════════════════════════════════════════════════════════════════════
# Record construction
# ═══════════════════════════════════════════════════════════════════════════

def _to_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalize_sighting(
    *,
    species: Optional[str],
    latitude,
    longitude,
    observed,
    center: Coordinate,
    provider: str,
    now: datetime,
    vernacular: Optional[str] = None,
) -> SightingRecord:
    """
    Build a canonical SightingRecord from already-extracted provider fields.

    Parameters
    ----------
    species : str | None
        Scientific name.
    latitude, longitude : Any
        Raw coordinate values; anything that is not a finite in-range
        number, or exactly (0, 0), marks the record malformed.
    observed : str | int | float | None
        Raw date value (see ``parse_observed_at``).
    center : Coordinate
        Query coordinate the distance is measured from.
    provider : str
        Attribution label of the adapter.
    now : datetime
        Reference time for ``age_days``.
    vernacular : str | None
        Provider-supplied common name, used when the species is not in
        the known-names table.

    Raises
    ------
    MalformedRecordError
    """
    lat = _to_float(latitude)
    lon = _to_float(longitude)
    if lat is None or lon is None or (lat == 0.0 and lon == 0.0):
        raise MalformedRecordError("missing coordinates", provider=provider)
    try:
        location = Coordinate(lat, lon)
    except ValueError as e:
        raise MalformedRecordError(str(e), provider=provider) from e

    observed_at = parse_observed_at(observed)
    species = (species or "").strip()

    return SightingRecord(
        species=species,
        common_name=resolve_common_name(species, vernacular),
        severity=determine_severity(species),
        observed_at=observed_at,
        age_days=age_in_days(observed_at, now),
        distance_km=haversine(center, location),
        latitude=lat,
        longitude=lon,
        source_provider=provider,
        verified=True,
    )
