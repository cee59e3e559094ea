"""
ingestion — Sighting providers and record normalisation.

Sub-modules:
    models       — Severity + canonical SightingRecord
    normalizer   — species lookups, date parsing, record construction
    base         — shared fetch/parse machinery with failure containment
    inaturalist  — iNaturalist observations (point + radius)
    gbif         — GBIF occurrence search (polygon)
    obis         — OBIS occurrences (polygon)
"""

from jellywatch.ingestion.base import SightingSource
from jellywatch.ingestion.gbif import GBIFSource
from jellywatch.ingestion.inaturalist import INaturalistSource
from jellywatch.ingestion.models import Severity, SightingRecord
from jellywatch.ingestion.obis import OBISSource

__all__ = [
    "GBIFSource",
    "INaturalistSource",
    "OBISSource",
    "Severity",
    "SightingRecord",
    "SightingSource",
]
