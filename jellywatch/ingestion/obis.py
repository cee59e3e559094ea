"""
OBIS occurrence adapter.

Endpoint: https://api.obis.org/v3/occurrence

    ?geometry=POLYGON((...))&scientificname=Cnidaria&size=20

OBIS reports the observation midpoint as epoch milliseconds in
``date_mid``; ``species`` is only present for records identified to
species level, so ``scientificName`` is the fallback.
"""

from __future__ import annotations

from typing import Any, Dict

from jellywatch.core.config import settings
from jellywatch.ingestion.base import SightingSource
from jellywatch.spatial.radius_utils import Coordinate, bounding_polygon_wkt


class OBISSource(SightingSource):
    name = "OBIS"
    provider_label = "OBIS Network"

    def __init__(self, client, **kwargs):
        kwargs.setdefault("url", settings.OBIS_URL)
        kwargs.setdefault("timeout", settings.OBIS_TIMEOUT)
        super().__init__(client, **kwargs)

    def build_params(self, coordinate: Coordinate, radius_km: float) -> Dict[str, Any]:
        return {
            "geometry": bounding_polygon_wkt(coordinate, settings.SEARCH_BOX_OFFSET_DEG),
            "scientificname": settings.SEARCH_TAXON,
            "size": settings.RESULTS_PER_SOURCE,
        }

    def extract_fields(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "species": item.get("species") or item.get("scientificName"),
            "vernacular": item.get("vernacularName"),
            "latitude": item.get("decimalLatitude"),
            "longitude": item.get("decimalLongitude"),
            "observed": item.get("date_mid"),
        }
