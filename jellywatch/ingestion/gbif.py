"""
GBIF occurrence search adapter.

Endpoint: https://api.gbif.org/v1/occurrence/search

Geometry query over a square box around the point (±0.5°, ≈ 55 km):

    ?q=Cnidaria&hasCoordinate=true&geometry=POLYGON((...))&limit=20
     [&country=ES]

Response element (fields we read):
    {
        "scientificName": "Physalia physalis (Linnaeus, 1758)",
        "vernacularName": "Portuguese man o' war",
        "decimalLatitude": 38.51,
        "decimalLongitude": -0.10,
        "eventDate": "2024-07-01T10:15:00"   # or a date, or "start/end"
    }
"""

from __future__ import annotations

from typing import Any, Dict

from jellywatch.core.config import settings
from jellywatch.ingestion.base import SightingSource
from jellywatch.spatial.radius_utils import Coordinate, bounding_polygon_wkt


class GBIFSource(SightingSource):
    name = "GBIF"
    provider_label = "GBIF Network"

    def __init__(self, client, **kwargs):
        kwargs.setdefault("url", settings.GBIF_URL)
        kwargs.setdefault("timeout", settings.GBIF_TIMEOUT)
        super().__init__(client, **kwargs)

    def build_params(self, coordinate: Coordinate, radius_km: float) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "q": settings.SEARCH_TAXON,
            "hasCoordinate": "true",
            "geometry": bounding_polygon_wkt(coordinate, settings.SEARCH_BOX_OFFSET_DEG),
            "limit": settings.RESULTS_PER_SOURCE,
        }
        if settings.GBIF_COUNTRY:
            params["country"] = settings.GBIF_COUNTRY
        return params

    def extract_fields(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "species": item.get("scientificName"),
            "vernacular": item.get("vernacularName"),
            "latitude": item.get("decimalLatitude"),
            "longitude": item.get("decimalLongitude"),
            "observed": item.get("eventDate"),
        }
