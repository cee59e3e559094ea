"""
iNaturalist observations adapter.

Endpoint: https://api.inaturalist.org/v1/observations

Point + radius query, newest observations first:

    ?taxon_name=Cnidaria&lat=38.5384&lng=-0.1293&radius=50
     &per_page=20&order=desc&order_by=observed_on

Response element (fields we read):
    {
        "observed_on": "2024-07-01",
        "location": "38.5401,-0.1187",
        "taxon": {"name": "Pelagia noctiluca",
                  "preferred_common_name": "Mauve Stinger"}
    }
"""

from __future__ import annotations

from typing import Any, Dict

from jellywatch.core.config import settings
from jellywatch.core.errors import MalformedRecordError
from jellywatch.ingestion.base import SightingSource
from jellywatch.spatial.radius_utils import Coordinate


class INaturalistSource(SightingSource):
    name = "iNaturalist"
    provider_label = "iNaturalist Community"

    def __init__(self, client, **kwargs):
        kwargs.setdefault("url", settings.INATURALIST_URL)
        kwargs.setdefault("timeout", settings.INATURALIST_TIMEOUT)
        super().__init__(client, **kwargs)

    def build_params(self, coordinate: Coordinate, radius_km: float) -> Dict[str, Any]:
        return {
            "taxon_name": settings.SEARCH_TAXON,
            "lat": coordinate.latitude,
            "lng": coordinate.longitude,
            "radius": int(radius_km),
            "per_page": settings.RESULTS_PER_SOURCE,
            "order": "desc",
            "order_by": "observed_on",
        }

    def extract_fields(self, item: Dict[str, Any]) -> Dict[str, Any]:
        taxon = item.get("taxon") or {}
        location = item.get("location") or ""
        parts = str(location).split(",")
        if len(parts) != 2:
            raise MalformedRecordError("location is not 'lat,lon'", location=location)

        return {
            "species": taxon.get("name"),
            "vernacular": taxon.get("preferred_common_name"),
            "latitude": parts[0].strip(),
            "longitude": parts[1].strip(),
            "observed": item.get("observed_on"),
        }
