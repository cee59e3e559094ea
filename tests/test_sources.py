"""
Tests for the iNaturalist, GBIF and OBIS source adapters.

Providers are faked with ``httpx.MockTransport``; no network access.

Covers:
    • Query parameters sent to each provider
    • Response parsing into SightingRecords
    • Malformed elements skipped, rest of batch kept
    • Non-200, invalid JSON, missing results, transport errors, timeouts
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from jellywatch.ingestion import GBIFSource, INaturalistSource, OBISSource, Severity
from jellywatch.spatial.radius_utils import Coordinate

NOW = datetime(2024, 7, 15, 9, 30, tzinfo=timezone.utc)
BENIDORM = Coordinate(38.5384, -0.1293)


def _clock():
    return NOW


def _fetch(source_cls, handler, *, timeout=None, deadline=None):
    """Run one adapter fetch against a mock transport."""
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            kwargs = {"clock": _clock}
            if timeout is not None:
                kwargs["timeout"] = timeout
            source = source_cls(client, **kwargs)
            return await source.fetch(BENIDORM, 50.0, deadline)
    return asyncio.run(run())


def _json_handler(body, captured=None, status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(request)
        return httpx.Response(status, json=body)
    return handler


# ═══════════════════════════════════════════════════════════════════════════
# iNaturalist
# ═══════════════════════════════════════════════════════════════════════════

INAT_BODY = {
    "total_results": 3,
    "results": [
        {
            "observed_on": "2024-07-14",
            "location": "38.5401,-0.1187",
            "taxon": {"name": "Physalia physalis", "preferred_common_name": "Portuguese Man o' War"},
        },
        {
            "observed_on": "2024-07-10",
            "location": "38.60,-0.05",
            "taxon": {"name": "Cotylorhiza tuberculata", "preferred_common_name": "Fried Egg Jellyfish"},
        },
        {
            "observed_on": None,
            "location": "38.55,-0.12",
            "taxon": {"name": "Aurelia aurita"},
        },
    ],
}


class TestINaturalistSource:
    def test_query_parameters(self):
        captured = []
        _fetch(INaturalistSource, _json_handler(INAT_BODY, captured))
        req = captured[0]
        assert req.url.host == "api.inaturalist.org"
        assert req.url.path == "/v1/observations"
        assert req.url.params["taxon_name"] == "Cnidaria"
        assert req.url.params["lat"] == "38.5384"
        assert req.url.params["lng"] == "-0.1293"
        assert req.url.params["radius"] == "50"
        assert req.url.params["per_page"] == "20"
        assert req.url.params["order"] == "desc"
        assert req.url.params["order_by"] == "observed_on"
        assert req.headers["User-Agent"].startswith("JellyWatch")

    def test_parses_valid_and_skips_undated(self):
        sightings = _fetch(INaturalistSource, _json_handler(INAT_BODY))
        assert len(sightings) == 2

        first = sightings[0]
        assert first.species == "Physalia physalis"
        assert first.common_name == "Portuguese Man o' War"
        assert first.severity == Severity.EXTREME
        assert first.age_days == 1
        assert first.source_provider == "iNaturalist Community"

        assert sightings[1].common_name == "Fried Egg Jellyfish"
        assert sightings[1].age_days == 5

    def test_bad_location_string_skipped(self):
        body = {"results": [
            {"observed_on": "2024-07-14", "location": "38.54", "taxon": {"name": "Aurelia aurita"}},
            {"observed_on": "2024-07-14", "location": "38.54,-0.12", "taxon": {"name": "Aurelia aurita"}},
        ]}
        assert len(_fetch(INaturalistSource, _json_handler(body))) == 1

    def test_non_object_elements_skipped(self):
        body = {"results": ["garbage", 42, INAT_BODY["results"][0]]}
        assert len(_fetch(INaturalistSource, _json_handler(body))) == 1


# ═══════════════════════════════════════════════════════════════════════════
# GBIF
# ═══════════════════════════════════════════════════════════════════════════

GBIF_BODY = {
    "offset": 0,
    "limit": 20,
    "results": [
        {
            "scientificName": "Pelagia noctiluca (Forsskål, 1775)",
            "vernacularName": "Mauve stinger",
            "decimalLatitude": 38.51,
            "decimalLongitude": -0.10,
            "eventDate": "2024-07-13T10:15:00",
        },
        {
            "scientificName": "Aurelia aurita",
            "decimalLatitude": 38.70,
            "decimalLongitude": -0.20,
            "eventDate": "2024-07-01/2024-07-03",
        },
        {
            "scientificName": "Aurelia aurita",
            "eventDate": "2024-07-01",
        },
    ],
}


class TestGBIFSource:
    def test_query_parameters(self):
        captured = []
        _fetch(GBIFSource, _json_handler(GBIF_BODY, captured))
        params = captured[0].url.params
        assert captured[0].url.path == "/v1/occurrence/search"
        assert params["q"] == "Cnidaria"
        assert params["hasCoordinate"] == "true"
        assert params["limit"] == "20"
        assert params["geometry"].startswith("POLYGON((")
        assert "country" not in params

    def test_parses_and_skips_missing_coordinates(self):
        sightings = _fetch(GBIFSource, _json_handler(GBIF_BODY))
        assert len(sightings) == 2
        assert sightings[0].common_name == "Mauve Stinger"
        assert sightings[0].severity == Severity.PAINFUL
        assert sightings[0].age_days == 2
        assert sightings[0].source_provider == "GBIF Network"
        assert sightings[1].age_days == 14

    def test_missing_results_is_empty(self):
        assert _fetch(GBIFSource, _json_handler({"count": 0})) == []


# ═══════════════════════════════════════════════════════════════════════════
# OBIS
# ═══════════════════════════════════════════════════════════════════════════

OBIS_BODY = {
    "total": 2,
    "results": [
        {
            "species": "Rhizostoma pulmo",
            "scientificName": "Rhizostoma pulmo",
            "decimalLatitude": 38.45,
            "decimalLongitude": -0.05,
            "date_mid": 1720958400000,  # 2024-07-14 12:00 UTC
        },
        {
            "scientificName": "Hydrozoa",
            "decimalLatitude": 38.40,
            "decimalLongitude": -0.30,
            "date_mid": 1720526400000,  # 2024-07-09 12:00 UTC
        },
    ],
}


class TestOBISSource:
    def test_query_parameters(self):
        captured = []
        _fetch(OBISSource, _json_handler(OBIS_BODY, captured))
        params = captured[0].url.params
        assert captured[0].url.path == "/v3/occurrence"
        assert params["scientificname"] == "Cnidaria"
        assert params["size"] == "20"
        assert params["geometry"].startswith("POLYGON((")

    def test_epoch_dates_and_name_fallback(self):
        sightings = _fetch(OBISSource, _json_handler(OBIS_BODY))
        assert [s.age_days for s in sightings] == [1, 6]
        assert sightings[0].common_name == "Barrel Jellyfish"
        assert sightings[1].species == "Hydrozoa"
        assert sightings[1].common_name == "Hydrozoa"
        assert all(s.source_provider == "OBIS Network" for s in sightings)


# ═══════════════════════════════════════════════════════════════════════════
# Failure handling (shared base class)
# ═══════════════════════════════════════════════════════════════════════════

class TestSourceFailures:
    @pytest.mark.parametrize("status", [404, 429, 500, 503])
    def test_non_200_is_empty(self, status):
        assert _fetch(GBIFSource, _json_handler(GBIF_BODY, status=status)) == []

    def test_invalid_json_is_empty(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>maintenance</html>")
        assert _fetch(OBISSource, handler) == []

    def test_json_array_body_is_empty(self):
        def handler(request):
            return httpx.Response(200, content=json.dumps([1, 2]).encode())
        assert _fetch(OBISSource, handler) == []

    def test_results_not_a_list_is_empty(self):
        assert _fetch(INaturalistSource, _json_handler({"results": {"a": 1}})) == []

    def test_connection_error_is_empty(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)
        assert _fetch(INaturalistSource, handler) == []

    def test_timeout_is_empty(self):
        async def handler(request):
            await asyncio.sleep(1.0)
            return httpx.Response(200, json=INAT_BODY)
        assert _fetch(INaturalistSource, handler, timeout=0.05) == []

    def test_deadline_clips_timeout(self):
        async def handler(request):
            await asyncio.sleep(1.0)
            return httpx.Response(200, json=INAT_BODY)
        assert _fetch(GBIFSource, handler, deadline=0.05) == []

    def test_failure_logged_as_warning(self, caplog):
        with caplog.at_level("WARNING"):
            _fetch(GBIFSource, _json_handler({}, status=500))
        assert any("GBIF" in r.getMessage() for r in caplog.records)
