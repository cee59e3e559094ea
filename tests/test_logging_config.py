"""Tests for structured log formatting and request context."""

from __future__ import annotations

import json
import logging

import pytest

from jellywatch.core.logging_config import (
    JSONFormatter,
    PrettyFormatter,
    get_request_context,
    set_request_context,
    setup_logging,
    structured_fields,
    update_request_context,
)


def _record(msg="Aggregated %d raw sightings", args=(3,), **extra):
    record = logging.LogRecord(
        name="jellywatch.risk.fanout", level=logging.INFO, pathname=__file__,
        lineno=1, msg=msg, args=args, exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _reset_context():
    set_request_context()
    yield
    set_request_context()


class TestStructuredFields:
    def test_only_known_fields(self):
        fields = structured_fields(_record(provider="OBIS", colour="blue"))
        assert fields == {"provider": "OBIS"}

    def test_coordinates_and_duration_rounded(self):
        fields = structured_fields(_record(lat=38.538412345, lon=-0.129345678, duration_ms=12.3456))
        assert fields == {"lat": 38.5384, "lon": -0.1293, "duration_ms": 12.3}

    def test_counts_untouched(self):
        assert structured_fields(_record(sighting_count=0))["sighting_count"] == 0


class TestJSONFormatter:
    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "jellywatch.risk.fanout"
        assert entry["message"] == "Aggregated 3 raw sightings"

    def test_pipeline_fields_top_level(self):
        entry = json.loads(JSONFormatter().format(
            _record(provider="GBIF", sighting_count=3, lat=38.5)
        ))
        assert entry["provider"] == "GBIF"
        assert entry["sighting_count"] == 3
        assert entry["lat"] == 38.5
        assert "risk_level" not in entry

    def test_request_context_included(self):
        set_request_context(request_id="abc123", endpoint="/api/v1/jellyfish/risk")
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["request"]["request_id"] == "abc123"

    def test_no_request_key_outside_requests(self):
        assert "request" not in json.loads(JSONFormatter().format(_record()))


class TestPrettyFormatter:
    def test_contains_message_and_logger(self):
        text = PrettyFormatter().format(_record())
        assert "Aggregated 3 raw sightings" in text
        assert "jellywatch.risk.fanout" in text

    def test_request_id_prefix(self):
        set_request_context(request_id="0123456789abcdef")
        assert "[01234567]" in PrettyFormatter().format(_record())

    def test_fields_appended(self):
        text = PrettyFormatter().format(_record(provider="GBIF", sighting_count=0))
        assert "provider=GBIF" in text
        assert "sighting_count=0" in text


class TestRequestContext:
    def test_round_trip(self):
        set_request_context(request_id="r1", method="GET")
        assert get_request_context() == {"request_id": "r1", "method": "GET"}

    def test_update_skips_none(self):
        set_request_context(request_id="r1")
        update_request_context(lat=38.5, lon=None, location="Benidorm")
        assert get_request_context() == {"request_id": "r1", "lat": 38.5, "location": "Benidorm"}

    def test_cleared(self):
        set_request_context(request_id="r1")
        set_request_context()
        assert get_request_context() == {}


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_handler(self):
        setup_logging(level="debug", json_output=True)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_pretty_handler_and_quiet_httpx(self):
        setup_logging(level="INFO", json_output=False)
        assert isinstance(logging.getLogger().handlers[0].formatter, PrettyFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING
