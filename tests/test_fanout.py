"""
Tests for the fan-out coordinator.

Covers:
    • Concatenation in source order
    • Resilience: failing / raising / slow sources contribute nothing
    • Outer deadline returns partial data promptly
    • Concurrency bound
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone

from jellywatch.ingestion.models import Severity, SightingRecord
from jellywatch.risk.fanout import FanOutCoordinator
from jellywatch.spatial.radius_utils import Coordinate

BENIDORM = Coordinate(38.5384, -0.1293)


def make_sighting(species="Aurelia aurita", provider="Fake", age_days=1) -> SightingRecord:
    return SightingRecord(
        species=species,
        common_name="Moon Jellyfish",
        severity=Severity.MILD,
        observed_at=datetime(2024, 7, 14, 12, tzinfo=timezone.utc),
        age_days=age_days,
        distance_km=2.0,
        latitude=38.55,
        longitude=-0.12,
        source_provider=provider,
    )


class FakeSource:
    """Stand-in adapter with scripted behaviour."""

    def __init__(self, name, records=(), *, delay=0.0, error=None, timeout=5.0):
        self.name = name
        self.records = list(records)
        self.delay = delay
        self.error = error
        self.timeout = timeout
        self.calls = 0
        self.active = 0
        self.peak = 0

    async def fetch(self, coordinate, radius_km, deadline=None):
        self.calls += 1
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return list(self.records)
        finally:
            self.active -= 1


def _aggregate(coordinator):
    return asyncio.run(coordinator.aggregate(BENIDORM))


class TestAggregate:
    def test_concatenates_in_source_order(self):
        a = FakeSource("A", [make_sighting(provider="A")] * 2)
        b = FakeSource("B", [make_sighting(provider="B")])
        c = FakeSource("C", [make_sighting(provider="C")] * 3)
        result = _aggregate(FanOutCoordinator([a, b, c]))
        assert [s.source_provider for s in result] == ["A", "A", "B", "C", "C", "C"]

    def test_no_sources(self):
        assert _aggregate(FanOutCoordinator([])) == []

    def test_all_empty(self):
        sources = [FakeSource(n) for n in ("A", "B", "C")]
        assert _aggregate(FanOutCoordinator(sources)) == []

    def test_every_source_called_once(self):
        sources = [FakeSource(n, [make_sighting()]) for n in ("A", "B", "C")]
        _aggregate(FanOutCoordinator(sources))
        assert [s.calls for s in sources] == [1, 1, 1]


class TestResilience:
    def test_two_of_three_failing(self):
        ok = FakeSource("ok", [make_sighting()] * 4)
        boom = FakeSource("boom", error=RuntimeError("provider exploded"))
        slow = FakeSource("slow", [make_sighting()], delay=1.0, timeout=0.05)
        result = _aggregate(FanOutCoordinator([boom, ok, slow], deadline=2.0))
        assert len(result) == 4

    def test_all_failing_is_empty(self):
        sources = [FakeSource(n, error=ValueError("bad")) for n in ("A", "B", "C")]
        assert _aggregate(FanOutCoordinator(sources)) == []

    def test_outer_deadline_returns_partial_data(self):
        fast = FakeSource("fast", [make_sighting()] * 2)
        stuck = FakeSource("stuck", [make_sighting()] * 5, delay=2.0, timeout=30.0)
        start = time.monotonic()
        result = _aggregate(FanOutCoordinator([fast, stuck], deadline=0.1))
        elapsed = time.monotonic() - start
        assert len(result) == 2
        assert elapsed < 1.5

    def test_deadline_warning_logged(self, caplog):
        stuck = FakeSource("stuck", delay=2.0, timeout=30.0)
        with caplog.at_level("WARNING"):
            _aggregate(FanOutCoordinator([stuck], deadline=0.05))
        assert any("stuck" in r.getMessage() for r in caplog.records)


class TestConcurrency:
    def test_sources_run_in_parallel(self):
        sources = [FakeSource(n, [make_sighting()], delay=0.2) for n in ("A", "B", "C")]
        start = time.monotonic()
        result = _aggregate(FanOutCoordinator(sources, deadline=5.0))
        assert len(result) == 3
        assert time.monotonic() - start < 0.55

    def test_semaphore_bounds_in_flight_calls(self):
        shared = FakeSource("shared", [make_sighting()], delay=0.05)
        coordinator = FanOutCoordinator([shared] * 4, max_concurrency=2, deadline=5.0)
        result = _aggregate(coordinator)
        assert len(result) == 4
        assert shared.peak == 2
