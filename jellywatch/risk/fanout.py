"""
fanout.py — Concurrent querying of every sighting source under one deadline.

═══════════════════════════════════════════════════════════════════════════
TIMEOUT LAYERING
═══════════════════════════════════════════════════════════════════════════

    outer deadline (10 s)
    ├── iNaturalist task   own timeout 5 s  → [] on timeout / error
    ├── GBIF task          own timeout 8 s  → [] on timeout / error
    └── OBIS task          own timeout 8 s  → [] on timeout / error

Each task resolves to a list no matter what happens inside it, so one slow
or broken provider never affects another. Per-task timeouts are clipped to
the outer deadline.

When the outer deadline elapses first, results of finished tasks are kept
and the rest count as empty. Unfinished tasks are NOT cancelled: a strong
reference is held until they end on their own timeout, and their results
are discarded.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional, Sequence, Set

from jellywatch.core.config import settings
from jellywatch.ingestion.base import SightingSource
from jellywatch.ingestion.models import SightingRecord
from jellywatch.spatial.radius_utils import Coordinate

logger = logging.getLogger(__name__)


def _source_name(source) -> str:
    return getattr(source, "name", type(source).__name__)


class FanOutCoordinator:
    """
    Usage:
        coordinator = FanOutCoordinator([inat, gbif, obis])
        sightings = await coordinator.aggregate(Coordinate(38.5384, -0.1293))
    """

    def __init__(
        self,
        sources: Sequence[SightingSource],
        *,
        deadline: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        radius_km: Optional[float] = None,
    ):
        self.sources = list(sources)
        self.deadline = settings.FANOUT_DEADLINE_SECONDS if deadline is None else deadline
        self.max_concurrency = max_concurrency or settings.FANOUT_MAX_CONCURRENCY
        self.radius_km = settings.SEARCH_RADIUS_KM if radius_km is None else radius_km
        # Abandoned tasks still running past the outer deadline
        self._background: Set[asyncio.Task] = set()

    async def _run_source(
        self,
        source: SightingSource,
        coordinate: Coordinate,
        semaphore: asyncio.Semaphore,
    ) -> List[SightingRecord]:
        timeout = min(getattr(source, "timeout", self.deadline), self.deadline)
        name = _source_name(source)

        async with semaphore:
            try:
                return list(await asyncio.wait_for(
                    source.fetch(coordinate, self.radius_km, timeout), timeout
                ))
            except asyncio.TimeoutError:
                logger.warning(
                    "%s exceeded its %.1fs timeout", name, timeout,
                    extra={"provider": name},
                )
            except Exception as e:
                logger.warning(
                    "%s failed: %s", name, e,
                    extra={"provider": name},
                )
        return []

    async def aggregate(self, coordinate: Coordinate) -> List[SightingRecord]:
        """
        Query all sources concurrently and concatenate what came back in time.

        Returns
        -------
        list of SightingRecord
            Unranked, in source order. Never raises.
        """
        if not self.sources:
            return []

        start = time.monotonic()
        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [
            asyncio.create_task(self._run_source(source, coordinate, semaphore))
            for source in self.sources
        ]

        done, pending = await asyncio.wait(tasks, timeout=self.deadline)

        sightings: List[SightingRecord] = []
        for source, task in zip(self.sources, tasks):
            if task not in done or task.cancelled():
                continue
            if task.exception() is not None:
                logger.warning("%s task crashed: %s", _source_name(source), task.exception())
                continue
            sightings.extend(task.result())

        if pending:
            late = [_source_name(s) for s, t in zip(self.sources, tasks) if t in pending]
            logger.warning(
                "Fan-out deadline of %.1fs reached, using partial data (still running: %s)",
                self.deadline, ", ".join(late),
            )
            for task in pending:
                self._background.add(task)
                task.add_done_callback(self._background.discard)

        logger.info(
            "Aggregated %d raw sightings from %d/%d sources (%.0fms)",
            len(sightings), len(done), len(tasks),
            (time.monotonic() - start) * 1000,
            extra={
                "lat": coordinate.latitude,
                "lon": coordinate.longitude,
                "sighting_count": len(sightings),
            },
        )
        return sightings
