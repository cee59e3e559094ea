"""
Health check aggregation — deep health probe for all subsystems.

Checks:
    • Sighting providers (configuration, feature flag)
    • Result cache occupancy

Returns a structured health report suitable for:
    - Kubernetes liveness/readiness probes
    - Load balancer health checks
    - Monitoring dashboards
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from jellywatch.core.config import settings

if TYPE_CHECKING:
    from jellywatch.risk.service import RiskService

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # partial functionality
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus = HealthStatus.HEALTHY
    latency_ms: float = 0.0
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            d["message"] = self.message
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class HealthReport:
    status: HealthStatus = HealthStatus.HEALTHY
    version: str = settings.APP_VERSION
    environment: str = settings.ENVIRONMENT
    timestamp: str = ""
    uptime_seconds: float = 0.0
    components: List[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "version": self.version,
            "environment": self.environment,
            "timestamp": self.timestamp or datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(self.uptime_seconds, 1),
            "components": [c.to_dict() for c in self.components],
        }


_start_time = time.monotonic()


async def check_sources(service: Optional["RiskService"]) -> ComponentHealth:
    """Report which sighting providers are wired in."""
    comp = ComponentHealth(name="sighting_sources")
    start = time.monotonic()

    if service is None:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "Risk service not initialised"
    elif not service.is_enabled():
        comp.status = HealthStatus.DEGRADED
        comp.message = "Jellyfish monitoring disabled"
    elif not service.sources:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "No sighting sources configured"
    else:
        comp.status = HealthStatus.HEALTHY
        comp.message = f"{len(service.sources)} sources configured"
        comp.details = {
            s.name: {"url": s.url, "timeout_s": s.timeout}
            for s in service.sources
        }

    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def check_cache(service: Optional["RiskService"]) -> ComponentHealth:
    comp = ComponentHealth(name="result_cache")
    start = time.monotonic()

    if service is None:
        comp.status = HealthStatus.DEGRADED
        comp.message = "Cache unavailable"
    else:
        stats = service.cache.stats()
        comp.details = stats
        comp.message = f"{stats['size']}/{stats['capacity']} entries"

    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def run_health_check(service: Optional["RiskService"] = None) -> HealthReport:
    """Run all health checks and aggregate into a report."""
    report = HealthReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=time.monotonic() - _start_time,
    )

    for coro in (check_sources(service), check_cache(service)):
        report.components.append(await coro)

    statuses = [c.status for c in report.components]
    if HealthStatus.UNHEALTHY in statuses:
        report.status = HealthStatus.UNHEALTHY
    elif HealthStatus.DEGRADED in statuses:
        report.status = HealthStatus.DEGRADED
    else:
        report.status = HealthStatus.HEALTHY

    if report.status is not HealthStatus.HEALTHY:
        logger.warning("Health check %s", report.status.value)
    return report
