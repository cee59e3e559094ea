"""
Structured logging for the risk pipeline.

Every stage logs through ``logging.getLogger(__name__)`` and attaches
pipeline fields with ``extra=``:

    lat / lon        queried coordinate
    provider         source adapter name (iNaturalist, GBIF, OBIS)
    sighting_count   records returned / kept
    risk_level       classifier output
    cache_key        rounded coordinate key
    duration_ms      stage or request latency

In production these become top-level JSON keys so a log search such as
``provider=GBIF AND sighting_count=0`` finds empty provider responses.
In development they are appended to the console line as ``key=value``.

The middleware stores per-request data (request id, endpoint, queried
location) in a context variable, so pipeline lines can be correlated
with the request that triggered them.

Usage:
    from jellywatch.core.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__)
    logger.info("GBIF returned 3 sightings", extra={"provider": "GBIF", "sighting_count": 3})
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jellywatch.core.config import settings

_request_context: ContextVar[Dict[str, Any]] = ContextVar("request_context", default={})

# Record attributes promoted to structured fields, in display order
EXTRA_FIELDS = (
    "provider", "lat", "lon", "risk_level", "sighting_count",
    "cache_key", "status_code", "endpoint", "duration_ms",
)

_ROUNDING = {"lat": 4, "lon": 4, "duration_ms": 1}

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def set_request_context(**kwargs: Any) -> None:
    """Replace the request-scoped context; call with no arguments to clear."""
    _request_context.set(kwargs)


def update_request_context(**kwargs: Any) -> None:
    """Add keys to the current request context, ignoring None values."""
    ctx = dict(_request_context.get())
    ctx.update({k: v for k, v in kwargs.items() if v is not None})
    _request_context.set(ctx)


def get_request_context() -> Dict[str, Any]:
    return _request_context.get()


def structured_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Pipeline fields attached to ``record``, floats rounded for display."""
    fields: Dict[str, Any] = {}
    for key in EXTRA_FIELDS:
        if not hasattr(record, key):
            continue
        value = getattr(record, key)
        if isinstance(value, float) and key in _ROUNDING:
            value = round(value, _ROUNDING[key])
        fields[key] = value
    return fields


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log aggregation in production."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(structured_fields(record))

        ctx = get_request_context()
        if ctx:
            entry["request"] = ctx

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }
        return json.dumps(entry, default=str, ensure_ascii=False)


class PrettyFormatter(logging.Formatter):
    """
    Console output for development:

        14:02:11 WARNING  [3f9a1c2e] jellywatch.ingestion.base: GBIF request failed  provider=GBIF
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    DIM = "\033[2m"
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        request_id = get_request_context().get("request_id")
        tag = f" [{request_id[:8]}]" if request_id else ""

        line = (
            f"{color}{self.formatTime(record, '%H:%M:%S')} {record.levelname:8s}{self.RESET}"
            f"{tag} {record.name}: {record.getMessage()}"
        )

        fields = structured_fields(record)
        if fields:
            pairs = " ".join(f"{k}={v}" for k, v in fields.items())
            line += f"  {self.DIM}{pairs}{self.RESET}"

        if record.exc_info and record.exc_info[1]:
            line += f"\n  {type(record.exc_info[1]).__name__}: {record.exc_info[1]}"
        return line


def setup_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """
    Install a single stdout handler on the root logger.

    ``level`` defaults to settings.LOG_LEVEL; ``json_output`` defaults to
    True in production.
    """
    level = (level or settings.LOG_LEVEL).upper()
    json_output = settings.is_production if json_output is None else json_output

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_output else PrettyFormatter())
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
