"""
radius_utils.py — Geographic helpers for sighting queries.

Provides:
    - Coordinate value type with range validation
    - Haversine distance calculation between two (lat, lon) points
    - Bounding-box WKT polygon for providers that search by geometry
    - Stable cache-key rendering of a coordinate
    - Human-readable distance and age strings

All distances are in **kilometers**. Coordinates are in **decimal degrees**.

Mathematical Foundation — Haversine Formula
============================================
Given two points P₁(φ₁, λ₁) and P₂(φ₂, λ₂):

    a = sin²(Δφ / 2) + cos(φ₁) · cos(φ₂) · sin²(Δλ / 2)
    c = 2 · atan2(√a, √(1 − a))
    d = R · c

Where φ is latitude, λ longitude (radians) and R the Earth's mean radius.
Haversine is accurate to ~0.5%, which is plenty for a 50 km search radius.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EARTH_RADIUS_KM: float = 6_371.0


# ---------------------------------------------------------------------------
# Core data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coordinate:
    """A geographic point in decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.latitude <= 90.0):
            raise ValueError(
                f"Latitude must be in [-90, 90], got {self.latitude}"
            )
        if not (-180.0 <= self.longitude <= 180.0):
            raise ValueError(
                f"Longitude must be in [-180, 180], got {self.longitude}"
            )

    @property
    def lat_rad(self) -> float:
        """Latitude in radians."""
        return math.radians(self.latitude)

    @property
    def lon_rad(self) -> float:
        """Longitude in radians."""
        return math.radians(self.longitude)

    def cache_key(self, precision: int = 4) -> str:
        """
        Round to ``precision`` decimals so nearby queries share a key.

        >>> Coordinate(38.53841, -0.12934).cache_key()
        '38.5384,-0.1293'
        """
        return f"{self.latitude:.{precision}f},{self.longitude:.{precision}f}"


# ---------------------------------------------------------------------------
# Haversine implementation
# ---------------------------------------------------------------------------

def haversine(point1: Coordinate, point2: Coordinate) -> float:
    """
    Compute the great-circle distance between two points.

    Parameters
    ----------
    point1 : Coordinate
        Origin point (e.g. the beach being assessed).
    point2 : Coordinate
        Target point (e.g. a sighting).

    Returns
    -------
    float
        Distance in kilometers.

    Examples
    --------
    >>> haversine(Coordinate(38.5384, -0.1293), Coordinate(38.3452, -0.4810))  # Benidorm → Alicante
    37.4...
    >>> haversine(Coordinate(0, 0), Coordinate(0, 0))
    0.0
    """
    d_lat = point2.lat_rad - point1.lat_rad
    d_lon = point2.lon_rad - point1.lon_rad

    a = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(point1.lat_rad)
        * math.cos(point2.lat_rad)
        * math.sin(d_lon / 2.0) ** 2
    )

    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))

    return EARTH_RADIUS_KM * c


# ---------------------------------------------------------------------------
# Query geometry
# ---------------------------------------------------------------------------

def bounding_box(center: Coordinate, offset_deg: float) -> tuple:
    """
    Square box of ``offset_deg`` around the centre, clamped to valid ranges.

    Returns (min_lat, max_lat, min_lon, max_lon) in degrees.
    """
    return (
        max(center.latitude - offset_deg, -90.0),
        min(center.latitude + offset_deg, 90.0),
        max(center.longitude - offset_deg, -180.0),
        min(center.longitude + offset_deg, 180.0),
    )


def bounding_polygon_wkt(center: Coordinate, offset_deg: float = 0.5) -> str:
    """
    WKT polygon for the box around ``center`` (lon lat order, closed ring,
    counter-clockwise as GBIF and OBIS expect).

    >>> bounding_polygon_wkt(Coordinate(10.0, 20.0), 0.5)
    'POLYGON((19.500000 9.500000,20.500000 9.500000,20.500000 10.500000,19.500000 10.500000,19.500000 9.500000))'
    """
    min_lat, max_lat, min_lon, max_lon = bounding_box(center, offset_deg)
    ring = [
        (min_lon, min_lat),
        (max_lon, min_lat),
        (max_lon, max_lat),
        (min_lon, max_lat),
        (min_lon, min_lat),
    ]
    return "POLYGON((" + ",".join(f"{lon:f} {lat:f}" for lon, lat in ring) + "))"


# ---------------------------------------------------------------------------
# Utility: Human-readable strings
# ---------------------------------------------------------------------------

def format_distance(km: float) -> str:
    """
    Format a distance for display.

    >>> format_distance(0.45)
    '450m away'
    >>> format_distance(3.7266)
    '3.7km away'
    """
    if km < 1.0:
        return f"{km * 1000:.0f}m away"
    return f"{km:.1f}km away"


def format_time_ago(days: int) -> str:
    """
    >>> format_time_ago(0)
    'Today'
    >>> format_time_ago(1)
    'Yesterday'
    >>> format_time_ago(12)
    '12 days ago'
    """
    if days == 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    return f"{days} days ago"
