"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Iterable

from shapely.geometry import MultiPoint

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_km(lat1, lon1, lat2, lon2) * KM_TO_MILES


def centroid(coordinates: Iterable[tuple[float, float]]) -> tuple[float, float]:
    """Return the mean position of (lat, lon) pairs as (lat, lon)."""

    # shapely works in (x, y) == (lon, lat)
    points = [(lon, lat) for lat, lon in coordinates]
    if not points:
        raise ValueError("Cannot compute the centroid of an empty point set.")
    center = MultiPoint(points).centroid
    return (center.y, center.x)
