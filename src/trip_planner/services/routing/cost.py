"""Interchangeable cost models for route ordering."""

from __future__ import annotations

import logging
import math
from typing import Protocol, Sequence

import httpx

from ...models.domain import GeoPoint
from ..geospatial import haversine_miles
from .mapbox_client import MapboxClient

logger = logging.getLogger(__name__)


class CostModel(Protocol):
    name: str
    unit: str
    supports_matrix: bool

    def cost(self, a: GeoPoint, b: GeoPoint) -> float: ...

    def matrix(self, points: Sequence[GeoPoint]) -> list[list[float]]: ...

    def close(self) -> None: ...


class GreatCircleCost:
    """Straight-line distance in miles."""

    name = "straight"
    unit = "miles"
    supports_matrix = False

    def cost(self, a: GeoPoint, b: GeoPoint) -> float:
        return haversine_miles(a.lat, a.lon, b.lat, b.lon)

    def matrix(self, points: Sequence[GeoPoint]) -> list[list[float]]:
        return [[self.cost(a, b) for b in points] for a in points]

    def close(self) -> None:
        pass


class TravelTimeCost:
    """Driving time in minutes from the Mapbox routing services.

    Single-pair lookups never raise: a failed request or a pair without a
    route costs ``math.inf``.
    """

    name = "mapbox"
    unit = "minutes"
    supports_matrix = True

    def __init__(self, client: MapboxClient) -> None:
        self.client = client

    def cost(self, a: GeoPoint, b: GeoPoint) -> float:
        if a.same_location(b):
            return 0.0
        try:
            seconds = self.client.route_duration(a.coordinates, b.coordinates)
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning(f"Directions lookup {a.name} -> {b.name} failed: {exc}")
            return math.inf
        if seconds is None:
            return math.inf
        return seconds / 60.0

    def matrix(self, points: Sequence[GeoPoint]) -> list[list[float]]:
        seconds = self.client.matrix([point.coordinates for point in points])
        return [[value / 60.0 for value in row] for row in seconds]

    def close(self) -> None:
        self.client.close()


def build_cost_model(metric: str, api_key: str | None = None) -> CostModel:
    match metric:
        case "straight":
            return GreatCircleCost()
        case "mapbox":
            return TravelTimeCost(MapboxClient(access_token=api_key))
        case _:
            raise ValueError(f"Unknown distance metric '{metric}'.")
