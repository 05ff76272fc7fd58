"""Geographic renumbering of clusters."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Sequence

from ...models.domain import OUTLIER_CLUSTER, GeoPoint
from ..geospatial import haversine_km
from .base import cluster_centroids, cluster_map

logger = logging.getLogger(__name__)


def geographic_order(centroids: dict[int, tuple[float, float]]) -> list[int]:
    """Order cluster ids north first, then by nearest unvisited centroid."""
    if not centroids:
        return []

    north_first = sorted(centroids, key=lambda cid: centroids[cid][0], reverse=True)
    current = north_first[0]
    ordered = [current]
    unvisited = north_first[1:]

    while unvisited:
        here = centroids[current]
        nearest = None
        nearest_distance = math.inf
        for cluster_id in unvisited:
            there = centroids[cluster_id]
            distance = haversine_km(here[0], here[1], there[0], there[1])
            if distance < nearest_distance:
                nearest_distance = distance
                nearest = cluster_id
        current = nearest
        ordered.append(current)
        unvisited.remove(current)
    return ordered


def renumber_geographically(points: Sequence[GeoPoint]) -> list[GeoPoint]:
    """Return copies of ``points`` with cluster ids 0..K-1 in geographic order.

    Outliers and unclustered points keep their cluster value. Running the
    renumbering on its own output leaves every id unchanged.
    """
    grouped = {
        cluster_id: members
        for cluster_id, members in cluster_map(points).items()
        if cluster_id != OUTLIER_CLUSTER
    }
    if not grouped:
        return list(points)

    logger.info("Renumbering clusters based on geographic location...")
    order = geographic_order(cluster_centroids(grouped))
    id_map = {old_id: new_id for new_id, old_id in enumerate(order)}

    renumbered = [
        replace(point, cluster=id_map[point.cluster]) if point.cluster in id_map else replace(point)
        for point in points
    ]
    logger.info("Geographic renumbering complete.")
    return renumbered
