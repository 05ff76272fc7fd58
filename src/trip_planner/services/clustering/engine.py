"""Count- and size-driven clustering of geocoded points."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Literal, Sequence

from ...config import settings
from ...models.domain import GeoPoint
from ..geospatial import haversine_km
from .base import ClusteringPrimitive, KMeansPartitioner, cluster_centroids, cluster_map
from .sequencer import renumber_geographically

logger = logging.getLogger(__name__)

Strategy = Literal["byCount", "bySize"]


def _distance(a: tuple[float, float], b: tuple[float, float]) -> float:
    return haversine_km(a[0], a[1], b[0], b[1])


def _partition(points: Sequence[GeoPoint], k: int, partitioner: ClusteringPrimitive) -> list[GeoPoint]:
    labels = partitioner.partition([point.coordinates for point in points], k)
    if len(labels) != len(points):
        raise RuntimeError(f"Partitioner returned {len(labels)} labels for {len(points)} points.")
    return [replace(point, cluster=int(label)) for point, label in zip(points, labels)]


def cluster_by_count(
    points: Sequence[GeoPoint],
    k: int,
    partitioner: ClusteringPrimitive | None = None,
) -> list[GeoPoint]:
    if k is None or k < 1:
        raise ValueError("Invalid number of clusters.")
    if not points:
        return []
    logger.info(f"Aiming for {k} clusters.")
    return _partition(points, k, partitioner or KMeansPartitioner())


def _steal_for_undersized(points: list[GeoPoint], min_size: int) -> bool:
    changed = False
    grouped = cluster_map(points)
    for cluster_id in sorted(grouped, key=lambda cid: len(grouped[cid])):
        members = grouped.get(cluster_id, [])
        if not members or len(members) >= min_size:
            continue

        best: GeoPoint | None = None
        best_distance = math.inf
        source_id = None
        for other_id, others in grouped.items():
            # a donor must stay at or above min_size after giving one away
            if other_id == cluster_id or len(others) <= min_size:
                continue
            for member in members:
                for candidate in others:
                    distance = _distance(member.coordinates, candidate.coordinates)
                    if distance < best_distance:
                        best_distance = distance
                        best = candidate
                        source_id = other_id

        if best is not None:
            logger.debug(
                f"Stealing point '{best.name}' from cluster {source_id} for undersized cluster {cluster_id}"
            )
            best.cluster = cluster_id
            changed = True
            grouped = cluster_map(points)
    return changed


def _shed_from_oversized(points: list[GeoPoint], max_size: int) -> bool:
    changed = False
    grouped = cluster_map(points)
    centroids = cluster_centroids(grouped)
    for cluster_id in sorted(grouped, key=lambda cid: len(grouped[cid]), reverse=True):
        members = grouped.get(cluster_id, [])
        if len(members) <= max_size:
            continue

        own_center = centroids[cluster_id]
        farthest = max(members, key=lambda point: _distance(point.coordinates, own_center))

        target_id = None
        target_distance = math.inf
        for other_id, other_center in centroids.items():
            if other_id == cluster_id or len(grouped.get(other_id, [])) >= max_size:
                continue
            distance = _distance(farthest.coordinates, other_center)
            if distance < target_distance:
                target_distance = distance
                target_id = other_id

        if target_id is not None:
            logger.debug(
                f"Shedding point '{farthest.name}' from oversized cluster {cluster_id} to cluster {target_id}"
            )
            farthest.cluster = target_id
            changed = True
            grouped = cluster_map(points)
            centroids = cluster_centroids(grouped)
    return changed


def cluster_by_size(
    points: Sequence[GeoPoint],
    min_size: int,
    max_size: int,
    partitioner: ClusteringPrimitive | None = None,
    *,
    max_iterations: int | None = None,
) -> list[GeoPoint]:
    """Cluster so that every group holds between ``min_size`` and ``max_size`` points.

    Sizes are best effort: the repair loop stops at a fixed point or after
    ``max_iterations`` and leftover violations are only logged. An invalid
    range is logged and the input is returned unchanged.
    """
    if min_size is None or max_size is None or min_size < 1 or min_size > max_size:
        logger.error(f"Invalid min/max cluster size ({min_size}-{max_size}).")
        return list(points)
    if not points:
        return []

    max_iterations = max_iterations or settings.size_repair_max_iterations
    initial_k = max(1, math.floor(len(points) / ((min_size + max_size) / 2) + 0.5))
    logger.info(f"Initial guess: {initial_k} clusters.")
    clustered = _partition(points, initial_k, partitioner or KMeansPartitioner())

    iteration = 0
    stable = False
    while iteration < max_iterations:
        iteration += 1
        stole = _steal_for_undersized(clustered, min_size)
        shed = _shed_from_oversized(clustered, max_size)
        if not (stole or shed):
            stable = True
            logger.info(f"Clusters are stable after {iteration} iterations.")
            break

    if not stable:
        logger.warning("Reached max iterations. Sizes may not be perfect.")

    for cluster_id, members in cluster_map(clustered).items():
        size = len(members)
        if size < min_size or size > max_size:
            logger.warning(
                f"Final size for cluster {cluster_id} is {size} (constraints: {min_size}-{max_size})"
            )
    return clustered


def cluster_points(
    points: Sequence[GeoPoint],
    strategy: Strategy,
    *,
    k: int | None = None,
    min_size: int | None = None,
    max_size: int | None = None,
    partitioner: ClusteringPrimitive | None = None,
) -> list[GeoPoint]:
    """Cluster with the chosen strategy, then renumber clusters geographically."""
    if not points:
        logger.warning("No geocoded points to cluster.")
        return []

    logger.info(f"Clustering {len(points)} points with strategy: {strategy}")
    match strategy:
        case "byCount":
            clustered = cluster_by_count(points, k, partitioner)
        case "bySize":
            clustered = cluster_by_size(points, min_size, max_size, partitioner)
        case _:
            raise ValueError(f"Unknown clustering strategy '{strategy}'.")

    final = renumber_geographically(clustered)
    found = len({point.cluster for point in final if point.cluster is not None and point.cluster != -1})
    logger.info(f"Clustering complete. Found {found} clusters.")
    return final
