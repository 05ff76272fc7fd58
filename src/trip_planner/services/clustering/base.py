"""Clustering primitives used by the clustering engine."""

from __future__ import annotations

from typing import Protocol, Sequence

import numpy as np
from sklearn.cluster import KMeans

from ...config import settings
from ...models.domain import GeoPoint
from ..geospatial import EARTH_RADIUS_KM, centroid


class ClusteringPrimitive(Protocol):
    """Partition (lat, lon) pairs into ``k`` groups, one label per input."""

    def partition(self, coordinates: Sequence[tuple[float, float]], k: int) -> list[int]: ...


class KMeansPartitioner:
    """K-Means on an equirectangular projection of the coordinates.

    The projection is centred on the batch mean, which keeps distances in km
    accurate enough for areas of a few hundred kilometres.
    """

    def __init__(
        self,
        *,
        random_state: int | None = settings.kmeans_random_state,
        max_iter: int = settings.kmeans_max_iter,
        n_init: int | str = "auto",
    ) -> None:
        self.random_state = random_state
        self.max_iter = max_iter
        self.n_init = n_init

    @staticmethod
    def _project(coordinates: Sequence[tuple[float, float]]) -> np.ndarray:
        latlon = np.radians(np.asarray(coordinates, dtype=float))
        lat_ref, lon_ref = latlon.mean(axis=0)
        x = EARTH_RADIUS_KM * (latlon[:, 1] - lon_ref) * np.cos(lat_ref)
        y = EARTH_RADIUS_KM * (latlon[:, 0] - lat_ref)
        return np.column_stack((x, y))

    def partition(self, coordinates: Sequence[tuple[float, float]], k: int) -> list[int]:
        if k < 1:
            raise ValueError("k must be >= 1")
        if not coordinates:
            return []
        k = min(k, len(coordinates))
        if k == 1:
            return [0] * len(coordinates)

        kmeans = KMeans(
            n_clusters=k,
            random_state=self.random_state,
            n_init=self.n_init,
            max_iter=self.max_iter,
        )
        labels = kmeans.fit_predict(self._project(coordinates))
        return [int(label) for label in labels]


def cluster_map(points: Sequence[GeoPoint]) -> dict[int, list[GeoPoint]]:
    """Group points by cluster id in first-seen order; unclustered points are skipped."""
    grouped: dict[int, list[GeoPoint]] = {}
    for point in points:
        if point.cluster is None:
            continue
        grouped.setdefault(point.cluster, []).append(point)
    return grouped


def cluster_centroids(grouped: dict[int, list[GeoPoint]]) -> dict[int, tuple[float, float]]:
    return {
        cluster_id: centroid(point.coordinates for point in members)
        for cluster_id, members in grouped.items()
        if members
    }
