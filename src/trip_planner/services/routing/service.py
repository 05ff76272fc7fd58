"""Route optimisation across clusters."""

from __future__ import annotations

import logging
from typing import Sequence

from ...models.domain import OUTLIER_CLUSTER, GeoPoint
from ..clustering.base import cluster_centroids, cluster_map
from .cost import CostModel, GreatCircleCost
from .mapbox_client import MatrixUnavailableError
from .models import Route
from .tsp import solve_nearest_neighbor, solve_with_matrix

logger = logging.getLogger(__name__)


def _index_of(points: Sequence[GeoPoint], target: GeoPoint) -> int | None:
    return next((i for i, point in enumerate(points) if point is target), None)


def _route_cost(ordered: Sequence[GeoPoint], cost_model: CostModel) -> float:
    return sum(cost_model.cost(a, b) for a, b in zip(ordered, ordered[1:]))


def plan_cluster_route(
    points: Sequence[GeoPoint],
    cost_model: CostModel,
    start: GeoPoint | None = None,
    target: tuple[float, float] | None = None,
) -> Route:
    """Order one cluster's points into a visiting sequence.

    ``start`` anchors the route (the previous cluster's last stop or the
    trip's starting point); when it is not itself a member it is used for
    ordering only and dropped from the result. ``target`` is the next
    cluster's centroid: the member closest to it is kept for the last stop.
    """
    cluster_id = points[0].cluster if points else OUTLIER_CLUSTER
    effective = list(points)
    injected = start is not None and not any(point.same_location(start) for point in points)
    if injected:
        effective.insert(0, start)

    matrix = None
    if cost_model.supports_matrix:
        try:
            matrix = cost_model.matrix(effective)
        except MatrixUnavailableError as exc:
            logger.warning(f"Matrix optimisation failed for cluster {cluster_id}, falling back to nearest neighbour: {exc}")

    if matrix is not None:
        start_index = 0
        if start is not None:
            start_index = next((i for i, point in enumerate(effective) if point.same_location(start)), 0)
        ordered = [effective[i] for i in solve_with_matrix(matrix, effective, start_index, target)]
    elif cost_model.supports_matrix:
        ordered = solve_nearest_neighbor(effective, GreatCircleCost().cost, start, target)
    else:
        ordered = solve_nearest_neighbor(effective, cost_model.cost, start, target)

    if injected and ordered and ordered[0] is start:
        ordered = ordered[1:]

    if matrix is not None:
        indices = [_index_of(effective, point) for point in ordered]
        distance = sum(matrix[i][j] for i, j in zip(indices, indices[1:]))
    else:
        distance = _route_cost(ordered, cost_model)

    return Route(
        cluster=cluster_id,
        points=ordered,
        distance=distance,
        unit=cost_model.unit,
        metadata={"used_matrix": matrix is not None, "anchored": start is not None},
    )


def optimize_routes(
    points: Sequence[GeoPoint],
    cost_model: CostModel,
    starting_point: GeoPoint | None = None,
) -> list[Route]:
    """One route per cluster, processed north to south with hand-offs.

    Each cluster starts where the previous route ended and leans its last
    stop toward the next cluster's centroid. Outliers are never routed.
    """
    grouped = {
        cluster_id: members
        for cluster_id, members in cluster_map(points).items()
        if cluster_id != OUTLIER_CLUSTER
    }
    if not grouped:
        logger.warning("No clustered points to optimize.")
        return []

    logger.info(f"Optimizing routes for {len(grouped)} clusters with the {cost_model.name} metric...")
    centroids = cluster_centroids(grouped)
    order = sorted(centroids, key=lambda cid: centroids[cid][0], reverse=True)

    routes: list[Route] = []
    previous_end = starting_point
    for position, cluster_id in enumerate(order):
        target = centroids[order[position + 1]] if position + 1 < len(order) else None
        route = plan_cluster_route(grouped[cluster_id], cost_model, previous_end, target)
        routes.append(route)
        if route.points:
            previous_end = route.points[-1]
        logger.debug(f"Cluster {cluster_id}: {route.stop_count} stops, {route.distance:.2f} {route.unit}")

    logger.info("Route optimization complete.")
    return routes


def total_distance(routes: Sequence[Route]) -> float:
    return sum(route.distance for route in routes)
