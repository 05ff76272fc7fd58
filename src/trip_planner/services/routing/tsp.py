"""Greedy nearest-neighbour ordering of the stops inside one cluster."""

from __future__ import annotations

import math
from typing import Callable, Iterable, Sequence

from ...models.domain import GeoPoint
from ..geospatial import haversine_miles

PairCost = Callable[[GeoPoint, GeoPoint], float]


def select_exit_index(
    points: Sequence[GeoPoint],
    candidates: Iterable[int],
    target: tuple[float, float] | None,
) -> int | None:
    """Index of the candidate closest to ``target``.

    Always measured as a straight line, whatever cost model orders the route.
    """
    if target is None:
        return None
    best_index = None
    best_distance = math.inf
    for index in candidates:
        point = points[index]
        distance = haversine_miles(point.lat, point.lon, target[0], target[1])
        if distance < best_distance:
            best_distance = distance
            best_index = index
    return best_index


def _nearest(current: int, remaining: list[int], step_cost: Callable[[int, int], float]) -> int:
    best_index = remaining[0]
    best_cost = math.inf
    for index in remaining:
        value = step_cost(current, index)
        if value < best_cost:
            best_cost = value
            best_index = index
    # when every candidate is unreachable the first one is taken, so no stop is lost
    return best_index


def _greedy_order(
    count: int,
    start_index: int,
    step_cost: Callable[[int, int], float],
    exit_index: int | None,
) -> list[int]:
    order = [start_index]
    remaining = [i for i in range(count) if i != start_index and i != exit_index]
    current = start_index
    while remaining:
        current = _nearest(current, remaining, step_cost)
        order.append(current)
        remaining.remove(current)
    if exit_index is not None:
        order.append(exit_index)
    return order


def solve_with_matrix(
    matrix: Sequence[Sequence[float]],
    points: Sequence[GeoPoint],
    start_index: int = 0,
    target: tuple[float, float] | None = None,
) -> list[int]:
    """Visit order (indices into ``points``) using precomputed pairwise costs."""
    if len(points) < 2:
        return list(range(len(points)))
    others = [i for i in range(len(points)) if i != start_index]
    exit_index = select_exit_index(points, others, target)
    return _greedy_order(len(points), start_index, lambda i, j: matrix[i][j], exit_index)


def solve_nearest_neighbor(
    points: Sequence[GeoPoint],
    cost: PairCost,
    start: GeoPoint | None = None,
    target: tuple[float, float] | None = None,
) -> list[GeoPoint]:
    """Visit order computed by calling ``cost`` for each candidate at each step.

    The route begins at the member located at ``start`` when there is one, at
    ``start`` itself when it is external, and at the first point otherwise.
    """
    if not points:
        return []

    stops = list(points)
    if start is None:
        start_index = 0
    else:
        start_index = next((i for i, point in enumerate(stops) if point.same_location(start)), None)
        if start_index is None:
            stops.insert(0, start)
            start_index = 0

    others = [i for i in range(len(stops)) if i != start_index]
    exit_index = select_exit_index(stops, others, target)
    order = _greedy_order(len(stops), start_index, lambda i, j: cost(stops[i], stops[j]), exit_index)
    return [stops[i] for i in order]
