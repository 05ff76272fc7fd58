import math

import httpx
import pytest

from trip_planner.models.domain import OUTLIER_CLUSTER, GeoPoint
from trip_planner.services.routing import mapbox_client
from trip_planner.services.routing.cost import GreatCircleCost, TravelTimeCost, build_cost_model
from trip_planner.services.routing.mapbox_client import MapboxClient, MatrixUnavailableError
from trip_planner.services.routing.service import optimize_routes, plan_cluster_route, total_distance
from trip_planner.services.routing.tsp import select_exit_index, solve_nearest_neighbor, solve_with_matrix


def _point(name: str, lat: float, lon: float, cluster=None) -> GeoPoint:
    return GeoPoint(name=name, address="", lat=lat, lon=lon, cluster=cluster)


def _two_clusters() -> list[GeoPoint]:
    return [
        _point("n-west", 45.0, -93.0, cluster=0),
        _point("n-mid", 45.0, -92.9, cluster=0),
        _point("n-east", 45.0, -92.8, cluster=0),
        _point("s-east", 40.0, -93.0, cluster=1),
        _point("s-west", 40.0, -93.1, cluster=1),
    ]


def _mapbox(handler, **kwargs) -> MapboxClient:
    return MapboxClient(
        access_token="token",
        max_retries=0,
        backoff_seconds=0,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        **kwargs,
    )


class DummyMatrixCost:
    name = "dummy"
    unit = "minutes"
    supports_matrix = True

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.matrix_calls = 0
        self.matrix_inputs = []

    def cost(self, a, b):
        return GreatCircleCost().cost(a, b) * 2

    def matrix(self, points):
        self.matrix_calls += 1
        self.matrix_inputs.append(list(points))
        if self.fail:
            raise MatrixUnavailableError("matrix service down")
        return [[self.cost(a, b) for b in points] for a in points]


def test_great_circle_cost_is_symmetric():
    a, b = _point("a", 45.0, -93.0), _point("b", 40.0, -93.1)
    cost = GreatCircleCost()
    assert cost.cost(a, b) == pytest.approx(cost.cost(b, a))
    assert cost.cost(a, a) == 0


def test_every_clustered_point_is_routed_once_and_outliers_never():
    points = _two_clusters() + [_point("far", 10.0, 10.0, cluster=OUTLIER_CLUSTER)]
    routes = optimize_routes(points, GreatCircleCost())

    routed = [p.name for route in routes for p in route.points]
    assert sorted(routed) == sorted(p.name for p in points if p.cluster != OUTLIER_CLUSTER)
    assert "far" not in routed
    assert [route.cluster for route in routes] == [0, 1]


def test_external_start_orders_route_without_being_a_stop():
    start = _point("Starting Point", 45.0, -92.75)
    routes = optimize_routes(_two_clusters(), GreatCircleCost(), start)

    assert [p.name for p in routes[0].points] == ["n-east", "n-mid", "n-west"]
    assert all(p is not start for route in routes for p in route.points)
    assert routes[0].metadata["anchored"] is True


def test_start_on_member_location_keeps_member():
    start = _point("Starting Point", 45.0, -92.8)
    routes = optimize_routes(_two_clusters(), GreatCircleCost(), start)

    assert routes[0].points[0].name == "n-east"
    assert len(routes[0].points) == 3


def test_each_route_hands_off_to_next_cluster():
    routes = optimize_routes(_two_clusters(), GreatCircleCost())

    # n-west opens the route, so the remaining stop nearest the southern centroid closes it
    assert routes[0].points[0].name == "n-west"
    assert routes[0].points[-1].name == "n-mid"
    assert routes[1].points[0].name == "s-east"


def test_straight_distance_sums_legs_in_miles():
    points = [p for p in _two_clusters() if p.cluster == 1]
    route = plan_cluster_route(points, GreatCircleCost())

    assert route.unit == "miles"
    assert route.distance == pytest.approx(GreatCircleCost().cost(points[0], points[1]))
    assert total_distance([route, route]) == pytest.approx(route.distance * 2)


def test_matrix_distance_comes_from_matrix():
    points = [p for p in _two_clusters() if p.cluster == 0]
    cost_model = DummyMatrixCost()
    route = plan_cluster_route(points, cost_model)

    assert route.metadata["used_matrix"] is True
    assert cost_model.matrix_calls == 1
    assert route.unit == "minutes"
    legs = zip(route.points, route.points[1:])
    assert route.distance == pytest.approx(sum(cost_model.cost(a, b) for a, b in legs))


def test_matrix_failure_falls_back_per_cluster():
    points = _two_clusters()
    cost_model = DummyMatrixCost(fail=True)
    routes = optimize_routes(points, cost_model)

    assert cost_model.matrix_calls == 2
    assert all(route.metadata["used_matrix"] is False for route in routes)
    assert sorted(p.name for r in routes for p in r.points) == sorted(p.name for p in points)


def test_unreachable_stops_are_still_visited():
    points = [_point(f"p{i}", 45.0, -93.0 + i * 0.1) for i in range(4)]
    order = solve_nearest_neighbor(points, lambda a, b: math.inf)
    assert sorted(p.name for p in order) == ["p0", "p1", "p2", "p3"]


def test_solve_with_matrix_reserves_exit():
    points = [_point("a", 0.0, 0.0), _point("b", 0.0, 1.0), _point("c", 0.0, 2.0)]
    matrix = [[0, 1, 2], [1, 0, 1], [2, 1, 0]]

    assert solve_with_matrix(matrix, points) == [0, 1, 2]
    # with the exit pinned to "a" the walk must start elsewhere and end there
    assert solve_with_matrix(matrix, points, start_index=2, target=(0.0, -1.0)) == [2, 1, 0]


def test_select_exit_index_picks_candidate_closest_to_target():
    points = [_point("a", 0.0, 0.0), _point("b", 0.0, 1.0), _point("c", 0.0, 2.0)]
    assert select_exit_index(points, [1, 2], (0.0, 5.0)) == 2
    assert select_exit_index(points, [1, 2], None) is None


def test_mapbox_matrix_is_assembled_from_blocks():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        sources = request.url.params["sources"].split(";")
        destinations = request.url.params["destinations"].split(";")
        return httpx.Response(
            200, json={"code": "Ok", "durations": [[60.0] * len(destinations) for _ in sources]}
        )

    coordinates = [(45.0 + i * 0.01, -93.0) for i in range(14)]
    matrix = _mapbox(handler, max_coordinates_per_request=12).matrix(coordinates)

    assert len(requests) == 4
    assert len(matrix) == 14 and all(len(row) == 14 for row in matrix)
    for i in range(14):
        for j in range(14):
            assert matrix[i][j] == (0.0 if i == j else 60.0)


def test_mapbox_matrix_marks_missing_routes_unreachable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": "Ok", "durations": [[0, None], [120, 0]]})

    matrix = _mapbox(handler).matrix([(45.0, -93.0), (40.0, -93.0)])
    assert matrix[0][1] == math.inf
    assert matrix[1][0] == 120.0


def test_mapbox_matrix_error_raises_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": "InvalidInput", "message": "bad"})

    with pytest.raises(MatrixUnavailableError):
        _mapbox(handler).matrix([(45.0, -93.0), (40.0, -93.0)])


def test_mapbox_client_requires_token(monkeypatch):
    monkeypatch.setattr(mapbox_client.settings, "mapbox_api_key", None)
    with pytest.raises(ValueError, match="Mapbox API key"):
        MapboxClient(access_token="")
    with pytest.raises(ValueError):
        build_cost_model("mapbox", None)


def test_travel_time_cost_converts_seconds_to_minutes():
    def handler(request: httpx.Request) -> httpx.Response:
        assert "/directions/v5/mapbox/driving/" in request.url.path
        return httpx.Response(200, json={"routes": [{"duration": 600}]})

    cost_model = TravelTimeCost(_mapbox(handler))
    a, b = _point("a", 45.0, -93.0), _point("b", 44.0, -93.0)

    assert cost_model.cost(a, b) == pytest.approx(10.0)
    assert cost_model.cost(a, a) == 0.0


def test_travel_time_cost_is_infinite_on_failure():
    def failing(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    def no_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"routes": []})

    a, b = _point("a", 45.0, -93.0), _point("b", 44.0, -93.0)
    assert TravelTimeCost(_mapbox(failing)).cost(a, b) == math.inf
    assert TravelTimeCost(_mapbox(no_route)).cost(a, b) == math.inf


def test_matrix_route_orders_from_injected_start_and_drops_it():
    points = [p for p in _two_clusters() if p.cluster == 0]
    start = _point("Starting Point", 45.0, -92.75)
    cost_model = DummyMatrixCost()

    route = plan_cluster_route(points, cost_model, start)

    assert cost_model.matrix_inputs[0][0] is start
    assert route.metadata["used_matrix"] is True
    assert [p.name for p in route.points] == ["n-east", "n-mid", "n-west"]
    # the leg from the start is not part of the route
    legs = zip(route.points, route.points[1:])
    assert route.distance == pytest.approx(sum(cost_model.cost(a, b) for a, b in legs))


@pytest.mark.parametrize(
    "body",
    [
        [],
        {"routes": [{"duration": None}]},
        {"routes": [{"distance": 1200}]},
        {"routes": ["not-a-route"]},
    ],
)
def test_travel_time_cost_is_infinite_on_malformed_directions(body):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    a, b = _point("a", 45.0, -93.0), _point("b", 44.0, -93.0)
    assert TravelTimeCost(_mapbox(handler)).cost(a, b) == math.inf


def test_malformed_matrix_body_raises_unavailable():
    def not_an_object(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    def short_rows(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": "Ok", "durations": [[0]]})

    for handler in (not_an_object, short_rows):
        with pytest.raises(MatrixUnavailableError):
            _mapbox(handler).matrix([(45.0, -93.0), (40.0, -93.0)])


def test_malformed_directions_do_not_break_optimisation():
    def handler(request: httpx.Request) -> httpx.Response:
        if "directions-matrix" in request.url.path:
            return httpx.Response(503)
        return httpx.Response(200, json=[])

    routes = optimize_routes(_two_clusters(), TravelTimeCost(_mapbox(handler)))

    assert sorted(p.name for r in routes for p in r.points) == sorted(p.name for p in _two_clusters())


def test_travel_time_cost_close_releases_owned_client():
    client = MapboxClient(access_token="token")
    TravelTimeCost(client).close()
    assert client._client.is_closed
