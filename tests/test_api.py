import pytest
from fastapi.testclient import TestClient

from trip_planner.api.routes import geocoding as geocoding_routes
from trip_planner.api.routes import trips as trip_routes
from trip_planner.config import settings
from trip_planner.main import create_app
from trip_planner.models.domain import GeocodeResult

PREFIX = settings.api_prefix


class DummyGeocoder:
    provider = "nominatim"
    delay = 0

    def __init__(self, *args, **kwargs):
        self.closed = False

    def geocode(self, address):
        if address and address[0].isdigit():
            lat = 46.0 if "North" in address else 44.0
            return GeocodeResult(lat=lat, lon=-92.0 - len(address) * 0.001, used_variant=address)
        return None

    def close(self):
        self.closed = True


def _points():
    return [
        {"name": "n1", "lat": 46.0, "lon": -92.0},
        {"name": "n2", "lat": 46.1, "lon": -92.1},
        {"name": "s1", "lat": 44.0, "lon": -92.0},
        {"name": "s2", "lat": 44.1, "lon": -92.1},
    ]


@pytest.fixture
def api_client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    for module in (geocoding_routes, trip_routes):
        monkeypatch.setattr(module, "GeocodingClient", DummyGeocoder)
        monkeypatch.setattr(module, "shared_geocode_cache", lambda: None)
    return TestClient(create_app())


def test_health(api_client: TestClient):
    response = api_client.get(f"{PREFIX}/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_cluster_endpoint_numbers_clusters_north_first(api_client: TestClient):
    response = api_client.post(f"{PREFIX}/clusters", json={"points": _points(), "strategy": "byCount", "k": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["cluster_count"] == 2
    by_name = {point["name"]: point["cluster"] for point in body["points"]}
    assert by_name["n1"] == by_name["n2"] == 0
    assert by_name["s1"] == by_name["s2"] == 1


def test_cluster_endpoint_rejects_bad_parameters(api_client: TestClient):
    response = api_client.post(f"{PREFIX}/clusters", json={"points": _points(), "strategy": "bySize", "min_size": 3, "max_size": 1})
    assert response.status_code == 422


def test_optimize_endpoint_returns_routes_in_miles(api_client: TestClient):
    points = [dict(point, cluster=0 if point["name"].startswith("n") else 1) for point in _points()]
    response = api_client.post(f"{PREFIX}/routes/optimize", json={"points": points, "metric": "straight"})

    assert response.status_code == 200
    body = response.json()
    assert body["unit"] == "miles"
    assert [route["cluster"] for route in body["routes"]] == [0, 1]
    assert body["total_distance"] > 0


def test_optimize_endpoint_requires_key_for_travel_time(api_client: TestClient):
    response = api_client.post(f"{PREFIX}/routes/optimize", json={"points": _points(), "metric": "mapbox"})
    assert response.status_code == 422


def test_geocode_endpoint_reports_failures(api_client: TestClient):
    payload = {
        "records": [
            {"name": "a", "address": "1 North Rd, Duluth, MN"},
            {"name": "b", "address": "Main Street"},
            {"name": "c", "address": ""},
        ]
    }
    response = api_client.post(f"{PREFIX}/geocode", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert [point["name"] for point in body["geocoded"]] == ["a"]
    assert body["failure_summary"] == {"No leading number": 1, "No address": 1}


def test_trip_plan_endpoint_runs_every_stage(api_client: TestClient):
    payload = {
        "records": [
            {"name": "a", "address": "1 North Rd"},
            {"name": "b", "address": "22 North Rd"},
            {"name": "c", "address": "1 South St"},
            {"name": "d", "address": "22 South St"},
        ],
        "config": {"strategy": "byCount", "k": 2},
    }
    response = api_client.post(f"{PREFIX}/trips/plan", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert len(body["clustered"]) == 4
    assert len(body["routes"]) == 2
    assert body["unit"] == "miles"


def test_passthrough_columns_keep_any_json_value(api_client: TestClient):
    payload = {
        "records": [
            {"name": "a", "address": "1 North Rd", "columns": {"Age": 42, "Notes": None, "Phone": "555"}},
        ]
    }
    response = api_client.post(f"{PREFIX}/geocode", json=payload)

    assert response.status_code == 200
    assert response.json()["geocoded"][0]["columns"] == {"Age": 42, "Notes": None, "Phone": "555"}
