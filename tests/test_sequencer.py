from trip_planner.models.domain import OUTLIER_CLUSTER, GeoPoint
from trip_planner.services.clustering.sequencer import geographic_order, renumber_geographically


def _point(name: str, lat: float, lon: float, cluster=None) -> GeoPoint:
    return GeoPoint(name=name, address="", lat=lat, lon=lon, cluster=cluster)


def _three_bands() -> list[GeoPoint]:
    return [
        _point("south-a", 30.0, -90.0, cluster=7),
        _point("south-b", 30.1, -90.1, cluster=7),
        _point("north", 50.0, -90.0, cluster=3),
        _point("middle", 40.0, -90.0, cluster=5),
    ]


def test_northernmost_cluster_becomes_zero():
    renumbered = {p.name: p.cluster for p in renumber_geographically(_three_bands())}
    assert renumbered == {"south-a": 2, "south-b": 2, "north": 0, "middle": 1}


def test_chain_follows_nearest_centroid_not_latitude():
    centroids = {
        1: (50.0, -90.0),
        2: (45.0, -60.0),  # farther east, second by latitude
        3: (44.0, -90.5),  # right below the first
    }
    assert geographic_order(centroids) == [1, 3, 2]


def test_renumbering_is_idempotent():
    once = renumber_geographically(_three_bands())
    twice = renumber_geographically(once)
    assert [p.cluster for p in twice] == [p.cluster for p in once]


def test_ids_are_dense():
    renumbered = renumber_geographically(_three_bands())
    assert sorted({p.cluster for p in renumbered}) == [0, 1, 2]


def test_outliers_and_unclustered_points_keep_their_value():
    points = _three_bands() + [
        _point("outlier", 60.0, -90.0, cluster=OUTLIER_CLUSTER),
        _point("loose", 35.0, -90.0),
    ]
    renumbered = {p.name: p.cluster for p in renumber_geographically(points)}

    assert renumbered["outlier"] == OUTLIER_CLUSTER
    assert renumbered["loose"] is None
    # the outlier is further north but does not take id 0
    assert renumbered["north"] == 0


def test_empty_and_unclustered_inputs_pass_through():
    assert renumber_geographically([]) == []
    loose = [_point("a", 1.0, 1.0), _point("b", 2.0, 2.0)]
    assert renumber_geographically(loose) == loose


def test_input_is_not_mutated():
    points = _three_bands()
    renumber_geographically(points)
    assert [p.cluster for p in points] == [7, 7, 3, 5]
