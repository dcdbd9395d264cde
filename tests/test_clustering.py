import math

import pytest

from placemap.clustering import bucket_places, cluster, spider_radius, spiderfy
from placemap.geo import encode_geohash, geohash_precision_for_delta, haversine_km
from placemap.models import Coordinate, MapRegion, Place

LAT = 13.7563
LNG = 100.5018


def _place(pid, lat=LAT, lng=LNG):
    return Place(id=pid, name=f"Place {pid}", lat=lat, lng=lng)


def _region(delta):
    return MapRegion(LAT, LNG, delta, delta)


def test_precision_steps_with_zoom():
    assert geohash_precision_for_delta(0.005) == 7
    assert geohash_precision_for_delta(0.01) == 6
    assert geohash_precision_for_delta(0.02) == 6
    assert geohash_precision_for_delta(0.05) == 5
    assert geohash_precision_for_delta(0.2) == 4
    assert geohash_precision_for_delta(0.5) == 3


def test_encode_geohash_prefix():
    assert encode_geohash(57.64911, 10.40744, 5) == "u4pru"
    assert encode_geohash(57.64911, 10.40744, 11) == "u4pruydqqvj"


def test_haversine_is_nan_for_non_finite_input():
    assert math.isnan(haversine_km(math.nan, 0.0, 0.0, 0.0))
    assert haversine_km(0.0, 0.0, 0.0, 0.0449) == pytest.approx(4.9927, abs=1e-3)


def test_single_place_keeps_true_coordinate():
    result = cluster([_place("a")], _region(0.01))
    assert result.clusters == ()
    assert len(result.singles) == 1
    assert result.singles[0].coordinate == Coordinate(LAT, LNG)


def test_colocated_places_spiderfy_when_zoomed_in():
    result = cluster([_place("b"), _place("a")], _region(0.01))
    assert result.clusters == ()
    assert [s.place.id for s in result.singles] == ["a", "b"]
    radius = 0.01 * 0.18
    first, second = result.singles
    assert first.coordinate.latitude == pytest.approx(LAT)
    assert first.coordinate.longitude == pytest.approx(LNG + radius)
    assert second.coordinate.latitude == pytest.approx(LAT)
    assert second.coordinate.longitude == pytest.approx(LNG - radius)


def test_spiderfy_is_deterministic_regardless_of_input_order():
    members = [_place("c"), _place("a"), _place("b")]
    region = _region(0.01)
    centroid = Coordinate(LAT, LNG)
    forward = spiderfy(members, centroid, region)
    backward = spiderfy(list(reversed(members)), centroid, region)
    assert forward == backward
    assert [r.place.id for r in forward] == ["a", "b", "c"]


def test_spider_radius_is_clamped():
    assert spider_radius(0.6) == 0.005
    assert spider_radius(0.0001) == 0.00012
    assert spider_radius(0.01) == pytest.approx(0.0018)


def test_colocated_places_cluster_when_zoomed_out():
    places = [_place("a"), _place("b", lat=LAT + 0.001)]
    result = cluster(places, _region(0.3))
    assert result.singles == ()
    assert len(result.clusters) == 1
    group = result.clusters[0]
    assert group.count == 2
    assert group.id == encode_geohash(LAT, LNG, 3)
    assert [p.id for p in group.places] == ["a", "b"]
    assert group.coordinate.latitude == pytest.approx(LAT + 0.0005)
    assert group.coordinate.longitude == pytest.approx(LNG)


def test_large_bucket_stays_clustered_when_zoomed_in():
    places = [_place(f"p{i}") for i in range(9)]
    result = cluster(places, _region(0.01))
    assert result.singles == ()
    assert result.clusters[0].count == 9


def test_spiderfy_threshold_is_exclusive():
    result = cluster([_place("a"), _place("b")], _region(0.022))
    assert len(result.clusters) == 1


def test_non_finite_places_are_dropped():
    places = [_place("a"), _place("nan", lat=math.nan), _place("inf", lng=math.inf)]
    buckets = bucket_places(places, 7)
    assert [p.id for b in buckets for p in b.places] == ["a"]
    result = cluster(places, _region(0.01))
    assert [s.place.id for s in result.singles] == ["a"]


def test_out_of_range_places_are_dropped_instead_of_failing():
    places = [_place("a"), _place("east", lng=181.0), _place("north", lat=95.0), _place("b")]
    result = cluster(places, _region(0.01))
    assert [s.place.id for s in result.singles] == ["a", "b"]
    assert cluster(places, _region(0.3)).clusters[0].count == 2


def test_every_finite_place_lands_in_exactly_one_marker():
    places = [
        _place("a"),
        _place("b"),
        _place("c"),
        _place("d", lat=LAT + 0.05),
        _place("e", lng=LNG + 0.05),
        _place("f", lat=math.nan),
    ]
    for delta in (0.005, 0.02, 0.3):
        result = cluster(places, _region(delta))
        clustered_ids = [p.id for c in result.clusters for p in c.places]
        single_ids = [s.place.id for s in result.singles]
        assert sum(c.count for c in result.clusters) + len(result.singles) == 5
        assert sorted(clustered_ids + single_ids) == ["a", "b", "c", "d", "e"]


def test_cluster_is_idempotent():
    places = [_place("a"), _place("b"), _place("c", lat=LAT + 0.05)]
    region = _region(0.01)
    assert cluster(places, region) == cluster(places, region)


def test_singles_follow_first_seen_order():
    places = [_place("z", lat=LAT + 0.05), _place("y"), _place("x", lng=LNG + 0.05)]
    result = cluster(places, _region(0.005))
    assert [s.place.id for s in result.singles] == ["z", "y", "x"]
