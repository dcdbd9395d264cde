import json
from datetime import datetime

from placemap import config
from placemap.models import Filters, MapRegion, Place
from placemap.pipeline import build_map_view, build_render_payload, render_summary

LAT = 13.7563
LNG = 100.5018
NOON = datetime(2026, 3, 2, 12, 0)


def _place(pid, tags, lat=LAT, lng=LNG, name=None, metadata=None):
    return Place(
        id=pid,
        name=name if name is not None else f"Place {pid}",
        lat=lat,
        lng=lng,
        categories=("fitness",),
        tags=tuple(tags),
        metadata=metadata,
    )


def _places():
    return [
        _place("b", ["yoga"], metadata={"openstreetmap": {"tags": {"addr:city": "Bangkok"}}}),
        _place("a", ["yoga"], name="Unnamed", metadata={"foursquare": {"name": "Sun Salutation"}}),
        _place("c", ["running"], lat=LAT + 0.05),
    ]


def test_map_view_filters_then_clusters():
    region = MapRegion(LAT, LNG, 0.01, 0.01)
    view = build_map_view(
        _places(),
        region,
        Filters(categories=("yoga",)),
        reference_time=NOON,
        category_config=config.category_config_map(),
    )
    assert [p.id for p in view.places] == ["b", "a"]
    assert view.clusters == ()
    assert [s.place.id for s in view.singles] == ["a", "b"]
    assert view.summary == "Yoga Studios"
    assert view.active_filter_count == 1


def test_map_view_without_filters_clusters_when_zoomed_out():
    region = MapRegion(LAT, LNG, 0.3, 0.3)
    view = build_map_view(_places(), region, Filters(), reference_time=NOON)
    assert view.summary is None
    assert view.active_filter_count == 0
    assert len(view.clusters) == 1
    assert view.clusters[0].count == 3


def test_render_payload_is_json_ready():
    region = MapRegion(LAT, LNG, 0.01, 0.01)
    view = build_map_view(
        _places(),
        region,
        Filters(categories=("yoga",)),
        reference_time=NOON,
        category_config=config.category_config_map(),
    )
    payload = build_render_payload(view)
    json.dumps(payload)

    assert payload["clusters"] == []
    assert [s["place"]["id"] for s in payload["singles"]] == ["a", "b"]
    rows = {row["id"]: row for row in payload["places"]}
    assert rows["a"]["display_name"] == "Sun Salutation"
    assert rows["b"]["short_address"] == "Bangkok"
    assert payload["summary"] == "Yoga Studios"
    assert payload["active_filter_count"] == 1
    assert payload["rejections"] == {"category_mismatch": 1}


def test_render_payload_lists_cluster_members_by_id():
    view = build_map_view(_places(), MapRegion(LAT, LNG, 0.3, 0.3), Filters(), reference_time=NOON)
    payload = build_render_payload(view)
    assert payload["clusters"][0]["places"] == ["b", "a", "c"]
    assert payload["clusters"][0]["count"] == 3
    assert set(payload["clusters"][0]["coordinate"]) == {"latitude", "longitude"}


def test_render_summary_lines():
    view = build_map_view(
        _places(),
        MapRegion(LAT, LNG, 0.01, 0.01),
        Filters(categories=("yoga",)),
        reference_time=NOON,
        category_config=config.category_config_map(),
    )
    assert render_summary(view) == [
        "2 places in view",
        "Clusters: 0",
        "Markers: 2",
        "Filters (1): Yoga Studios",
        "Rejected: category_mismatch=1",
    ]

    empty = build_map_view([], MapRegion(LAT, LNG, 0.01, 0.01), Filters(), reference_time=NOON)
    assert render_summary(empty) == ["No places in view", "Clusters: 0", "Markers: 0"]
