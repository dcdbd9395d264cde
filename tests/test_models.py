import math

from placemap.models import Filters, Place


def test_filters_round_trip_camel_case():
    raw = {
        "categories": ["yoga", 3, "chess"],
        "priceLevels": [1, "$$", 2.0, True],
        "maxDistanceKm": None,
        "capacityKey": "small",
        "timeWindow": "evening",
    }
    filters = Filters.from_dict(raw)
    assert filters == Filters(
        categories=("yoga", "chess"),
        price_levels=(1, 2),
        max_distance_km=None,
        capacity_key="small",
        time_window="evening",
    )
    assert filters.to_dict() == {
        "categories": ["yoga", "chess"],
        "priceLevels": [1, 2],
        "maxDistanceKm": None,
        "capacityKey": "small",
        "timeWindow": "evening",
    }
    assert Filters.from_dict(filters.to_dict()) == filters


def test_filters_accept_snake_case_keys():
    filters = Filters.from_dict(
        {"price_levels": [3], "max_distance_km": "2.5", "capacity_key": "large", "time_window": "late"}
    )
    assert filters.price_levels == (3,)
    assert filters.max_distance_km == 2.5
    assert filters.capacity_key == "large"
    assert filters.time_window == "late"


def test_filters_default_when_empty():
    assert Filters.from_dict({}) == Filters()
    assert Filters.from_dict({"capacityKey": None, "timeWindow": ""}) == Filters()


def test_place_from_dict_marks_bad_coordinates():
    place = Place.from_dict({"id": "a", "lat": "north", "lon": 100.5, "price_level": True})
    assert math.isnan(place.lat)
    assert place.lng == 100.5
    assert place.price_level is None
    assert not place.has_valid_coordinates
    assert Place.from_dict({"id": "b", "lat": 90, "lng": -180}).has_valid_coordinates
